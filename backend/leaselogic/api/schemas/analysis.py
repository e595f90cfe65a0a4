"""Analysis request/response schemas (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from leaselogic.pipeline.context import AnalysisOptions, AnalysisRequest


class _CamelSchema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalysisOptionsSchema(_CamelSchema):
    language: str = "ja"
    detail_level: str = "standard"
    notification_url: str | None = None


class AnalyzeRequest(_CamelSchema):
    """Request payload for POST /api/analyze."""

    file_id: str = Field(..., max_length=255)
    file_name: str = Field(..., max_length=1024)
    file_size: int
    content_type: str = Field(..., max_length=255)
    options: AnalysisOptionsSchema | None = None

    def to_domain(self) -> AnalysisRequest:
        options = self.options or AnalysisOptionsSchema()
        return AnalysisRequest(
            file_id=self.file_id,
            file_name=self.file_name,
            file_size=self.file_size,
            content_type=self.content_type,
            options=AnalysisOptions(
                language=options.language,
                detail_level=options.detail_level,
                notification_url=options.notification_url,
            ),
        )


class AnalyzeResponse(_CamelSchema):
    """Returned once the job is created; poll statusUrl for progress."""

    analysis_id: str
    status: str
    status_url: str
    result_url: str
    estimated_duration: str
    created_time: datetime
