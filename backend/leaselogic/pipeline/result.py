"""
AnalysisResult — terminal artifact of every job.

The same model is produced on the success, failure and termination
paths so consumers never special-case its shape.  Serialised with
camelCase aliases; `to_payload()` is what gets checkpointed and served.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from leaselogic.core.constants import LeaseType


def format_processing_time(elapsed: timedelta) -> str:
    """Render a duration as HH:MM:SS.ffffff (negative durations clamp to zero)."""
    if elapsed < timedelta(0):
        elapsed = timedelta(0)
    total_seconds = elapsed.days * 86_400 + elapsed.seconds
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{elapsed.microseconds:06d}"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FileInfo(_CamelModel):
    file_name: str
    file_size: int
    uploaded_at: datetime


class ContractSummary(_CamelModel):
    contract_type: str = ""
    primary_asset: str = ""
    contract_period: str = ""
    monthly_payment: str = ""


class IdentifiedAssetAnalysis(_CamelModel):
    has_identified_asset: bool = False
    asset_description: str = ""
    asset_specificity: str = ""
    citations: list[str] = Field(default_factory=list)


class RightToControlAnalysis(_CamelModel):
    has_right_to_control: bool = False
    control_indicators: list[str] = Field(default_factory=list)
    citations: list[str] = Field(default_factory=list)


class SubstitutionRightsAnalysis(_CamelModel):
    has_substitution_rights: bool = False
    analysis: str = ""
    citations: list[str] = Field(default_factory=list)


class DetailedLeaseAnalysis(_CamelModel):
    identified_asset: IdentifiedAssetAnalysis = Field(default_factory=IdentifiedAssetAnalysis)
    right_to_control: RightToControlAnalysis = Field(default_factory=RightToControlAnalysis)
    substantive_substitution_rights: SubstitutionRightsAnalysis = Field(
        default_factory=SubstitutionRightsAnalysis
    )


class LeaseAnalysis(_CamelModel):
    is_lease: bool
    confidence: float = Field(..., ge=0.0, le=1.0)
    lease_type: LeaseType
    summary: ContractSummary = Field(default_factory=ContractSummary)
    lease_analysis: DetailedLeaseAnalysis = Field(default_factory=DetailedLeaseAnalysis)
    key_findings: list[str] = Field(default_factory=list)
    risk_factors: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    compliance_requirements: list[str] = Field(default_factory=list)


class AnalysisResult(_CamelModel):
    """Complete outcome of one analysis job."""

    analysis_id: str
    file_info: FileInfo
    analysis_result: LeaseAnalysis
    document_summary: str
    processing_time: str
    completed_at: datetime

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe camelCase dict, as stored in checkpoints and job rows."""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> AnalysisResult:
        return cls.model_validate(payload)
