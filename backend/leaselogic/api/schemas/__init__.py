"""API schema package."""

from leaselogic.api.schemas.analysis import AnalysisOptionsSchema, AnalyzeRequest, AnalyzeResponse

__all__ = ["AnalysisOptionsSchema", "AnalyzeRequest", "AnalyzeResponse"]
