"""
Analysis Pipeline Module

Validation, quota admission, engine invocation, persistence and quota
commit for a single analysis request.
"""

from .analysis import (
    AnalysisPipeline,
    AnalysisRequest,
    AnalysisOptions,
    AnalysisOutcome,
    Requester,
    RequestState,
    validate_request,
    SENSITIVITY_LEVELS,
)

__all__ = [
    "AnalysisPipeline",
    "AnalysisRequest",
    "AnalysisOptions",
    "AnalysisOutcome",
    "Requester",
    "RequestState",
    "validate_request",
    "SENSITIVITY_LEVELS",
]
