"""AI analysis for weekly reports and submission insights."""

from .deepseek import DeepSeekClient, AnalysisUnavailable
from .analysis import (
    AnalysisRequest,
    AnalysisBackend,
    RemoteAnalysisBackend,
    FallbackAnalysisBackend,
    ResilientAnalyzer,
    SubmissionInsights,
    finalize_analysis,
)

__all__ = [
    "DeepSeekClient",
    "AnalysisUnavailable",
    "AnalysisRequest",
    "AnalysisBackend",
    "RemoteAnalysisBackend",
    "FallbackAnalysisBackend",
    "ResilientAnalyzer",
    "SubmissionInsights",
    "finalize_analysis",
]
