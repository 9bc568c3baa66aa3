"""Service layer exports."""

from .analysis_service import (
    AnalysisResult,
    AnalysisSession,
    CommandResult,
    ProjectStats,
    analyze_project,
)
from .errors import DuplicateNameError, InvalidNameError, NoAnalysisError, SymbolError
from .result_serializer import serialize_result

__all__ = [
    "AnalysisResult",
    "AnalysisSession",
    "CommandResult",
    "DuplicateNameError",
    "InvalidNameError",
    "NoAnalysisError",
    "ProjectStats",
    "SymbolError",
    "analyze_project",
    "serialize_result",
]
