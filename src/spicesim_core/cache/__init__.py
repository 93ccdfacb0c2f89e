# src/spicesim_core/cache/__init__.py
"""
Exposes the public interface of the cache package.
"""
from .service import ResultsCache, CachedAnalysisResult, PARAMETER_SWEEP_TYPE

__all__ = [
    "ResultsCache",
    "CachedAnalysisResult",
    "PARAMETER_SWEEP_TYPE",
]
