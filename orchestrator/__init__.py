"""
Orchestrator Module
逐条目状态机流水线
"""
from .pipeline import TrendsPipeline

__all__ = [
    "TrendsPipeline",
]
