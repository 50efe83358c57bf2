"""
Data Models
"""
from .schemas import (
    TIME_RANGES,
    DEFAULT_TIME_RANGE,
    WORLDWIDE,
    WidgetId,
    ResolutionHint,
    ItemState,
    QueryDescriptor,
    WidgetDescriptor,
    TimelinePoint,
    GeoMapItem,
    RankedKeywordItem,
    NormalizedRecord,
    ItemReport,
    RunSummary,
    RunInput,
)

__all__ = [
    "TIME_RANGES",
    "DEFAULT_TIME_RANGE",
    "WORLDWIDE",
    "WidgetId",
    "ResolutionHint",
    "ItemState",
    "QueryDescriptor",
    "WidgetDescriptor",
    "TimelinePoint",
    "GeoMapItem",
    "RankedKeywordItem",
    "NormalizedRecord",
    "ItemReport",
    "RunSummary",
    "RunInput",
]
