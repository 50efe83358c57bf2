"""
Result Classifier
相关搜索列表 top/rising 判定，以及地理数据按粒度分桶
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from models import GeoMapItem, RankedKeywordItem, ResolutionHint


class RankBucket(str, Enum):
    TOP = "top"
    RISING = "rising"


class GeoBucket(str, Enum):
    SUBREGION = "subregion"
    CITY = "city"
    COUNTRY = "country"


@dataclass
class RelatedBuckets:
    top: List[RankedKeywordItem] = field(default_factory=list)
    rising: List[RankedKeywordItem] = field(default_factory=list)


@dataclass
class GeoBuckets:
    subregion: List[GeoMapItem] = field(default_factory=list)
    city: List[GeoMapItem] = field(default_factory=list)
    country: List[GeoMapItem] = field(default_factory=list)


def _is_rising_marker(formatted_value: str) -> bool:
    text = (formatted_value or "").strip()
    return "%" in text or text.lower() == "breakout"


def classify_ranked_list(items: Iterable[RankedKeywordItem]) -> RankBucket:
    """任一项的 formattedValue 含 % 或为 Breakout 即为 rising，否则为 top"""
    if any(_is_rising_marker(item.formatted_value) for item in items):
        return RankBucket.RISING
    return RankBucket.TOP


def classify_related(ranked_lists: Sequence[Sequence[RankedKeywordItem]]) -> RelatedBuckets:
    """
    把一个相关搜索组件的多个排名列表分到 top / rising

    同一桶出现多个列表时，后出现的覆盖先出现的 (与后端返回顺序一致)。
    """
    buckets = RelatedBuckets()
    for items in ranked_lists:
        if classify_ranked_list(items) == RankBucket.RISING:
            buckets.rising = list(items)
        else:
            buckets.top = list(items)
    return buckets


def geo_bucket(hint: Optional[ResolutionHint]) -> GeoBucket:
    if hint == ResolutionHint.REGION:
        return GeoBucket.SUBREGION
    if hint == ResolutionHint.CITY:
        return GeoBucket.CITY
    return GeoBucket.COUNTRY


def route_geo(items: Sequence[GeoMapItem], hint: Optional[ResolutionHint]) -> GeoBuckets:
    """整个地理数据只落入一个桶"""
    buckets = GeoBuckets()
    target = geo_bucket(hint)
    if target == GeoBucket.SUBREGION:
        buckets.subregion = list(items)
    elif target == GeoBucket.CITY:
        buckets.city = list(items)
    else:
        buckets.country = list(items)
    return buckets
