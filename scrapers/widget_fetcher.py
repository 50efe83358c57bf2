"""
Widget Fetcher
按组件令牌抓取各组件数据：时间序列 / 地理分布 / 相关话题 / 相关查询
"""
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple
import asyncio
import logging
import random

from pydantic import ValidationError

from .backoff import BackoffPolicy
from .base import HttpRequest
from .transport import RetryingTransport
from config import TrendsSettings, get_trends_settings
from models import (
    GeoMapItem,
    RankedKeywordItem,
    ResolutionHint,
    TimelinePoint,
    WidgetDescriptor,
    WidgetId,
)
from utils.exceptions import AcquisitionError, MalformedResponseError


logger = logging.getLogger(__name__)


WIDGET_ENDPOINTS: Dict[WidgetId, str] = {
    WidgetId.TIMESERIES: "/trends/api/widgetdata/multiline",
    WidgetId.GEO_MAP: "/trends/api/widgetdata/comparedgeo",
    WidgetId.RELATED_TOPICS: "/trends/api/widgetdata/relatedsearches",
    WidgetId.RELATED_QUERIES: "/trends/api/widgetdata/relatedsearches",
}

# 抓取顺序与浏览器加载 explore 页面时一致
FETCH_ORDER = (
    WidgetId.TIMESERIES,
    WidgetId.GEO_MAP,
    WidgetId.RELATED_TOPICS,
    WidgetId.RELATED_QUERIES,
)

RankedLists = List[List[RankedKeywordItem]]


@dataclass
class FetchedWidgets:
    """一次查询所有组件的原始结果 (缺失即为空)"""
    timeline: List[TimelinePoint] = field(default_factory=list)
    averages: List[Any] = field(default_factory=list)
    geo_items: List[GeoMapItem] = field(default_factory=list)
    geo_hint: Optional[ResolutionHint] = None
    topic_lists: RankedLists = field(default_factory=list)
    query_lists: RankedLists = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)


def index_widgets(widgets: Iterable[WidgetDescriptor]) -> Dict[WidgetId, WidgetDescriptor]:
    """按组件类型索引，同类型取第一个，未知类型忽略"""
    indexed: Dict[WidgetId, WidgetDescriptor] = {}
    for widget in widgets:
        if widget.id == WidgetId.UNKNOWN:
            continue
        indexed.setdefault(widget.id, widget)
    return indexed


def _default_section(data: Any) -> Dict[str, Any]:
    section = data.get("default") if isinstance(data, dict) else None
    if not isinstance(section, dict):
        raise MalformedResponseError("widget payload has no 'default' object")
    return section


def _list_field(section: Dict[str, Any], key: str) -> List[Any]:
    """取列表字段，缺失视为空，类型不符视为结构错误"""
    value = section.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedResponseError(f"widget field '{key}' is {type(value).__name__}, expected list")
    return value


def parse_timeline(data: Any) -> Tuple[List[TimelinePoint], List[Any]]:
    section = _default_section(data)
    points = [TimelinePoint.model_validate(item) for item in _list_field(section, "timelineData")]
    return points, list(_list_field(section, "averages"))


def parse_geo_map(data: Any) -> List[GeoMapItem]:
    section = _default_section(data)
    return [GeoMapItem.model_validate(item) for item in _list_field(section, "geoMapData")]


def parse_ranked_lists(data: Any) -> RankedLists:
    section = _default_section(data)
    lists: RankedLists = []
    for ranked in _list_field(section, "rankedList"):
        if not isinstance(ranked, dict) or "rankedKeyword" not in ranked:
            continue
        lists.append([RankedKeywordItem.model_validate(item) for item in _list_field(ranked, "rankedKeyword")])
    return lists


class WidgetFetcher:
    """
    组件数据抓取器

    所有组件共用同一契约：请求中携带组件 request 原文 + token，
    经 RetryingTransport 执行后按组件类型解码。
    组件缺失、重试用尽或结构不符时返回空结果，绝不让整个条目失败。
    """

    def __init__(
        self,
        transport: RetryingTransport,
        settings: Optional[TrendsSettings] = None,
        policy: Optional[BackoffPolicy] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.transport = transport
        self.settings = settings or get_trends_settings()
        self.policy = policy or transport.policy
        self._sleep = sleep or asyncio.sleep
        self._rng = rng or random.Random()

    def build_request(self, widget: WidgetDescriptor) -> HttpRequest:
        return HttpRequest(
            url=f"{self.settings.base_url}{WIDGET_ENDPOINTS[widget.id]}",
            params={
                "hl": self.settings.hl,
                "tz": self.settings.tz,
                "req": widget.request_payload,
                "token": widget.token,
            },
            label=widget.raw_id or widget.id.value,
        )

    async def _fetch(
        self,
        widget: Optional[WidgetDescriptor],
        parser: Callable[[Any], Any],
        empty: Any,
        failures: Dict[str, str],
    ) -> Any:
        if widget is None:
            return empty
        try:
            data = await self.transport.execute(self.build_request(widget))
            return parser(data)
        except (AcquisitionError, ValidationError) as e:
            cause = f"{type(e).__name__}: {e}"
            failures[widget.id.value] = cause
            logger.warning(f"Widget {widget.id.value} degraded to empty: {cause}")
            return empty

    async def fetch_timeline(
        self, widget: Optional[WidgetDescriptor], failures: Optional[Dict[str, str]] = None
    ) -> Tuple[List[TimelinePoint], List[Any]]:
        """抓取时间序列"""
        result = await self._fetch(widget, parse_timeline, ([], []), failures if failures is not None else {})
        if widget is not None and result[0]:
            logger.info(f"✓ Captured interest over time: {len(result[0])} points")
        return result

    async def fetch_geo_map(
        self, widget: Optional[WidgetDescriptor], failures: Optional[Dict[str, str]] = None
    ) -> List[GeoMapItem]:
        """抓取地理分布"""
        items = await self._fetch(widget, parse_geo_map, [], failures if failures is not None else {})
        if items:
            logger.info(f"✓ Captured geo data: {len(items)} regions")
        return items

    async def fetch_related(
        self, widget: Optional[WidgetDescriptor], failures: Optional[Dict[str, str]] = None
    ) -> RankedLists:
        """抓取相关话题 / 相关查询 (返回多个排名列表，交给分类器区分 top/rising)"""
        lists = await self._fetch(widget, parse_ranked_lists, [], failures if failures is not None else {})
        if lists:
            logger.info(f"✓ Captured {widget.id.value.lower()}: {len(lists)} list(s)")
        return lists

    async def fetch_all(
        self,
        widgets: Iterable[WidgetDescriptor],
        concurrent: bool = False,
    ) -> FetchedWidgets:
        """
        抓取一次查询的全部组件

        Args:
            widgets: 解析器返回的组件描述
            concurrent: 是否并发抓取 (仅限同一条目内)

        Returns:
            FetchedWidgets
        """
        indexed = index_widgets(widgets)
        fetched = FetchedWidgets()
        geo_widget = indexed.get(WidgetId.GEO_MAP)
        fetched.geo_hint = geo_widget.resolution_hint if geo_widget else None

        jobs = {
            WidgetId.TIMESERIES: lambda: self.fetch_timeline(indexed.get(WidgetId.TIMESERIES), fetched.failures),
            WidgetId.GEO_MAP: lambda: self.fetch_geo_map(geo_widget, fetched.failures),
            WidgetId.RELATED_TOPICS: lambda: self.fetch_related(indexed.get(WidgetId.RELATED_TOPICS), fetched.failures),
            WidgetId.RELATED_QUERIES: lambda: self.fetch_related(indexed.get(WidgetId.RELATED_QUERIES), fetched.failures),
        }

        if concurrent:
            results = await asyncio.gather(*(jobs[widget_id]() for widget_id in FETCH_ORDER))
            outputs = dict(zip(FETCH_ORDER, results))
        else:
            outputs = {}
            requested = 0
            for widget_id in FETCH_ORDER:
                if widget_id in indexed:
                    if requested:
                        await self._sleep(self.policy.inter_fetch_delay().sample(self._rng))
                    requested += 1
                outputs[widget_id] = await jobs[widget_id]()

        fetched.timeline, fetched.averages = outputs[WidgetId.TIMESERIES]
        fetched.geo_items = outputs[WidgetId.GEO_MAP]
        fetched.topic_lists = outputs[WidgetId.RELATED_TOPICS]
        fetched.query_lists = outputs[WidgetId.RELATED_QUERIES]
        return fetched
