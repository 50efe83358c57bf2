"""
Widget Resolver
调用 explore 接口，获取当前查询可用的组件及其令牌
"""
import json
from typing import Any, Dict, List, Optional
import logging

from .base import HttpRequest
from .transport import RetryingTransport
from config import TrendsSettings, get_trends_settings
from models import QueryDescriptor, ResolutionHint, WidgetDescriptor, WidgetId
from utils.exceptions import MalformedResponseError


logger = logging.getLogger(__name__)


EXPLORE_PATH = "/trends/api/explore"


def build_explore_payload(query: QueryDescriptor) -> Dict[str, Any]:
    """构造 explore 请求的 req 参数 (单元素对比列表)"""
    return {
        "comparisonItem": [
            {
                "keyword": query.keyword,
                "geo": query.geo,
                "time": query.time_range,
            }
        ],
        "category": query.category,
        "property": query.property_filter,
    }


def _to_descriptor(widget: Dict[str, Any]) -> Optional[WidgetDescriptor]:
    raw_id = str(widget.get("id") or "")
    token = widget.get("token")
    if not token:
        logger.debug(f"Widget '{raw_id}' has no token, ignoring")
        return None

    request = widget.get("request")
    if request is None:
        request = {}

    hint = None
    if isinstance(request, dict):
        hint = ResolutionHint.parse(request.get("resolution"))

    return WidgetDescriptor(
        id=WidgetId.from_backend(raw_id),
        raw_id=raw_id,
        request_payload=json.dumps(request, ensure_ascii=False, separators=(",", ":")),
        token=str(token),
        resolution_hint=hint,
    )


class WidgetResolver:
    """
    组件解析器

    一次 explore 往返 -> 组件描述列表。
    空列表表示后端对该查询没有数据，属于正常终态，调用方不应重试。
    """

    def __init__(
        self,
        transport: RetryingTransport,
        settings: Optional[TrendsSettings] = None,
    ):
        self.transport = transport
        self.settings = settings or get_trends_settings()

    def build_request(self, query: QueryDescriptor) -> HttpRequest:
        payload = build_explore_payload(query)
        return HttpRequest(
            url=f"{self.settings.base_url}{EXPLORE_PATH}",
            params={
                "hl": self.settings.hl,
                "tz": self.settings.tz,
                "req": json.dumps(payload, ensure_ascii=False, separators=(",", ":")),
            },
            label="explore",
        )

    async def resolve(self, query: QueryDescriptor) -> List[WidgetDescriptor]:
        """
        解析组件

        Args:
            query: 查询描述

        Returns:
            组件描述列表 (可能为空)

        Raises:
            AcquisitionError: 重试用尽，或响应中缺少 widgets 数组
        """
        data = await self.transport.execute(self.build_request(query))

        widgets = data.get("widgets") if isinstance(data, dict) else None
        if not isinstance(widgets, list):
            raise MalformedResponseError("explore response has no 'widgets' array")

        if not widgets:
            logger.info(f"No widgets available for '{query.keyword}'")
            return []

        descriptors = []
        for widget in widgets:
            if not isinstance(widget, dict):
                continue
            descriptor = _to_descriptor(widget)
            if descriptor is not None:
                descriptors.append(descriptor)

        logger.info(
            f"Resolved {len(descriptors)} widget(s) for '{query.keyword}': "
            f"{', '.join(d.raw_id for d in descriptors)}"
        )
        return descriptors
