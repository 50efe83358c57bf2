"""
Query Normalizer
把原始输入 (关键词 / explore 页面 URL) 转换为查询描述
"""
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Union
from urllib.parse import parse_qs, urlencode, urlparse

from models import DEFAULT_TIME_RANGE, QueryDescriptor, RunInput


EXPLORE_URL = "https://trends.google.com/trends/explore"

# explore URL 中可识别的参数
URL_PARAMS = ("q", "geo", "date", "cat", "gprop")


@dataclass(frozen=True)
class QueryDefaults:
    """全局默认值，URL 中出现对应参数时才会被覆盖"""
    geo: str = ""
    time_range: str = DEFAULT_TIME_RANGE
    category: int = 0
    property_filter: str = ""
    hl: str = "en-US"

    @classmethod
    def from_run_input(cls, run_input: RunInput, hl: str = "en-US") -> "QueryDefaults":
        return cls(
            geo=run_input.geo,
            time_range=run_input.effective_time_range or DEFAULT_TIME_RANGE,
            category=run_input.category,
            property_filter=run_input.property_filter,
            hl=hl,
        )


def expand_input_items(
    search_terms: Iterable[str],
    start_urls: Iterable[Union[str, dict]],
    is_multiple: bool = False,
) -> List[str]:
    """
    生成待处理条目列表：先搜索词，后起始 URL

    Args:
        search_terms: 搜索词列表
        start_urls: 字符串或 {"url": ...} 对象
        is_multiple: 是否按逗号拆分搜索词
    """
    items: List[str] = []
    for term in search_terms or []:
        text = str(term or "")
        if is_multiple and "," in text:
            items.extend(part.strip() for part in text.split(",") if part.strip())
        else:
            items.append(text)

    for entry in start_urls or []:
        url = entry if isinstance(entry, str) else (entry or {}).get("url")
        if url:
            items.append(str(url))
    return items


def build_explore_url(
    keyword: str,
    geo: str = "",
    time_range: str = "",
    category: int = 0,
    property_filter: str = "",
    hl: str = "en-US",
) -> str:
    """构造 explore 页面地址 (用于日志和记录溯源)"""
    params = {"q": keyword, "hl": hl}
    if geo:
        params["geo"] = geo
    if time_range:
        params["date"] = time_range
    if category:
        params["cat"] = str(category)
    if property_filter:
        params["gprop"] = property_filter
    return f"{EXPLORE_URL}?{urlencode(params)}"


def _first(params: dict, key: str) -> str:
    values = params.get(key) or []
    return values[0].strip() if values else ""


def _parse_category(value: str) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def _is_url(raw: str) -> bool:
    return raw.lower().startswith(("http://", "https://"))


def normalize_query(raw: Any, defaults: Optional[QueryDefaults] = None) -> Optional[QueryDescriptor]:
    """
    归一化单个输入条目

    带可识别参数 (q/geo/date/cat/gprop) 的 URL 按参数解析，
    其余输入整体视为关键词并套用全局默认值。

    Returns:
        QueryDescriptor；关键词为空时返回 None (不抛异常，不访问网络)
    """
    defaults = defaults or QueryDefaults()
    text = str(raw or "").strip()

    params = parse_qs(urlparse(text).query, keep_blank_values=True) if _is_url(text) else {}
    if any(key in params for key in URL_PARAMS):
        keyword = _first(params, "q")
        category = _parse_category(_first(params, "cat"))
        if not keyword:
            return None
        return QueryDescriptor(
            raw_input=str(raw),
            keyword=keyword,
            geo=_first(params, "geo") or defaults.geo,
            time_range=_first(params, "date") or defaults.time_range,
            category=category or defaults.category,
            property_filter=_first(params, "gprop") or defaults.property_filter,
            explore_url=text,
        )

    if not text:
        return None

    return QueryDescriptor(
        raw_input=str(raw),
        keyword=text,
        geo=defaults.geo,
        time_range=defaults.time_range,
        category=defaults.category,
        property_filter=defaults.property_filter,
        explore_url=build_explore_url(
            text,
            geo=defaults.geo,
            time_range=defaults.time_range,
            category=defaults.category,
            property_filter=defaults.property_filter,
            hl=defaults.hl,
        ),
    )
