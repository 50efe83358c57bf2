"""
Data Models / Schemas
定义统一的数据结构
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# 后端支持的时间范围枚举 (customTimeRange 可覆盖为任意字符串, 如 "2024-01-01 2024-06-30")
TIME_RANGES = (
    "now 1-H",
    "now 4-H",
    "now 1-d",
    "now 7-d",
    "today 1-m",
    "today 3-m",
    "today 12-m",
    "today 5-y",
    "all",
)
DEFAULT_TIME_RANGE = "today 12-m"
WORLDWIDE = "Worldwide"

# gprop 取值，空字符串 = 网页搜索
SEARCH_PROPERTIES = ("", "images", "news", "froogle", "youtube")

Number = Union[int, float]


class WidgetId(str, Enum):
    """后端组件类型"""
    TIMESERIES = "TIMESERIES"
    GEO_MAP = "GEO_MAP"
    RELATED_TOPICS = "RELATED_TOPICS"
    RELATED_QUERIES = "RELATED_QUERIES"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_backend(cls, raw_id: str) -> "WidgetId":
        """
        后端 id 映射，多关键词对比时会带数字后缀 (GEO_MAP_0)
        """
        text = str(raw_id or "").strip().upper()
        base, _, suffix = text.rpartition("_")
        if base and suffix.isdigit():
            text = base
        try:
            return cls(text)
        except ValueError:
            return cls.UNKNOWN


class ResolutionHint(str, Enum):
    """地理数据粒度"""
    COUNTRY = "COUNTRY"
    REGION = "REGION"
    CITY = "CITY"
    DMA = "DMA"

    @classmethod
    def parse(cls, value: Any) -> Optional["ResolutionHint"]:
        text = str(value or "").strip().upper()
        try:
            return cls(text) if text else None
        except ValueError:
            return None


class ItemState(str, Enum):
    """单个输入条目的处理状态"""
    PENDING = "pending"
    RESOLVING = "resolving"
    FETCHING = "fetching"
    CLASSIFYING = "classifying"
    ASSEMBLING = "assembling"
    EMITTED = "emitted"
    SKIPPED = "skipped"


class QueryDescriptor(BaseModel):
    """归一化后的查询描述，每个输入条目创建一次，之后不可变"""
    model_config = ConfigDict(frozen=True)

    raw_input: str = Field(..., description="原始输入 (关键词或 URL)")
    keyword: str = Field(..., min_length=1, description="搜索关键词")
    geo: str = Field(default="", description="ISO 3166-1 alpha-2，空 = 全球")
    time_range: str = Field(default=DEFAULT_TIME_RANGE, description="时间范围")
    category: int = Field(default=0, ge=0, description="分类 ID, 0 = 全部")
    property_filter: str = Field(default="", description="gprop, 空 = 网页搜索")
    explore_url: str = Field(default="", description="对应的 explore 页面地址")


class WidgetDescriptor(BaseModel):
    """
    单个组件的描述
    request_payload / token 均为不透明值，原样回传，不做解析
    """
    model_config = ConfigDict(frozen=True)

    id: WidgetId
    raw_id: str = ""
    request_payload: str = Field(..., description="组件 request 的 JSON 文本")
    token: str = Field(..., description="组件安全令牌")
    resolution_hint: Optional[ResolutionHint] = None


class _BackendItem(BaseModel):
    """后端原始条目：保留未声明字段，按后端字段名输出"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class TimelinePoint(_BackendItem):
    """时间序列中的一个点"""
    time: str = ""
    formatted_time: Optional[str] = Field(default=None, alias="formattedTime")
    formatted_axis_time: Optional[str] = Field(default=None, alias="formattedAxisTime")
    value: List[Number] = Field(default_factory=list)
    formatted_value: List[str] = Field(default_factory=list, alias="formattedValue")
    has_data: List[bool] = Field(default_factory=list, alias="hasData")
    is_partial: Optional[bool] = Field(default=None, alias="isPartial")


class GeoMapItem(_BackendItem):
    """地理分布中的一个地区/城市"""
    geo_code: Optional[str] = Field(default=None, alias="geoCode")
    geo_name: str = Field(default="", alias="geoName")
    value: List[Number] = Field(default_factory=list)
    formatted_value: List[str] = Field(default_factory=list, alias="formattedValue")
    max_value_index: Optional[int] = Field(default=None, alias="maxValueIndex")
    has_data: List[bool] = Field(default_factory=list, alias="hasData")
    coordinates: Optional[Dict[str, Any]] = None


class RankedKeywordItem(_BackendItem):
    """相关搜索/话题列表中的一项"""
    keyword: str = ""
    formatted_value: str = Field(default="", alias="formattedValue")
    has_data: bool = Field(default=True, alias="hasData")
    value: Optional[Number] = None
    link: Optional[str] = None
    query: Optional[str] = None
    topic: Optional[Dict[str, Any]] = None

    @model_validator(mode="before")
    @classmethod
    def _fill_keyword(cls, data: Any) -> Any:
        # 查询列表用 query，话题列表用 topic.title
        if isinstance(data, dict) and not data.get("keyword"):
            topic = data.get("topic") if isinstance(data.get("topic"), dict) else {}
            data = {**data, "keyword": data.get("query") or topic.get("title") or ""}
        return data

    @field_validator("formatted_value", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return "" if value is None else str(value)


class NormalizedRecord(BaseModel):
    """
    每个查询的最终输出记录
    所有列表字段默认为空列表，下游无需判断字段是否存在
    """
    model_config = ConfigDict(populate_by_name=True)

    input_url_or_term: str = Field(..., alias="inputUrlOrTerm")
    search_term: str = Field(..., alias="searchTerm")
    geo: str = WORLDWIDE
    time_range: str = Field(default=DEFAULT_TIME_RANGE, alias="timeRange")
    interest_over_time: List[TimelinePoint] = Field(
        default_factory=list, alias="interestOverTime_timelineData"
    )
    interest_over_time_averages: List[Any] = Field(
        default_factory=list, alias="interestOverTime_averages"
    )
    interest_by_subregion: List[GeoMapItem] = Field(default_factory=list, alias="interestBySubregion")
    interest_by_city: List[GeoMapItem] = Field(default_factory=list, alias="interestByCity")
    interest_by: List[GeoMapItem] = Field(default_factory=list, alias="interestBy")
    related_topics_top: List[RankedKeywordItem] = Field(default_factory=list, alias="relatedTopics_top")
    related_topics_rising: List[RankedKeywordItem] = Field(default_factory=list, alias="relatedTopics_rising")
    related_queries_top: List[RankedKeywordItem] = Field(default_factory=list, alias="relatedQueries_top")
    related_queries_rising: List[RankedKeywordItem] = Field(default_factory=list, alias="relatedQueries_rising")

    def to_output(self) -> Dict[str, Any]:
        """按输出字段名导出为 JSON 兼容的 dict"""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ItemReport(BaseModel):
    """单个条目的处理报告"""
    index: int
    raw_input: str
    search_term: Optional[str] = None
    state: ItemState = ItemState.PENDING
    transitions: List[ItemState] = Field(default_factory=lambda: [ItemState.PENDING])
    cause: Optional[str] = None
    degraded_widgets: Dict[str, str] = Field(default_factory=dict)
    cooldown_applied: bool = False

    def advance(self, state: ItemState) -> None:
        self.state = state
        self.transitions.append(state)

    @property
    def emitted(self) -> bool:
        return self.state == ItemState.EMITTED


class RunSummary(BaseModel):
    """整次运行的汇总"""
    total_items: int = 0
    processed: int = 0
    reports: List[ItemReport] = Field(default_factory=list)

    @property
    def emitted(self) -> int:
        return sum(1 for report in self.reports if report.state == ItemState.EMITTED)

    @property
    def skipped(self) -> int:
        return sum(1 for report in self.reports if report.state == ItemState.SKIPPED)


class RunInput(BaseModel):
    """运行输入 (字段名与输入 JSON 一致)"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    search_terms: List[str] = Field(default_factory=list, alias="searchTerms")
    start_urls: List[Union[str, Dict[str, Any]]] = Field(default_factory=list, alias="startUrls")
    geo: str = ""
    time_range: str = Field(default=DEFAULT_TIME_RANGE, alias="timeRange")
    custom_time_range: str = Field(default="", alias="customTimeRange")
    category: int = Field(default=0, ge=0)
    property_filter: str = Field(default="", alias="property")
    is_multiple: bool = Field(default=False, alias="isMultiple")
    max_items: int = Field(default=0, ge=0, alias="maxItems")
    max_request_retries: int = Field(default=5, ge=1, alias="maxRequestRetries")
    proxy_configuration: Optional[Dict[str, Any]] = Field(default=None, alias="proxyConfiguration")

    @field_validator("geo", "custom_time_range", "property_filter", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> str:
        return str(value or "").strip()

    @field_validator("time_range", mode="before")
    @classmethod
    def _known_time_range(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            return DEFAULT_TIME_RANGE
        if text not in TIME_RANGES:
            raise ValueError(f"unsupported timeRange '{text}', expected one of {', '.join(TIME_RANGES)}")
        return text

    @field_validator("property_filter")
    @classmethod
    def _known_property(cls, value: str) -> str:
        if value not in SEARCH_PROPERTIES:
            raise ValueError(f"unsupported property '{value}'")
        return value

    @property
    def effective_time_range(self) -> str:
        return self.custom_time_range or self.time_range

    @property
    def proxy_url(self) -> Optional[str]:
        """从 proxyConfiguration 中取第一个代理地址"""
        proxy = self.proxy_configuration or {}
        urls = proxy.get("proxyUrls") or []
        if urls:
            return str(urls[0])
        return proxy.get("proxyUrl") or None
