"""
Record Assembler
合并查询与各组件结果，生成最终输出记录
"""
from dataclasses import dataclass

from models import DEFAULT_TIME_RANGE, WORLDWIDE, NormalizedRecord, QueryDescriptor
from scrapers.widget_fetcher import FetchedWidgets
from .classifier import GeoBuckets, RelatedBuckets


@dataclass(frozen=True)
class AssembledRecord:
    record: NormalizedRecord
    has_data: bool


def assemble_record(
    query: QueryDescriptor,
    fetched: FetchedWidgets,
    topics: RelatedBuckets,
    queries: RelatedBuckets,
    geo: GeoBuckets,
) -> AssembledRecord:
    """
    组装记录 (纯函数)

    has_data 仅供编排器决定是否输出：时间序列、top 话题、top 查询任一非空即为真。
    """
    record = NormalizedRecord(
        input_url_or_term=query.raw_input,
        search_term=query.keyword,
        geo=query.geo or WORLDWIDE,
        time_range=query.time_range or DEFAULT_TIME_RANGE,
        interest_over_time=list(fetched.timeline),
        interest_over_time_averages=list(fetched.averages),
        interest_by_subregion=list(geo.subregion),
        interest_by_city=list(geo.city),
        interest_by=list(geo.country),
        related_topics_top=list(topics.top),
        related_topics_rising=list(topics.rising),
        related_queries_top=list(queries.top),
        related_queries_rising=list(queries.rising),
    )
    has_data = bool(record.interest_over_time or record.related_topics_top or record.related_queries_top)
    return AssembledRecord(record=record, has_data=has_data)
