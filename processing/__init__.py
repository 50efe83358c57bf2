"""
Processing Module
查询归一化、结果分类与记录组装
"""
from .query_normalizer import (
    QueryDefaults,
    expand_input_items,
    normalize_query,
    build_explore_url,
)
from .classifier import (
    RankBucket,
    GeoBucket,
    RelatedBuckets,
    GeoBuckets,
    classify_ranked_list,
    classify_related,
    geo_bucket,
    route_geo,
)
from .assembler import AssembledRecord, assemble_record

__all__ = [
    # Normalizer
    "QueryDefaults",
    "expand_input_items",
    "normalize_query",
    "build_explore_url",
    # Classifier
    "RankBucket",
    "GeoBucket",
    "RelatedBuckets",
    "GeoBuckets",
    "classify_ranked_list",
    "classify_related",
    "geo_bucket",
    "route_geo",
    # Assembler
    "AssembledRecord",
    "assemble_record",
]
