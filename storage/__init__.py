"""
Storage Module
存储模块 - 输出数据集
"""
from .dataset import (
    BaseDatasetSink,
    MemoryDatasetSink,
    JsonlDatasetSink,
)

__all__ = [
    "BaseDatasetSink",
    "MemoryDatasetSink",
    "JsonlDatasetSink",
]
