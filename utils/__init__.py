"""
Utils Module
通用工具函数
"""
from .logger import setup_logger, setup_package_logging, get_logger
from .exceptions import (
    TrendsScraperError,
    ConfigurationError,
    InvalidQueryError,
    AcquisitionError,
    BlockedError,
    MalformedResponseError,
    NetworkError,
)

__all__ = [
    "setup_logger",
    "setup_package_logging",
    "get_logger",
    "TrendsScraperError",
    "ConfigurationError",
    "InvalidQueryError",
    "AcquisitionError",
    "BlockedError",
    "MalformedResponseError",
    "NetworkError",
]
