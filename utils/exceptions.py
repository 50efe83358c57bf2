"""
Custom Exceptions
自定义异常类
"""
from typing import Optional


class TrendsScraperError(Exception):
    """Trends 抓取器基础异常类"""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(TrendsScraperError):
    """配置错误 (输入无效、没有任何待处理条目等)，在主循环开始前终止运行"""
    pass


class InvalidQueryError(TrendsScraperError):
    """查询无效：归一化后关键词为空，不会发出任何网络请求"""

    def __init__(self, message: str, raw_input: str = "", **kwargs):
        super().__init__(message, kwargs)
        self.raw_input = raw_input


class AcquisitionError(TrendsScraperError):
    """
    数据获取错误基类
    所有传输层失败都可由 RetryingTransport 重试
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        url: str = "",
        **kwargs,
    ):
        super().__init__(message, kwargs)
        self.status = status
        self.url = url


class BlockedError(AcquisitionError):
    """被后端拦截：HTML/CAPTCHA 页面、/sorry/ 跳转或 429/403 状态码"""
    pass


class MalformedResponseError(AcquisitionError):
    """响应既不是 前缀+JSON，也不符合预期结构"""
    pass


class NetworkError(AcquisitionError):
    """网络/超时等传输层错误，以及其他 HTTP 错误状态"""
    pass
