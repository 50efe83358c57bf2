"""
Base Session Provider
会话提供者抽象基类：持有 cookie / 指纹 / 代理身份，对核心逻辑完全不透明
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import asyncio
import logging
import time


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpRequest:
    """一次逻辑请求"""
    url: str
    params: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    label: str = ""


@dataclass(frozen=True)
class HttpResponse:
    """原始响应，解码交给 ResponseCodec"""
    status_code: int
    text: str
    url: str = ""


class BaseSessionProvider(ABC):
    """
    会话提供者抽象基类

    生命周期: acquire -> request* -> release
    整次运行共用一个会话，核心逻辑从不读取或修改其内部状态
    """

    def __init__(self):
        self._acquired = False

    @property
    @abstractmethod
    def name(self) -> str:
        """返回提供者名称"""
        pass

    @abstractmethod
    async def _open(self) -> None:
        """建立底层会话"""
        pass

    @abstractmethod
    async def _close(self) -> None:
        """释放底层会话"""
        pass

    @abstractmethod
    async def _send(self, request: HttpRequest) -> HttpResponse:
        """
        发送一次请求

        Raises:
            NetworkError: 传输层失败
        """
        pass

    @property
    def acquired(self) -> bool:
        return self._acquired

    async def acquire(self) -> None:
        if self._acquired:
            return
        await self._open()
        self._acquired = True
        logger.debug(f"[{self.name}] session acquired")

    async def release(self) -> None:
        if not self._acquired:
            return
        try:
            await self._close()
        finally:
            self._acquired = False
            logger.debug(f"[{self.name}] session released")

    async def request(self, request: HttpRequest) -> HttpResponse:
        if not self._acquired:
            await self.acquire()
        return await self._send(request)

    async def __aenter__(self):
        """异步上下文管理器入口"""
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """异步上下文管理器出口"""
        await self.release()


class RateLimitedSessionProvider(BaseSessionProvider):
    """
    带速率限制的会话提供者
    同一会话上的相邻请求之间保持最小间隔
    """

    def __init__(self, requests_per_second: float = 1.0):
        super().__init__()
        self._rate_limit = requests_per_second
        self._last_request_time = 0.0
        self._lock = asyncio.Lock()

    async def _wait_for_rate_limit(self):
        """等待满足速率限制"""
        async with self._lock:
            current_time = time.monotonic()
            time_since_last = current_time - self._last_request_time
            min_interval = 1.0 / self._rate_limit

            if time_since_last < min_interval:
                await asyncio.sleep(min_interval - time_since_last)

            self._last_request_time = time.monotonic()

    async def request(self, request: HttpRequest) -> HttpResponse:
        await self._wait_for_rate_limit()
        return await super().request(request)
