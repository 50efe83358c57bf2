"""
Retrying Transport
带线性退避、随机抖动和拦截检测的请求执行器
"""
from typing import Any, Awaitable, Callable, Optional
import asyncio
import logging
import random

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
)

from .backoff import BackoffPolicy, failure_kind
from .base import BaseSessionProvider, HttpRequest
from .codec import decode_response
from config import get_backoff_settings
from utils.exceptions import AcquisitionError, ConfigurationError


logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]


class RetryingTransport:
    """
    执行一次逻辑请求

    每次尝试：会话发请求 -> ResponseCodec 解码。
    NetworkError / BlockedError / MalformedResponseError 都会消耗一次尝试，
    用尽后原样抛出最后一次失败。不持有任何可变共享状态，可在同一查询的
    多个组件请求间并发使用。
    """

    def __init__(
        self,
        session: BaseSessionProvider,
        max_retries: int = 5,
        policy: Optional[BackoffPolicy] = None,
        sleep: Optional[SleepFn] = None,
        rng: Optional[random.Random] = None,
    ):
        if int(max_retries) < 1:
            raise ConfigurationError("maxRequestRetries must be >= 1", {"max_retries": max_retries})
        self.session = session
        self.max_retries = int(max_retries)
        self.policy = policy or BackoffPolicy.from_settings(get_backoff_settings())
        self._sleep = sleep or asyncio.sleep
        self._rng = rng or random.Random()

    def _wait(self, retry_state: RetryCallState) -> float:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        spec = self.policy.retry_delay(retry_state.attempt_number, failure_kind(error))
        return spec.sample(self._rng)

    def _retry_logger(self, label: str) -> Callable[[RetryCallState], None]:
        def log_retry(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            wait = retry_state.next_action.sleep if retry_state.next_action else 0.0
            logger.warning(
                f"[{label or 'request'}] attempt {retry_state.attempt_number}/{self.max_retries} failed "
                f"({failure_kind(error).value}): {error}; retrying in {wait:.1f}s"
            )
        return log_retry

    async def execute(self, request: HttpRequest) -> Any:
        """
        执行请求并返回解码后的数据

        Raises:
            AcquisitionError: 尝试次数用尽后的最后一次失败
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=self._wait,
            retry=retry_if_exception_type(AcquisitionError),
            sleep=self._sleep,
            before_sleep=self._retry_logger(request.label),
            reraise=True,
        )

        result: Any = None
        async for attempt in retrying:
            with attempt:
                response = await self.session.request(request)
                result = decode_response(response.text, response.status_code, response.url)
        return result
