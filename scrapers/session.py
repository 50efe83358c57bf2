"""
HTTPX Session Provider
基于 httpx.AsyncClient 的会话提供者：浏览器请求头、cookie 复用、可选代理
"""
from typing import Dict, Optional
import logging

import httpx

from .base import HttpRequest, HttpResponse, RateLimitedSessionProvider
from config import TrendsSettings, get_settings
from utils.exceptions import NetworkError


logger = logging.getLogger(__name__)


class HttpxSessionProvider(RateLimitedSessionProvider):
    """
    httpx 会话提供者

    - 获取会话时先访问 Trends 首页，拿到 NID 等 cookie
    - 所有请求共用同一个 AsyncClient (cookie jar / 代理身份)
    - 传输层异常统一转换为 NetworkError
    """

    def __init__(
        self,
        settings: Optional[TrendsSettings] = None,
        proxy_url: Optional[str] = None,
        timeout: Optional[float] = None,
        requests_per_second: float = 2.0,
    ):
        super().__init__(requests_per_second=requests_per_second)
        app_settings = get_settings()
        self._settings = settings or app_settings.trends
        self._proxy_url = proxy_url or self._settings.proxy_url
        self._timeout = float(timeout or app_settings.general.request_timeout)
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def name(self) -> str:
        return "httpx"

    def _get_headers(self) -> Dict[str, str]:
        """获取请求头"""
        return {
            "User-Agent": self._settings.user_agent,
            "Accept": "application/json, text/plain, */*",
            "Accept-Language": f"{self._settings.hl},en;q=0.9",
            "Referer": f"{self._settings.base_url}/trends/explore",
        }

    async def _open(self) -> None:
        kwargs = {}
        if self._proxy_url:
            kwargs["proxy"] = self._proxy_url
        self._client = httpx.AsyncClient(
            headers=self._get_headers(),
            timeout=httpx.Timeout(self._timeout),
            follow_redirects=True,
            **kwargs,
        )
        logger.info("Using proxy for Trends session" if self._proxy_url else "No proxy configured")
        if self._settings.seed_cookies:
            await self._seed_cookies()

    async def _seed_cookies(self) -> None:
        """访问首页以获得会话 cookie，失败不影响后续请求"""
        try:
            response = await self._client.get(
                f"{self._settings.base_url}/trends/",
                params={"geo": "US"},
                headers={"Accept": "text/html,application/xhtml+xml,*/*;q=0.8"},
            )
            logger.debug(f"Seeded {len(response.cookies)} cookie(s), HTTP {response.status_code}")
        except httpx.HTTPError as e:
            logger.warning(f"Cookie seeding failed, continuing without cookies: {e}")

    async def _close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _send(self, request: HttpRequest) -> HttpResponse:
        try:
            response = await self._client.get(
                request.url,
                params=request.params,
                headers=request.headers or None,
            )
        except httpx.TimeoutException as e:
            raise NetworkError(f"request timed out: {e}", url=request.url) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"request failed: {e}", url=request.url) from e

        return HttpResponse(
            status_code=response.status_code,
            text=response.text,
            url=str(response.url),
        )
