"""
Response Codec
去除防 JSON 劫持前缀并解码后端响应，识别 HTML/CAPTCHA 拦截页
"""
import json
from typing import Any

from utils.exceptions import BlockedError, MalformedResponseError, NetworkError


# 防 JSON 劫持前缀，按长度从长到短匹配：
# 转义的 "\n" (6 字符)、真实换行 (5 字符)、裸前缀 (4 字符)
SECURITY_PREFIXES = (
    ")]}'\\n",
    ")]}'\n",
    ")]}'",
)

BLOCK_STATUSES = frozenset({403, 429})

# Google 的人机验证中转页
SORRY_PATH_MARKER = "/sorry/"


def strip_security_prefix(body: str) -> str:
    """
    去掉响应开头的安全前缀

    只会去掉三种前缀中匹配到的那一个，不会多删任何字符；
    ")]}'," 变体中前缀后的逗号视为前缀的一部分。
    """
    for prefix in SECURITY_PREFIXES:
        if body.startswith(prefix):
            rest = body[len(prefix):]
            if prefix == ")]}'" and rest.startswith(","):
                rest = rest[1:]
            return rest
    return body


def is_html_body(body: str) -> bool:
    return body.lstrip().startswith("<")


def decode_response(body: str, status: int = 200, url: str = "") -> Any:
    """
    解码一次后端响应

    Args:
        body: 原始响应文本
        status: HTTP 状态码
        url: 最终请求地址 (跟随跳转后)

    Returns:
        解码后的 JSON 数据

    Raises:
        BlockedError: 429/403、/sorry/ 跳转或 HTML 页面
        NetworkError: 其他 HTTP 错误状态
        MalformedResponseError: 无法解码为 JSON
    """
    body = body or ""

    if status in BLOCK_STATUSES:
        raise BlockedError(f"backend refused request with HTTP {status}", status=status, url=url)
    if SORRY_PATH_MARKER in (url or ""):
        raise BlockedError("redirected to CAPTCHA interstitial", status=status, url=url)
    if is_html_body(body):
        raise BlockedError("backend returned an HTML page instead of data", status=status, url=url)
    if status >= 400:
        raise NetworkError(f"backend returned HTTP {status}", status=status, url=url)

    payload = strip_security_prefix(body)
    if is_html_body(payload):
        raise BlockedError("backend returned an HTML page behind the security prefix", status=status, url=url)
    if not payload.strip():
        raise MalformedResponseError("empty response body", status=status, url=url)

    try:
        return json.loads(payload)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(
            f"response is not valid JSON: {e.msg}",
            status=status,
            url=url,
            position=e.pos,
        ) from e
