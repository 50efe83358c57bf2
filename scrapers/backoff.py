"""
Backoff Policy
重试退避、条目间延迟与冷却策略 (纯函数，不做任何 I/O)
"""
from dataclasses import dataclass
from enum import Enum
import random
from typing import Optional

from config.settings import BackoffSettings
from utils.exceptions import BlockedError, MalformedResponseError


class FailureKind(str, Enum):
    """失败类型，决定退避力度"""
    NETWORK = "network"
    BLOCKED = "blocked"
    MALFORMED = "malformed"


def failure_kind(error: Optional[BaseException]) -> FailureKind:
    if isinstance(error, BlockedError):
        return FailureKind.BLOCKED
    if isinstance(error, MalformedResponseError):
        return FailureKind.MALFORMED
    return FailureKind.NETWORK


@dataclass(frozen=True)
class DelaySpec:
    """延迟描述：base + U(0, jitter) 秒"""
    base: float
    jitter: float = 0.0

    def sample(self, rng: Optional[random.Random] = None) -> float:
        rng = rng or random
        jitter = rng.uniform(0.0, self.jitter) if self.jitter > 0 else 0.0
        return max(0.0, self.base + jitter)


@dataclass(frozen=True)
class BackoffPolicy:
    """
    退避策略

    - 重试延迟随尝试次数线性增长
    - 检测到拦截时使用明显更大的基数
    - 解析失败后的冷却远长于普通条目间延迟
    """
    network_base: float = 2.0
    blocked_base: float = 10.0
    jitter_ratio: float = 0.5
    inter_item_base: float = 3.0
    inter_item_jitter: float = 2.0
    cooldown_base: float = 30.0
    cooldown_jitter: float = 15.0
    inter_fetch_base: float = 0.5
    inter_fetch_jitter: float = 1.0

    @classmethod
    def from_settings(cls, settings: BackoffSettings) -> "BackoffPolicy":
        return cls(
            network_base=settings.network_base,
            blocked_base=settings.blocked_base,
            jitter_ratio=settings.jitter_ratio,
            inter_item_base=settings.inter_item_base,
            inter_item_jitter=settings.inter_item_jitter,
            cooldown_base=settings.cooldown_base,
            cooldown_jitter=settings.cooldown_jitter,
            inter_fetch_base=settings.inter_fetch_base,
            inter_fetch_jitter=settings.inter_fetch_jitter,
        )

    def retry_delay(self, attempt: int, kind: FailureKind) -> DelaySpec:
        """
        第 attempt 次尝试失败后的等待

        Args:
            attempt: 已完成的尝试次数 (从 1 开始)
            kind: 最近一次失败的类型
        """
        step = max(1, int(attempt))
        base = self.blocked_base if kind == FailureKind.BLOCKED else self.network_base
        delay = base * step
        return DelaySpec(base=delay, jitter=delay * max(0.0, self.jitter_ratio))

    def inter_item_delay(self) -> DelaySpec:
        return DelaySpec(base=self.inter_item_base, jitter=self.inter_item_jitter)

    def cooldown_delay(self) -> DelaySpec:
        return DelaySpec(base=self.cooldown_base, jitter=self.cooldown_jitter)

    def inter_fetch_delay(self) -> DelaySpec:
        return DelaySpec(base=self.inter_fetch_base, jitter=self.inter_fetch_jitter)
