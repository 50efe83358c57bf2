"""
Tests for backoff policy and the retrying transport
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import BackoffSettings
import scrapers.transport as transport_module
from scrapers import BackoffPolicy, FailureKind, HttpRequest, RetryingTransport, failure_kind
from utils.exceptions import (
    BlockedError,
    ConfigurationError,
    MalformedResponseError,
    NetworkError,
)
from trends_fakes import EXPLORE, BASE_URL, FakeSession, RecordingSleep, html_page, ok, seeded_rng


REQUEST = HttpRequest(url=f"{BASE_URL}{EXPLORE}", params={"hl": "en-US"}, label="explore")


class TestBackoffPolicy:
    """退避策略测试"""

    def test_failure_kind_mapping(self):
        assert failure_kind(BlockedError("x")) == FailureKind.BLOCKED
        assert failure_kind(MalformedResponseError("x")) == FailureKind.MALFORMED
        assert failure_kind(NetworkError("x")) == FailureKind.NETWORK
        assert failure_kind(None) == FailureKind.NETWORK

    def test_retry_delay_is_linear(self):
        policy = BackoffPolicy()
        first = policy.retry_delay(1, FailureKind.NETWORK)
        third = policy.retry_delay(3, FailureKind.NETWORK)
        assert first.base == 2.0
        assert third.base == 6.0
        assert third.jitter == pytest.approx(third.base * 0.5)

    def test_blocked_backoff_is_larger(self):
        policy = BackoffPolicy()
        for attempt in range(1, 5):
            blocked = policy.retry_delay(attempt, FailureKind.BLOCKED)
            network = policy.retry_delay(attempt, FailureKind.NETWORK)
            assert blocked.base > network.base

    def test_cooldown_exceeds_inter_item_delay(self):
        policy = BackoffPolicy()
        assert policy.cooldown_delay().base > policy.inter_item_delay().base + policy.inter_item_delay().jitter

    def test_sample_stays_within_bounds(self):
        spec = BackoffPolicy().inter_item_delay()
        rng = seeded_rng()
        for _ in range(50):
            value = spec.sample(rng)
            assert spec.base <= value <= spec.base + spec.jitter

    def test_malformed_uses_network_base(self):
        assert BackoffPolicy().retry_delay(2, FailureKind.MALFORMED).base == 4.0

    def test_from_settings(self):
        policy = BackoffPolicy.from_settings(BackoffSettings(network_base=1.0, blocked_base=7.0))
        assert policy.retry_delay(2, FailureKind.BLOCKED).base == 14.0


class TestRetryingTransport:
    """重试传输测试"""

    @pytest.mark.asyncio
    async def test_success_after_k_failures_uses_k_plus_one_attempts(self):
        session = FakeSession({EXPLORE: [
            NetworkError("connection reset"),
            html_page(),
            ok({"widgets": []}),
        ]})
        sleep = RecordingSleep()
        transport = RetryingTransport(session, max_retries=5, sleep=sleep, rng=seeded_rng())

        data = await transport.execute(REQUEST)

        assert data == {"widgets": []}
        assert len(session.requests) == 3
        assert len(sleep.delays) == 2
        # 第一次是网络错误，第二次是拦截
        assert 2.0 <= sleep.delays[0] <= 3.0
        assert 20.0 <= sleep.delays[1] <= 30.0

    @pytest.mark.asyncio
    async def test_exhaustion_raises_last_failure(self):
        session = FakeSession({EXPLORE: [NetworkError("timeout"), html_page()]})
        sleep = RecordingSleep()
        transport = RetryingTransport(session, max_retries=3, sleep=sleep, rng=seeded_rng())

        with pytest.raises(BlockedError):
            await transport.execute(REQUEST)

        assert len(session.requests) == 3
        assert len(sleep.delays) == 2

    @pytest.mark.asyncio
    async def test_single_attempt_does_not_sleep(self):
        session = FakeSession({EXPLORE: [NetworkError("down")]})
        sleep = RecordingSleep()
        transport = RetryingTransport(session, max_retries=1, sleep=sleep)

        with pytest.raises(NetworkError):
            await transport.execute(REQUEST)

        assert len(session.requests) == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_malformed_body_is_retried(self):
        session = FakeSession({EXPLORE: [ok({}, prefix=")]}'\n{broken"), ok({"ok": True})]})
        transport = RetryingTransport(session, max_retries=2, sleep=RecordingSleep())

        assert await transport.execute(REQUEST) == {"ok": True}
        assert len(session.requests) == 2

    @pytest.mark.asyncio
    async def test_unexpected_errors_are_not_retried(self):
        session = FakeSession({EXPLORE: [ValueError("bug")]})
        transport = RetryingTransport(session, max_retries=5, sleep=RecordingSleep())

        with pytest.raises(ValueError):
            await transport.execute(REQUEST)
        assert len(session.requests) == 1

    @pytest.mark.asyncio
    async def test_retry_log_names_the_request(self, monkeypatch):
        messages = []

        class _RecordingLogger:
            def warning(self, message):
                messages.append(message)

        monkeypatch.setattr(transport_module, "logger", _RecordingLogger())
        session = FakeSession({EXPLORE: [NetworkError("reset"), ok({"widgets": []})]})
        transport = RetryingTransport(session, max_retries=2, sleep=RecordingSleep())

        await transport.execute(REQUEST)

        assert len(messages) == 1
        assert messages[0].startswith("[explore] attempt 1/2 failed (network)")

    def test_max_retries_below_one_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            RetryingTransport(FakeSession(), max_retries=0)
