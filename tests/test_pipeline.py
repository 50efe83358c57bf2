"""
End-to-end tests for the per-item pipeline (fake session, no network)
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import Settings
from models import ItemState, RunInput
from orchestrator import TrendsPipeline
from scrapers import BackoffPolicy
from storage import MemoryDatasetSink
from utils.exceptions import ConfigurationError
from trends_fakes import (
    EXPLORE,
    MULTILINE,
    RELATED,
    FakeSession,
    RecordingSleep,
    explore_payload,
    happy_routes,
    html_page,
    ok,
    seeded_rng,
)


POLICY = BackoffPolicy()


def _upper(spec):
    return spec.base + spec.jitter


def _pipeline(run_input: dict, session: FakeSession, sleep: RecordingSleep = None, **kwargs):
    sink = MemoryDatasetSink()
    pipeline = TrendsPipeline(
        RunInput.model_validate(run_input),
        sink,
        session=session,
        settings=Settings(),
        policy=POLICY,
        sleep=sleep or RecordingSleep(),
        rng=seeded_rng(),
        show_summary=False,
        **kwargs,
    )
    return pipeline, sink


class TestTrendsPipeline:
    """流水线状态机测试"""

    @pytest.mark.asyncio
    async def test_coffee_us_emits_one_complete_record(self):
        session = FakeSession(happy_routes())
        pipeline, sink = _pipeline(
            {"searchTerms": ["coffee"], "geo": "US", "timeRange": "today 12-m"},
            session,
        )

        summary = await pipeline.run()

        assert summary.emitted == 1
        assert len(sink.items) == 1
        record = sink.items[0]
        assert record["inputUrlOrTerm"] == "coffee"
        assert record["searchTerm"] == "coffee"
        assert record["geo"] == "US"
        assert record["timeRange"] == "today 12-m"
        assert len(record["interestOverTime_timelineData"]) == 2
        assert [item["geoName"] for item in record["interestBy"]] == ["Hawaii", "Washington"]
        assert record["interestBySubregion"] == []
        assert record["interestByCity"] == []
        assert record["relatedTopics_top"][0]["topic"]["title"] == "Coffee"
        assert record["relatedTopics_rising"][0]["formattedValue"] == "+3,250%"
        assert [item["query"] for item in record["relatedQueries_top"]] == ["coffee near me", "coffee shop"]
        assert record["relatedQueries_rising"][0]["formattedValue"] == "Breakout"

        report = summary.reports[0]
        assert report.transitions == [
            ItemState.PENDING,
            ItemState.RESOLVING,
            ItemState.FETCHING,
            ItemState.CLASSIFYING,
            ItemState.ASSEMBLING,
            ItemState.EMITTED,
        ]
        assert session.open_count == 1
        assert session.close_count == 1

    @pytest.mark.asyncio
    async def test_region_resolution_populates_subregion(self):
        session = FakeSession(happy_routes(geo_resolution="REGION"))
        pipeline, sink = _pipeline({"searchTerms": ["coffee"], "geo": "US"}, session)

        await pipeline.run()

        record = sink.items[0]
        assert len(record["interestBySubregion"]) == 2
        assert record["interestBy"] == []
        assert record["interestByCity"] == []

    @pytest.mark.asyncio
    async def test_blocked_resolver_skips_item_and_cools_down(self):
        routes = happy_routes()
        routes[EXPLORE] = [html_page(), html_page(), html_page(), ok({"widgets": []})]
        session = FakeSession(routes)
        sleep = RecordingSleep()
        pipeline, sink = _pipeline(
            {"searchTerms": ["coffee", "tea"], "maxRequestRetries": 3},
            session,
            sleep,
        )

        summary = await pipeline.run()

        first, second = summary.reports
        assert first.transitions == [ItemState.PENDING, ItemState.RESOLVING, ItemState.SKIPPED]
        assert "BlockedError" in first.cause
        assert first.cooldown_applied is True
        assert sink.items == []
        assert session.paths()[:3] == [EXPLORE, EXPLORE, EXPLORE]

        # 2 次重试等待，之后是冷却 + 条目间延迟
        cooldown = sleep.delays[2]
        assert POLICY.cooldown_delay().base <= cooldown <= _upper(POLICY.cooldown_delay())
        assert POLICY.inter_item_delay().base <= sleep.delays[3] <= _upper(POLICY.inter_item_delay())

        # 第二个条目解析成功但没有组件，属于无数据
        assert second.state == ItemState.SKIPPED
        assert second.cause == "no data"
        assert second.cooldown_applied is False

    @pytest.mark.asyncio
    async def test_no_data_skips_without_cooldown(self):
        session = FakeSession({EXPLORE: [ok({"widgets": []})]})
        sleep = RecordingSleep()
        pipeline, sink = _pipeline({"searchTerms": ["zzqxv", "qqzzv"]}, session, sleep)

        summary = await pipeline.run()

        assert summary.skipped == 2
        assert sink.items == []
        assert [report.cooldown_applied for report in summary.reports] == [False, False]
        # 只有一次条目间延迟，且不是冷却
        assert len(sleep.delays) == 1
        assert sleep.delays[0] <= _upper(POLICY.inter_item_delay())

    @pytest.mark.asyncio
    async def test_invalid_item_skipped_without_network(self):
        session = FakeSession(happy_routes())
        pipeline, sink = _pipeline({"searchTerms": ["   ", "coffee"]}, session)

        summary = await pipeline.run()

        invalid = summary.reports[0]
        assert invalid.transitions == [ItemState.PENDING, ItemState.SKIPPED]
        assert "Empty search term" in invalid.cause
        assert summary.reports[1].state == ItemState.EMITTED
        assert session.paths().count(EXPLORE) == 1
        assert len(sink.items) == 1

    @pytest.mark.asyncio
    async def test_max_items_caps_processing(self):
        session = FakeSession(happy_routes())
        pipeline, sink = _pipeline({"searchTerms": ["a", "b", "c"], "maxItems": 2}, session)

        summary = await pipeline.run()

        assert summary.total_items == 2
        assert summary.processed == 2
        assert [report.raw_input for report in summary.reports] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_degraded_widget_still_emits(self):
        routes = happy_routes()
        routes[MULTILINE] = [html_page(path=MULTILINE)]
        session = FakeSession(routes)
        pipeline, sink = _pipeline({"searchTerms": ["coffee"], "maxRequestRetries": 1}, session)

        summary = await pipeline.run()

        report = summary.reports[0]
        assert report.state == ItemState.EMITTED
        assert "TIMESERIES" in report.degraded_widgets
        assert sink.items[0]["interestOverTime_timelineData"] == []
        assert len(sink.items[0]["relatedQueries_top"]) == 2

    @pytest.mark.asyncio
    async def test_no_delay_after_last_item(self):
        session = FakeSession(happy_routes())
        sleep = RecordingSleep()
        pipeline, _ = _pipeline({"searchTerms": ["coffee"]}, session, sleep, concurrent_widgets=True)

        await pipeline.run()

        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_zero_items_is_configuration_error(self):
        session = FakeSession(happy_routes())
        pipeline, _ = _pipeline({"searchTerms": [], "startUrls": []}, session)

        with pytest.raises(ConfigurationError):
            await pipeline.run()
        assert session.requests == []
        assert session.open_count == 0

    @pytest.mark.asyncio
    async def test_unexpected_error_skips_item_and_run_continues(self):
        routes = happy_routes()
        routes[EXPLORE] = [RuntimeError("boom"), ok(explore_payload())]
        session = FakeSession(routes)
        sleep = RecordingSleep()
        pipeline, sink = _pipeline({"searchTerms": ["coffee", "tea"]}, session, sleep)

        summary = await pipeline.run()

        first, second = summary.reports
        assert first.state == ItemState.SKIPPED
        assert "RuntimeError" in first.cause
        assert first.cooldown_applied is False
        assert second.state == ItemState.EMITTED
        assert len(sink.items) == 1
        assert summary.processed == 2
        # 跳过的条目之后仍然等待条目间隔
        inter_item = POLICY.inter_item_delay()
        assert inter_item.base <= sleep.delays[0] <= _upper(inter_item)
        assert session.open_count == 1
        assert session.close_count == 1
        assert session.acquired is False

    @pytest.mark.asyncio
    async def test_scalar_widget_fields_degrade_every_item(self):
        routes = happy_routes()
        routes[MULTILINE] = [ok({"default": {"timelineData": 5}}, path=MULTILINE)]
        routes["tok-rq"] = [ok({"default": {"rankedList": [{"rankedKeyword": 3}]}}, path=RELATED)]
        session = FakeSession(routes)
        pipeline, sink = _pipeline({"searchTerms": ["coffee", "tea"]}, session)

        summary = await pipeline.run()

        assert [report.state for report in summary.reports] == [ItemState.EMITTED, ItemState.EMITTED]
        for report in summary.reports:
            assert set(report.degraded_widgets) == {"TIMESERIES", "RELATED_QUERIES"}
        assert len(sink.items) == 2
        assert sink.items[0]["interestOverTime_timelineData"] == []
        assert len(sink.items[0]["relatedTopics_top"]) == 1
        assert sink.items[1]["relatedQueries_top"] == []
