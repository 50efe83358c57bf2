"""
Trends Pipeline
逐条目驱动 解析 -> 抓取 -> 分类 -> 组装 -> 输出
"""
import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, List, Optional

from rich.console import Console
from rich.table import Table

from config import Settings, get_settings
from models import ItemReport, ItemState, RunInput, RunSummary
from processing import (
    QueryDefaults,
    assemble_record,
    classify_related,
    expand_input_items,
    normalize_query,
    route_geo,
)
from scrapers import (
    BackoffPolicy,
    BaseSessionProvider,
    HttpxSessionProvider,
    RetryingTransport,
    WidgetFetcher,
    WidgetResolver,
)
from storage import BaseDatasetSink
from utils.exceptions import AcquisitionError, ConfigurationError, InvalidQueryError


logger = logging.getLogger(__name__)
console = Console()

SleepFn = Callable[[float], Awaitable[Any]]


class TrendsPipeline:
    """
    采集流水线

    条目严格串行处理；单个条目的失败只影响该条目。
    会话在整次运行中只获取一次，结束时 (包括出错) 释放。
    """

    def __init__(
        self,
        run_input: RunInput,
        sink: BaseDatasetSink,
        session: Optional[BaseSessionProvider] = None,
        settings: Optional[Settings] = None,
        policy: Optional[BackoffPolicy] = None,
        sleep: Optional[SleepFn] = None,
        rng: Optional[random.Random] = None,
        concurrent_widgets: bool = False,
        show_summary: bool = True,
    ):
        """
        初始化流水线

        Args:
            run_input: 已校验的运行输入
            sink: 输出数据集
            session: 会话提供者，默认按配置创建 httpx 会话
            settings: 应用配置
            policy: 退避策略，默认取自配置
            sleep / rng: 可注入的等待函数与随机源 (测试用)
            concurrent_widgets: 同一条目内的组件是否并发抓取
            show_summary: 结束时是否打印汇总表
        """
        self.run_input = run_input
        self.sink = sink
        self.settings = settings or get_settings()
        self.policy = policy or BackoffPolicy.from_settings(self.settings.backoff)
        self.session = session or HttpxSessionProvider(
            settings=self.settings.trends,
            proxy_url=run_input.proxy_url,
        )
        self.concurrent_widgets = concurrent_widgets
        self.show_summary = show_summary
        self._sleep = sleep or asyncio.sleep
        self._rng = rng or random.Random()

        max_retries = run_input.max_request_retries
        if "max_request_retries" not in run_input.model_fields_set:
            max_retries = self.settings.general.max_retries

        self.transport = RetryingTransport(
            self.session,
            max_retries=max_retries,
            policy=self.policy,
            sleep=self._sleep,
            rng=self._rng,
        )
        self.resolver = WidgetResolver(self.transport, settings=self.settings.trends)
        self.fetcher = WidgetFetcher(
            self.transport,
            settings=self.settings.trends,
            policy=self.policy,
            sleep=self._sleep,
            rng=self._rng,
        )

    def build_items(self) -> List[str]:
        """生成待处理条目，并应用 maxItems 上限"""
        items = expand_input_items(
            self.run_input.search_terms,
            self.run_input.start_urls,
            is_multiple=self.run_input.is_multiple,
        )
        if not items:
            raise ConfigurationError("Either searchTerms or startUrls must be provided")
        if self.run_input.max_items > 0:
            items = items[: self.run_input.max_items]
        return items

    async def run(self) -> RunSummary:
        """
        执行整次运行

        Returns:
            RunSummary

        Raises:
            ConfigurationError: 没有可处理的条目
        """
        items = self.build_items()
        defaults = QueryDefaults.from_run_input(self.run_input, hl=self.settings.trends.hl)
        summary = RunSummary(total_items=len(items))

        logger.info(f"Processing {len(items)} item(s)")
        await self.session.acquire()
        try:
            for index, raw in enumerate(items):
                report = ItemReport(index=index, raw_input=str(raw))
                try:
                    needs_cooldown = await self.process_item(report, raw, defaults)
                except Exception as e:
                    logger.error(f"Unexpected failure on item #{index + 1} ('{raw}'): {type(e).__name__}: {e}")
                    report.cause = f"{type(e).__name__}: {e}"
                    report.advance(ItemState.SKIPPED)
                    needs_cooldown = False
                summary.reports.append(report)
                summary.processed += 1

                if index == len(items) - 1:
                    break
                if needs_cooldown:
                    cooldown = self.policy.cooldown_delay().sample(self._rng)
                    logger.warning(f"Cooling down for {cooldown:.1f}s after resolver failure")
                    report.cooldown_applied = True
                    await self._sleep(cooldown)
                await self._sleep(self.policy.inter_item_delay().sample(self._rng))
        finally:
            await self.session.release()

        logger.info(
            f"Run finished: {summary.emitted} emitted, {summary.skipped} skipped "
            f"of {summary.processed} processed"
        )
        if self.show_summary:
            self._print_summary(summary)
        return summary

    async def process_item(self, report: ItemReport, raw: str, defaults: QueryDefaults) -> bool:
        """
        处理单个条目，状态迁移记录在 report 上

        Returns:
            是否需要在下一条目前冷却
        """
        index = report.index

        query = normalize_query(raw, defaults)
        if query is None:
            error = InvalidQueryError("Empty search term after normalization", raw_input=str(raw))
            logger.warning(f"Skipping item #{index + 1}: {error}")
            report.cause = str(error)
            report.advance(ItemState.SKIPPED)
            return False

        report.search_term = query.keyword
        logger.info(f"[{index + 1}] '{query.keyword}' geo={query.geo or 'Worldwide'} time={query.time_range}")

        report.advance(ItemState.RESOLVING)
        try:
            widgets = await self.resolver.resolve(query)
        except AcquisitionError as e:
            logger.error(f"Failed to resolve widgets for '{query.keyword}': {e}")
            report.cause = f"{type(e).__name__}: {e}"
            report.advance(ItemState.SKIPPED)
            return True

        report.advance(ItemState.FETCHING)
        fetched = await self.fetcher.fetch_all(widgets, concurrent=self.concurrent_widgets)
        report.degraded_widgets = dict(fetched.failures)

        report.advance(ItemState.CLASSIFYING)
        topics = classify_related(fetched.topic_lists)
        queries = classify_related(fetched.query_lists)
        geo = route_geo(fetched.geo_items, fetched.geo_hint)

        report.advance(ItemState.ASSEMBLING)
        assembled = assemble_record(query, fetched, topics, queries, geo)

        if not assembled.has_data:
            logger.warning(f"No data found for '{query.keyword}', skipping")
            report.cause = "no data"
            report.advance(ItemState.SKIPPED)
            return False

        self.sink.push(assembled.record)
        report.advance(ItemState.EMITTED)
        logger.info(f"✓ Saved data for '{query.keyword}'")
        return False

    def _print_summary(self, summary: RunSummary):
        """打印结果摘要"""
        console.print()

        table = Table(title="📈 Trends Run Summary", show_header=True)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Input", style="cyan")
        table.add_column("State", style="magenta")
        table.add_column("Notes", style="yellow")

        for report in summary.reports:
            notes = report.cause or ""
            if report.degraded_widgets:
                degraded = ", ".join(sorted(report.degraded_widgets))
                notes = f"{notes}; degraded: {degraded}" if notes else f"degraded: {degraded}"
            state = f"[green]{report.state.value}[/green]" if report.emitted else report.state.value
            table.add_row(str(report.index + 1), report.search_term or report.raw_input, state, notes)

        table.add_row("", "", "", "")
        table.add_row(
            "[bold]Total[/bold]",
            f"[bold]{summary.processed}[/bold]",
            f"[bold]{summary.emitted} emitted / {summary.skipped} skipped[/bold]",
            "",
        )

        console.print(table)
        console.print()
