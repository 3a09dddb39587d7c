"""Typer CLI entrypoint for hotel-watch."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .commands import CommandHandler
from .config import ConfigRepository, GlobalConfig, SourceConfig
from .engine import (
    ChangeDetector,
    Fetcher,
    MemoryStateStore,
    OfferExtractor,
    SQLiteStateStore,
    SourceRegistry,
    SweepResult,
)
from .infra import SQLiteManager
from .logging_conf import available_source_logs, configure_logging, monitor_log_path, tail_log
from .notify import LineDispatcher, NotificationBatcher, SQLiteSubscriberStore, SubscriberRegistry
from .orchestrator import Monitor
from .scheduler import APSchedulerAdapter

app = typer.Typer(
    help="台南飯店優惠監控命令列工具",
    no_args_is_help=True,
    rich_markup_mode=None,
)
source_app = typer.Typer(
    name="source",
    help="監控來源管理命令",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="日誌查看命令",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    config: GlobalConfig
    scheduler: APSchedulerAdapter
    monitor: Monitor
    commands: CommandHandler
    subscribers: SubscriberRegistry
    dispatcher: LineDispatcher
    storage: SQLiteManager

    def close(self) -> None:
        self.scheduler.shutdown()
        self.monitor.fetcher.close()
        self.dispatcher.close()
        self.storage.close_all()


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    config = repository.load_global_config()
    configure_logging(verbose=verbose)
    storage = SQLiteManager()

    if config.state.persist:
        state_path = repository.state_path()
        state_store = SQLiteStateStore(storage, state_path)
        subscribers = SubscriberRegistry(SQLiteSubscriberStore(storage, state_path))
    else:
        state_store = MemoryStateStore()
        subscribers = SubscriberRegistry()
    if config.line.user_id:
        subscribers.subscribe(config.line.user_id)

    registry = SourceRegistry(repository.list_sources(), on_change=repository.save_sources)
    scheduler = APSchedulerAdapter(config.schedule)
    dispatcher = LineDispatcher(config.line, subscribers)
    batcher = NotificationBatcher(
        max_entries=config.monitor.max_notified_offers,
        description_preview=config.monitor.description_preview,
        tz=config.schedule.tzinfo(),
    )
    monitor = Monitor(
        registry=registry,
        fetcher=Fetcher(config.monitor),
        extractor=OfferExtractor(),
        detector=ChangeDetector(state_store),
        batcher=batcher,
        dispatcher=dispatcher,
        settings=config.monitor,
        scheduler=scheduler,
        subscribers=subscribers,
    )
    return AppState(
        repository=repository,
        config=config,
        scheduler=scheduler,
        monitor=monitor,
        commands=CommandHandler(monitor, subscribers),
        subscribers=subscribers,
        dispatcher=dispatcher,
        storage=storage,
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _render_sources_table(sources: Sequence[SourceConfig]) -> Table:
    table = Table(
        title=f"監控來源總覽 · 共 {len(sources)} 個",
        box=box.SIMPLE_HEAD,
        show_lines=False,
    )
    table.add_column("#", style="dim", justify="right")
    table.add_column("名稱", style="cyan", no_wrap=True)
    table.add_column("網址", style="green", overflow="fold")
    table.add_column("區塊選擇器", style="magenta", overflow="fold")
    for index, source in enumerate(sources, start=1):
        table.add_row(str(index), source.name, source.location, source.rule.item_selector)
    return table


def _render_sweep_result(result: SweepResult) -> list[Table]:
    summary = Table(title="檢查結果", box=box.SIMPLE_HEAD)
    summary.add_column("指標", style="cyan")
    summary.add_column("數量", style="green", justify="right")
    summary.add_row("已檢查", str(result.sources_checked))
    summary.add_row("新優惠/價格變動", str(len(result.changed_offers)))
    summary.add_row("失敗", str(result.failure_count))
    summary.add_row("已推播", "是" if result.notified else "否")
    tables = [summary]
    if result.changed_offers:
        offers = Table(title="優惠", box=box.SIMPLE_HEAD)
        offers.add_column("來源", style="cyan", no_wrap=True)
        offers.add_column("標題", overflow="fold")
        offers.add_column("價格", style="yellow")
        for offer in result.changed_offers:
            offers.add_row(offer.source_name, offer.title, offer.price or "-")
        tables.append(offers)
    if result.failures:
        failures = Table(title="失敗來源", box=box.SIMPLE_HEAD)
        failures.add_column("來源", style="cyan", no_wrap=True)
        failures.add_column("類型", style="magenta")
        failures.add_column("原因", style="red", overflow="fold")
        for failure in result.failures:
            failures.add_row(failure.source_name, failure.kind, str(failure.error))
        tables.append(failures)
    return tables


app.add_typer(source_app, name="source", help="管理監控來源（list/add/remove）")
app.add_typer(log_app, name="log", help="查看日誌檔")


@app.callback()
def main(
    ctx: typer.Context, verbose: bool = typer.Option(False, "--verbose", help="開啟除錯日誌")
) -> None:
    ctx.obj = build_state(verbose)


@app.command("serve", help="啟動排程與 LINE webhook 服務。")
def serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="監聽位址（預設取設定檔）。"),
    port: Optional[int] = typer.Option(None, "--port", help="監聽埠號（預設取設定檔或 PORT）。"),
) -> None:
    import uvicorn

    from .webhook import create_app

    state = _get_state(ctx)
    line = state.config.line
    if not line.configured or not line.channel_secret:
        console.print("尚未設定 LINE_CHANNEL_ACCESS_TOKEN / LINE_CHANNEL_SECRET，推播與回覆將失敗。", style="yellow")
    web_app = create_app(state.commands, state.dispatcher, line.channel_secret)
    state.monitor.register_schedules()
    times = ", ".join(state.config.schedule.times)
    console.print(f"⏰ 定時任務已設定：每天 {times} 自動檢查", style="green")
    try:
        uvicorn.run(
            web_app,
            host=host or state.config.webhook.host,
            port=port or state.config.webhook.port,
            log_config=None,
        )
    finally:
        state.close()


@app.command("check", help="立即檢查所有來源一次。")
def check(
    ctx: typer.Context,
    notify: bool = typer.Option(True, "--notify/--no-notify", help="是否推播檢查結果。"),
    quiet: bool = typer.Option(False, "--quiet", help="只輸出精簡結果。"),
) -> None:
    state = _get_state(ctx)
    try:
        result = state.monitor.run_sweep(notify=notify)
    finally:
        state.close()
    if result is None:
        console.print("已有檢查正在進行中。", style="yellow")
        raise typer.Exit(code=1)
    if quiet:
        console.print(
            f"檢查完成：已檢查 {result.sources_checked}，"
            f"變動 {len(result.changed_offers)}，失敗 {result.failure_count}"
        )
        return
    for table in _render_sweep_result(result):
        console.print(table)


@app.command("status", help="查看系統狀態。")
def status(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    current = state.monitor.status()
    table = Table(title="系統狀態", box=box.SIMPLE_HEAD, show_header=False)
    table.add_column("項目", style="cyan")
    table.add_column("值", style="green")
    table.add_row("監控飯店數量", str(current.source_count))
    table.add_row("優惠記錄數量", str(current.observed_offer_count))
    table.add_row("訂閱人數", str(current.subscriber_count))
    table.add_row("自動檢查時間", ", ".join(current.schedule_times) or "-")
    console.print(table)


@source_app.command("list", help="查看監控來源清單。")
def source_list(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    sources = state.monitor.registry.list()
    if not sources:
        console.print("目前沒有監控來源，使用 `hotel-watch source add` 新增。", style="yellow")
        raise typer.Exit(code=0)
    console.print(_render_sources_table(sources))


@source_app.command("add", help="新增監控來源。")
def source_add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="來源名稱。"),
    location: str = typer.Argument(..., help="來源網址。"),
    item_selector: Optional[str] = typer.Option(
        None, "--item-selector", help="優惠區塊 CSS 選擇器（預設使用通用規則）。"
    ),
) -> None:
    from pydantic import ValidationError

    from .config import ExtractionRule

    state = _get_state(ctx)
    try:
        rule = ExtractionRule(item_selector=item_selector) if item_selector else None
        added = state.monitor.registry.add(name, location, rule)
    except ValidationError as exc:
        console.print(f"設定內容無效：{exc.errors()[0]['msg']}", style="red")
        raise typer.Exit(code=1)
    if not added:
        console.print(f"來源 `{name}` 已存在，未做變更。", style="yellow")
        raise typer.Exit(code=0)
    console.print(
        f"來源 `{name}` 已加入，設定檔位於 {state.repository.locator.sources_path()}。",
        style="green",
    )


@source_app.command("remove", help="依完整名稱移除監控來源。")
def source_remove(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="要移除的來源完整名稱。"),
) -> None:
    state = _get_state(ctx)
    if state.monitor.registry.remove(name):
        console.print(f"來源 `{name}` 已移除。", style="green")
        return
    suggestions = state.monitor.registry.suggest(name)
    console.print(f"找不到來源 `{name}`。", style="red")
    if suggestions:
        console.print("您是不是要找：" + ", ".join(suggestions), style="dim")
    raise typer.Exit(code=1)


@log_app.command("list", help="列出各來源的日誌檔。")
def log_list() -> None:
    paths = list(available_source_logs())
    if not paths:
        console.print("目前沒有來源日誌。", style="yellow")
        return
    for path in paths:
        console.print(str(path), soft_wrap=True)


@log_app.command("show", help="顯示日誌最後 N 行。")
def log_show(
    name: Optional[str] = typer.Option(None, "--source", help="來源日誌檔名（不含副檔名），留空顯示全域日誌。"),
    tail: int = typer.Option(100, "--tail", help="顯示最後 N 行。"),
) -> None:
    if name:
        matches = [path for path in available_source_logs() if path.stem == name]
        if not matches:
            console.print(f"找不到來源日誌 `{name}`。", style="red")
            raise typer.Exit(code=1)
        path: Path = matches[0]
    else:
        path = monitor_log_path()
    for line in tail_log(path, tail):
        console.print(line.rstrip("\n"), markup=False, highlight=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
