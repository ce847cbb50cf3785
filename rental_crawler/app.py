"""Typer CLI entrypoint for rental-crawler."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigLocator, ConfigRepository, Subscription, sample_config
from .config.loader import CONFIG_FILENAMES
from .errors import ConfigError, StoreError
from .infra import SQLiteManager
from .logging_conf import (
    available_subscription_logs,
    configure_logging,
    main_log_path,
    subscription_log_path,
    tail_log,
)
from .orchestrator import Orchestrator, SubscriptionSummary
from .records import Listing

app = typer.Typer(
    help="rental-crawler 租屋列表监控工具",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="日志查看命令",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    orchestrator: Orchestrator
    storage: SQLiteManager
    verbose: bool = False


def build_state(verbose: bool, config_path: Optional[Path] = None) -> AppState:
    configure_logging(verbose=verbose)
    repository = ConfigRepository(ConfigLocator(config_path=config_path))
    storage = SQLiteManager()
    orchestrator = Orchestrator(repository, storage=storage)
    return AppState(
        repository=repository,
        orchestrator=orchestrator,
        storage=storage,
        verbose=verbose,
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _fail(message: str) -> None:
    console.print(message, style="red")
    raise typer.Exit(code=1)


def _render_subscriptions_table(subscriptions: Sequence[Subscription]) -> Table:
    table = Table(
        title=f"订阅总览 · 共 {len(subscriptions)} 个",
        box=box.SIMPLE_HEAD,
    )
    table.add_column("名称", style="cyan", no_wrap=True)
    table.add_column("搜索页", style="green", overflow="fold")
    table.add_column("排除单卫", style="magenta")
    for subscription in subscriptions:
        table.add_row(
            subscription.name,
            subscription.search_url,
            "是" if subscription.rule_out_single_bathroom else "否",
        )
    return table


def _render_summary_table(summaries: Sequence[SubscriptionSummary]) -> Table:
    table = Table(title="运行结果", box=box.SIMPLE_HEAD)
    table.add_column("订阅", style="cyan", no_wrap=True)
    table.add_column("抓取", justify="right")
    table.add_column("新增", style="green", justify="right")
    table.add_column("重新上架", style="yellow", justify="right")
    table.add_column("跳过", justify="right")
    table.add_column("错误", style="red", overflow="fold")
    for summary in summaries:
        table.add_row(
            summary.name,
            str(summary.extracted),
            str(summary.inserted),
            str(summary.replaced),
            str(summary.rejected),
            summary.error or "",
        )
    return table


def _render_listings_table(listings: Sequence[Listing]) -> Table:
    table = Table(title=f"最近收录 · {len(listings)} 条", box=box.SIMPLE_HEAD)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("标题", overflow="fold")
    table.add_column("格局")
    table.add_column("楼层")
    table.add_column("区域")
    table.add_column("租金", style="green")
    table.add_column("收录时间", style="dim")
    for listing in listings:
        table.add_row(
            listing.external_id,
            listing.title,
            listing.layout,
            listing.floor,
            listing.area,
            listing.price,
            listing.created_at or "",
        )
    return table


app.add_typer(log_app, name="log", help="查看日志文件")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="开启调试日志", is_flag=True),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="配置文件路径（默认搜索 ./config.yaml 与 /config）。"
    ),
) -> None:
    ctx.obj = build_state(verbose, config)


@app.command("init", help="生成示例配置文件。")
def init_config(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", help="覆盖已有配置文件。", is_flag=True),
) -> None:
    state = _get_state(ctx)
    try:
        path = state.repository.path
    except ConfigError:
        path = Path(CONFIG_FILENAMES[0]).resolve()
        state.repository = ConfigRepository(ConfigLocator(config_path=path))
    if path.exists() and not force:
        _fail(f"配置文件已存在：{path}（使用 --force 覆盖）")
    state.repository.save(sample_config())
    console.print(f"示例配置已写入 {path}", style="green")


@app.command("run", help="持续运行：每轮处理全部订阅后休眠，直到进程被终止。")
def run_forever(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    try:
        state.orchestrator.run_forever()
    except (ConfigError, StoreError) as exc:
        _fail(f"启动失败：{exc}")
    except KeyboardInterrupt:
        console.print("已停止。", style="dim")
    finally:
        state.orchestrator.close()


@app.command("once", help="立即执行一轮抓取并显示结果。")
def run_once(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    try:
        config = state.repository.load()
        state.orchestrator.open_store(config)
        summaries = state.orchestrator.run_round()
    except (ConfigError, StoreError) as exc:
        _fail(f"启动失败：{exc}")
    finally:
        state.orchestrator.close()
    if not summaries:
        console.print("没有可运行的订阅。", style="yellow")
        return
    console.print(_render_summary_table(summaries))


@app.command("subscriptions", help="列出配置中的订阅。")
def list_subscriptions(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    try:
        config = state.repository.load()
    except ConfigError as exc:
        _fail(str(exc))
    if not config.subscriptions:
        console.print(f"暂无订阅，请编辑配置文件 {state.repository.path}。", style="yellow")
        return
    console.print(_render_subscriptions_table(config.subscriptions))


@app.command("listings", help="查看最近收录的房源。")
def list_listings(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="显示最近 N 条。"),
) -> None:
    state = _get_state(ctx)
    try:
        store = state.orchestrator.open_store(state.repository.load())
        listings = store.list_recent(limit)
        total = store.count()
    except (ConfigError, StoreError) as exc:
        _fail(str(exc))
    finally:
        state.storage.close_all()
    if not listings:
        console.print("暂无收录记录。", style="dim")
        return
    console.print(_render_listings_table(listings))
    console.print(f"共 {total} 条有效记录", style="dim")


@log_app.command("list", help="列出各订阅的日志文件。")
def log_list() -> None:
    logs = list(available_subscription_logs())
    console.print("日志文件：", style="cyan")
    if not logs:
        console.print("暂未生成任何订阅日志。", style="dim")
        return
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("文件名", style="green")
    for path in logs:
        table.add_row(path.name)
    console.print(table)


@log_app.command("show", help="查看日志的最近内容。")
def log_show(
    subscription: Optional[str] = typer.Option(
        None, "--subscription", "-s", help="订阅名称或日志文件名（不含 .log，为空则展示全局日志）。"
    ),
    tail: int = typer.Option(100, "--tail", min=1, help="显示最近 N 行内容。"),
) -> None:
    if subscription:
        path = subscription_log_path(subscription)
    else:
        path = main_log_path()
    lines = tail_log(path, tail)
    if not lines:
        console.print("暂无日志信息，请稍后再试。", style="dim")
        return
    header = f"{'订阅日志' if subscription else '全局日志'} · 最近 {len(lines)} 行"
    console.print(header, style="cyan")
    console.print("".join(lines))


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()


__all__ = ["AppState", "app", "build_state", "cli"]
