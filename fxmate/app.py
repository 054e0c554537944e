"""Typer CLI entrypoint for FXMate."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import typer
import yaml
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, GlobalConfig
from .engine import CurrencyRate, Extractor, Fetcher, MainThreadDispatcher, ThreadPoolManager
from .logging_conf import available_logs, configure_logging, default_log_dir, tail_log
from .monitor import RatesMonitor
from .orchestrator import FetchOrchestrator

app = typer.Typer(
    help="FXMate currency rates feed tool",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(
    name="config",
    help="Configuration commands",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="Log viewing commands",
    no_args_is_help=True,
    rich_markup_mode=None,
)
app.add_typer(config_app)
app.add_typer(log_app)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    config: GlobalConfig
    dispatcher: MainThreadDispatcher
    thread_pool: ThreadPoolManager
    fetcher: Fetcher
    orchestrator: FetchOrchestrator
    monitor: RatesMonitor

    def close(self) -> None:
        self.monitor.close()
        self.thread_pool.shutdown(wait=False)
        self.fetcher.close()


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    config = repository.load_global_config()
    configure_logging(verbose=verbose)
    dispatcher = MainThreadDispatcher()
    thread_pool = ThreadPoolManager(workers=1)
    fetcher = Fetcher(timeout=config.request_timeout, user_agent=config.user_agent)
    orchestrator = FetchOrchestrator(fetcher, Extractor(), thread_pool, dispatcher)
    monitor = RatesMonitor(
        orchestrator,
        dispatcher,
        config.feed_url,
        auto_update_interval=config.auto_update_interval,
        main_currencies=config.main_currencies,
    )
    return AppState(
        repository=repository,
        config=config,
        dispatcher=dispatcher,
        thread_pool=thread_pool,
        fetcher=fetcher,
        orchestrator=orchestrator,
        monitor=monitor,
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.find_root().obj
    if state is None:
        state = build_state(verbose=False)
        ctx.find_root().obj = state
    return state


def _format_rate(rate: float) -> str:
    return f"{rate:,.4f}"


def _render_rates_table(rates: Sequence[CurrencyRate], title: str, caption: str | None = None) -> Table:
    table = Table(title=title, caption=caption, box=box.SIMPLE_HEAVY)
    table.add_column("Pair", style="cyan", no_wrap=True)
    table.add_column("Target currency")
    table.add_column("Rate", justify="right", style="green")
    table.add_column("Published", style="dim")
    for rate in rates:
        table.add_row(
            rate.pair,
            rate.target_currency_name,
            _format_rate(rate.rate),
            rate.pub_date or "-",
        )
    return table


def _updated_caption(monitor: RatesMonitor) -> str | None:
    if monitor.last_updated is None:
        return None
    return f"Updated: {monitor.last_updated.strftime('%H:%M:%S')}"


def _emit(rates: Sequence[CurrencyRate], monitor: RatesMonitor, title: str, as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps([rate.to_dict() for rate in rates], ensure_ascii=False, indent=2))
        return
    if not rates:
        console.print("No matching currencies.")
        return
    console.print(_render_rates_table(rates, title, _updated_caption(monitor)))


def _refresh_and_wait(state: AppState, url: Optional[str]) -> None:
    monitor = state.monitor
    if url:
        monitor.feed_url = url
    if not monitor.refresh():
        return
    with console.status(f"Fetching {monitor.feed_url}..."):
        while monitor.is_loading:
            state.dispatcher.run_pending(timeout=0.2)


def _fail_if_error(monitor: RatesMonitor) -> None:
    if monitor.error_message:
        console.print(f"[red]Error:[/red] {monitor.error_message}")
        raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    try:
        state = build_state(verbose)
    except (ValidationError, ValueError) as exc:
        console.print(f"[red]Invalid configuration:[/red] {exc}")
        raise typer.Exit(code=2) from exc
    ctx.obj = state
    ctx.call_on_close(state.close)


@app.command("fetch", help="Download the feed once and print the rates.")
def fetch_rates(
    ctx: typer.Context,
    url: Optional[str] = typer.Option(None, "--url", help="Override the configured feed URL."),
    as_json: bool = typer.Option(False, "--json", help="Print records as JSON."),
    main_only: bool = typer.Option(False, "--main", help="Only show the main currencies."),
) -> None:
    state = _get_state(ctx)
    _refresh_and_wait(state, url)
    _fail_if_error(state.monitor)
    rates = state.monitor.main_currencies() if main_only else state.monitor.rates
    _emit(rates, state.monitor, "Exchange rates", as_json)


@app.command("search", help="Download the feed and filter by currency name, code or title.")
def search_rates(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Case-insensitive text to look for."),
    url: Optional[str] = typer.Option(None, "--url", help="Override the configured feed URL."),
    as_json: bool = typer.Option(False, "--json", help="Print records as JSON."),
) -> None:
    state = _get_state(ctx)
    _refresh_and_wait(state, url)
    _fail_if_error(state.monitor)
    _emit(state.monitor.search(query), state.monitor, f"Rates matching '{query}'", as_json)


@app.command("parse", help="Extract rates from a local RSS file.")
def parse_file(
    ctx: typer.Context,
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    as_json: bool = typer.Option(False, "--json", help="Print records as JSON."),
) -> None:
    state = _get_state(ctx)
    text = path.read_text(encoding="utf-8", errors="replace")
    state.monitor.load_from_text(text)
    _fail_if_error(state.monitor)
    _emit(state.monitor.rates, state.monitor, path.name, as_json)


@app.command("watch", help="Keep the rates table fresh until interrupted.")
def watch_rates(
    ctx: typer.Context,
    interval: Optional[float] = typer.Option(
        None, "--interval", min=1.0, help="Seconds between refreshes."
    ),
    url: Optional[str] = typer.Option(None, "--url", help="Override the configured feed URL."),
    max_updates: Optional[int] = typer.Option(
        None, "--max-updates", min=1, help="Exit after this many completed refreshes."
    ),
) -> None:
    state = _get_state(ctx)
    monitor = state.monitor
    if url:
        monitor.feed_url = url
    if interval is not None:
        monitor.auto_update_interval = interval
    completed = {"count": 0}

    def _on_change(current: RatesMonitor) -> None:
        if current.is_loading:
            return
        completed["count"] += 1
        if current.error_message:
            console.print(f"[red]Error:[/red] {current.error_message}")
        else:
            console.print(
                _render_rates_table(current.rates, "Exchange rates", _updated_caption(current))
            )

    monitor.subscribe(_on_change)
    console.print(
        f"Watching {monitor.feed_url} every {monitor.auto_update_interval:.0f}s. Press Ctrl+C to stop."
    )
    monitor.refresh()
    monitor.start_auto_update()
    try:
        while max_updates is None or completed["count"] < max_updates:
            state.dispatcher.run_pending(timeout=0.5)
    except KeyboardInterrupt:
        console.print("Stopped.")
    finally:
        monitor.stop_auto_update()


@config_app.command("show", help="Print the active configuration.")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    console.print(f"# {state.repository.locator.global_config_path()}", style="dim")
    typer.echo(yaml.safe_dump(state.config.model_dump(mode="json"), sort_keys=False))


@config_app.command("set-url", help="Persist a new feed URL.")
def config_set_url(ctx: typer.Context, url: str = typer.Argument(...)) -> None:
    _update_config(ctx, feed_url=url)


@config_app.command("set-interval", help="Persist a new auto-refresh interval in seconds.")
def config_set_interval(ctx: typer.Context, seconds: float = typer.Argument(...)) -> None:
    _update_config(ctx, auto_update_interval=seconds)


def _update_config(ctx: typer.Context, **changes: object) -> None:
    state = _get_state(ctx)
    try:
        updated = state.repository.update_global_config(**changes)
    except ValidationError as exc:
        console.print(f"[red]Invalid value:[/red] {exc.errors()[0]['msg']}")
        raise typer.Exit(code=2) from exc
    state.config = updated
    for key in changes:
        console.print(f"{key} = {getattr(updated, key)}")


@log_app.command("list", help="List available log files.")
def log_list() -> None:
    paths = available_logs()
    if not paths:
        console.print("No log files yet.")
        return
    for path in paths:
        console.print(path.name)


@log_app.command("show", help="Show the tail of a log file.")
def log_show(
    name: str = typer.Argument("fxmate", help="Log name without extension."),
    lines: int = typer.Option(50, "--lines", "-n", min=1),
) -> None:
    path = default_log_dir() / f"{name}.log"
    if not path.exists():
        console.print(f"[red]Log not found:[/red] {path.name}")
        raise typer.Exit(code=1)
    for line in tail_log(path, lines):
        typer.echo(line.rstrip("\n"))


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
