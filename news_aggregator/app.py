"""Typer CLI entrypoint for the news aggregator."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import typer
import uvicorn
from rich import box
from rich.console import Console
from rich.table import Table

from .config import AggregatorConfig, AppSettings, ConfigRepository, ParsingRule
from .engine import SearchResult
from .errors import ConfigError, StorageError, StorageIntegrityError
from .infra import Store
from .logging_conf import configure_logging
from .search import SearchService
from .supervisor import Supervisor
from .web import create_app

# EX_SOFTWARE: the store could not be rolled back and the run was aborted.
EXIT_STORAGE_FAULT = 70

app = typer.Typer(
    help="Poll RSS feeds into a local archive and search it.",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()

DB_OPTION = typer.Option(Path("db.sqlite"), "--db", help="Aggregator database path.")
CONFIG_OPTION = typer.Option(
    Path("config.json"), "--config", help="Path to the JSON/YAML feed rules."
)


@dataclass
class AppState:
    repository: ConfigRepository
    debug: bool


def build_state(debug: bool) -> AppState:
    configure_logging(verbose=debug)
    return AppState(repository=ConfigRepository(), debug=debug)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(debug=False)
        ctx.obj = state
    return state


def _load_config(state: AppState, path: Path) -> AggregatorConfig:
    try:
        return state.repository.load(path)
    except ConfigError as exc:
        console.print(f"Error during config file parsing: {exc}", style="red")
        raise typer.Exit(code=1) from exc


def _open_store(path: Path) -> Store:
    try:
        return Store(path)
    except StorageError as exc:
        console.print(f"Error during database initialization: {exc}", style="red")
        raise typer.Exit(code=1) from exc


def _render_rules_table(rules: Sequence[ParsingRule]) -> Table:
    table = Table(title=f"Feeds · {len(rules)} configured", box=box.SIMPLE_HEAD)
    table.add_column("URL", style="cyan", overflow="fold")
    table.add_column("Interval", style="yellow", justify="right")
    table.add_column("Optional fields", style="green")
    for rule in rules:
        table.add_row(rule.url, f"{rule.timeout}s", ", ".join(rule.item_tags) or "-")
    return table


def _render_results_table(query: str, results: Sequence[SearchResult]) -> Table:
    table = Table(title=f"{len(results)} match(es) for {query!r}", box=box.SIMPLE_HEAD)
    table.add_column("Title", style="cyan", overflow="fold")
    table.add_column("Link", overflow="fold")
    table.add_column("Published", style="green")
    table.add_column("Categories", style="magenta", overflow="fold")
    for result in results:
        table.add_row(
            result.title,
            result.link,
            result.published or "-",
            ", ".join(result.categories) or "-",
        )
    return table


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", "--verbose", help="Enable debug logging.", is_flag=True),
) -> None:
    ctx.obj = build_state(debug)


@app.command("serve", help="Start polling feeds and serve the search form.")
def serve(
    ctx: typer.Context,
    db: Path = DB_OPTION,
    config: Path = CONFIG_OPTION,
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind."),
    port: int = typer.Option(8080, "--port", help="Port to bind."),
) -> None:
    state = _get_state(ctx)
    settings = AppSettings(db_path=db, config_path=config, debug=state.debug, host=host, port=port)
    rules = _load_config(state, settings.config_path).rules
    store = _open_store(settings.db_path)

    web_app = create_app(SearchService(store), debug=settings.debug)
    server = uvicorn.Server(
        uvicorn.Config(web_app, host=settings.host, port=settings.port, log_config=None)
    )

    def _abort(_exc: StorageIntegrityError) -> None:
        server.should_exit = True

    supervisor = Supervisor(store, rules, on_fatal=_abort)
    supervisor.start()
    try:
        server.run()
    finally:
        supervisor.stop()
        supervisor.wait(timeout=2.0)
        supervisor.fetcher.close()

    try:
        supervisor.raise_if_failed()
    except StorageIntegrityError as exc:
        console.print(f"Aborting: {exc}", style="bold red")
        raise typer.Exit(code=EXIT_STORAGE_FAULT) from exc
    store.close()


@app.command("search", help="Search stored titles from the command line.")
def search(
    ctx: typer.Context,
    query: str = typer.Argument("", help="Substring to look for in titles."),
    db: Path = DB_OPTION,
) -> None:
    _get_state(ctx)
    store = _open_store(db)
    try:
        results = SearchService(store).search(query)
    except StorageError as exc:
        console.print(f"Search failed: {exc}", style="red")
        raise typer.Exit(code=1) from exc
    finally:
        store.close()
    if not results:
        console.print("No matching records.", style="dim")
        return
    console.print(_render_results_table(query, results))


@app.command("init-db", help="Create the database schema and show row counts.")
def init_db(ctx: typer.Context, db: Path = DB_OPTION) -> None:
    _get_state(ctx)
    store = _open_store(db)
    try:
        counts = store.counts()
    finally:
        store.close()
    table = Table(title=str(db), box=box.SIMPLE_HEAD)
    table.add_column("Table", style="cyan")
    table.add_column("Rows", justify="right")
    for name, count in counts.items():
        table.add_row(name, str(count))
    console.print(table)


@app.command("feeds", help="List the configured feed rules.")
def feeds(ctx: typer.Context, config: Path = CONFIG_OPTION) -> None:
    state = _get_state(ctx)
    rules = _load_config(state, config).rules
    if not rules:
        console.print("No feeds configured.", style="yellow")
        raise typer.Exit(code=0)
    console.print(_render_rules_table(rules))


@app.command("add-feed", help="Append a feed rule to the configuration file.")
def add_feed(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Feed URL."),
    interval: int = typer.Option(60, "--interval", help="Seconds between polls."),
    tags: list[str] = typer.Option(
        [], "--tag", help="Optional field to capture: categories, description, guid, pubDate."
    ),
    config: Path = CONFIG_OPTION,
) -> None:
    state = _get_state(ctx)
    current = _load_config(state, config) if config.exists() else AggregatorConfig()
    try:
        rule = ParsingRule.model_validate({"timeout": interval, "url": url, "itemTags": tags})
    except ValueError as exc:
        console.print(f"Invalid feed rule: {exc}", style="red")
        raise typer.Exit(code=1) from exc
    if rule.ignored_tags:
        console.print(f"Ignoring unknown tags: {', '.join(rule.ignored_tags)}", style="yellow")
    rules = [existing for existing in current.rules if existing.url != rule.url] + [rule]
    state.repository.save(AggregatorConfig(rules=rules), config)
    console.print(f"Feed `{rule.url}` saved to {config}.", style="green")


if __name__ == "__main__":
    app()
