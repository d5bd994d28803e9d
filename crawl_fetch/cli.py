"""
Command-line interface for crawl-fetch.

Uses Typer to expose the three fetch entry points. Global options
(configuration file, logging, TLS verification) go before the command,
request options after it. Loads .env files so CRAWL_FETCH_CONFIG can
point at a YAML configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import json
import logging
from pathlib import Path

from dotenv import load_dotenv
import typer
from rich.console import Console

from .config import AppConfig, RequestConfig, load_config
from .errors import FetchError, classify_exception, is_error_text
from .fetch.client import FetchClient
from .logging_utils import log_event, setup_logging

app = typer.Typer(add_completion=False)
console = Console()


@dataclass
class CliState:
    cfg: AppConfig
    client: FetchClient
    logger: logging.Logger


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None, "--config", "-c", exists=True, envvar="CRAWL_FETCH_CONFIG", help="YAML config file."
    ),
    verify: bool | None = typer.Option(
        None, "--verify/--no-verify", help="Verify TLS certificates (off unless configured)."
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    log_file: bool | None = typer.Option(
        None, "--log-file/--no-log-file", help="Enable or disable file logging."
    ),
    log_dir: Path = typer.Option(Path("logs"), "--log-dir", help="Directory for log files."),
):
    """Fetch URLs the way the crawler does."""
    load_dotenv()

    cfg = load_config(str(config) if config else None)

    if verify is not None:
        cfg.client.verify_tls = verify
    if log_level:
        cfg.logging.level = log_level
    if log_file is not None:
        cfg.logging.file = log_file

    logger = setup_logging(cfg.logging, log_dir)
    ctx.obj = CliState(cfg=cfg, client=FetchClient.from_config(cfg.client), logger=logger)


@app.command()
def text(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="URL to fetch."),
    method: str | None = typer.Option(None, "--method", "-X", help="HTTP method."),
    header: list[str] | None = typer.Option(None, "--header", "-H", help="'Name: value', repeatable."),
    data: str | None = typer.Option(None, "--data", "-d", help="Request body."),
    charset: str | None = typer.Option(None, "--charset", help="Request/response charset."),
    read_timeout: int | None = typer.Option(None, "--read-timeout", help="Read timeout in ms."),
    connect_timeout: int | None = typer.Option(None, "--connect-timeout", help="Connect timeout in ms."),
):
    """Print the response text (or error text) of URL."""
    state: CliState = ctx.obj
    request = _build_request(state.cfg.request, method, header, data, charset, read_timeout, connect_timeout)
    body = state.client.fetch_text(url, request)
    if is_error_text(body):
        console.print(body, style="red", markup=False, highlight=False)
        raise typer.Exit(code=1)
    console.print(body, markup=False, highlight=False, soft_wrap=True)


@app.command("object")
def object_(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="URL to fetch."),
    method: str | None = typer.Option(None, "--method", "-X", help="HTTP method."),
    header: list[str] | None = typer.Option(None, "--header", "-H", help="'Name: value', repeatable."),
    data: str | None = typer.Option(None, "--data", "-d", help="Request body."),
    charset: str | None = typer.Option(None, "--charset", help="Request/response charset."),
    read_timeout: int | None = typer.Option(None, "--read-timeout", help="Read timeout in ms."),
    connect_timeout: int | None = typer.Option(None, "--connect-timeout", help="Connect timeout in ms."),
):
    """Print the status, cookies and body (or error) of URL as JSON."""
    state: CliState = ctx.obj
    request = _build_request(state.cfg.request, method, header, data, charset, read_timeout, connect_timeout)
    result = state.client.fetch_object(url, request)
    console.print_json(json.dumps(result.to_dict(), ensure_ascii=False))
    if not result.ok:
        raise typer.Exit(code=1)


@app.command()
def download(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="URL to download."),
    destination: Path = typer.Argument(..., help="File to write."),
):
    """Save the body of URL to DESTINATION when the response is 200."""
    state: CliState = ctx.obj
    try:
        path = state.client.download_file(url, destination)
    except (FetchError, OSError) as exc:
        log_event(
            state.logger,
            "download failed",
            level=logging.ERROR,
            url=url,
            error_kind=classify_exception(exc).value,
            path=destination,
        )
        console.print(f"Download failed: {type(exc).__name__}: {exc}", style="red", markup=False)
        raise typer.Exit(code=1)
    if path is None:
        console.print(f"Nothing downloaded: {url} did not answer 200", markup=False)
        return
    console.print(f"Saved: {path}", markup=False)


def _build_request(
    base: RequestConfig,
    method: str | None,
    header: list[str] | None,
    data: str | None,
    charset: str | None,
    read_timeout: int | None,
    connect_timeout: int | None,
) -> RequestConfig:
    """Apply command-line request options on top of the configured request."""
    overrides: dict[str, object] = {}
    if method:
        overrides["method"] = method
    if header:
        overrides["headers"] = base.headers + tuple(_parse_header(item) for item in header)
    if data is not None:
        overrides["body"] = data
    if charset:
        overrides["charset"] = charset
    if read_timeout is not None:
        overrides["read_timeout_ms"] = read_timeout
    if connect_timeout is not None:
        overrides["connect_timeout_ms"] = connect_timeout
    return replace(base, **overrides)


def _parse_header(item: str) -> tuple[str, str]:
    name, sep, value = item.partition(":")
    if not sep or not name.strip():
        raise typer.BadParameter(f"Header must look like 'Name: value', got {item!r}")
    return name.strip(), value.strip()


if __name__ == "__main__":
    app()
