"""CLI command implementations"""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

from tagdoc.config import Settings, load_config
from tagdoc.core.errors import TagdocError
from tagdoc.core.pipeline import default_aggregator, run_build, to_json


class _EchoHandler(logging.Handler):
    """Route log records through typer so they land on the current stderr."""

    def emit(self, record: logging.LogRecord) -> None:
        typer.echo(self.format(record), err=True)


def _setup_logging(level: str) -> None:
    log = logging.getLogger("tagdoc")
    log.setLevel(level)
    for handler in [h for h in log.handlers if isinstance(h, _EchoHandler)]:
        log.removeHandler(handler)
    handler = _EchoHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    log.addHandler(handler)


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling."""
    try:
        settings = load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))
    _setup_logging(settings.log_level)
    return settings


def _build(settings: Settings, globs: list[str], md: bool, npm: bool, py: bool, css: bool) -> dict:
    try:
        return run_build(default_aggregator(settings, md=md, npm=npm, py=py, css=css), globs)
    except TagdocError as e:
        _fail(str(e))


def build_cmd(
    globs: Annotated[list[str], typer.Argument(help="Glob patterns of files to document")],
    md: Annotated[bool, typer.Option("--md/--no-md", help="Use the markdown plugin for .md files")] = True,
    npm: Annotated[bool, typer.Option("--npm/--no-npm", help="Use the npm plugin for package.json files")] = True,
    py: Annotated[bool, typer.Option("--py/--no-py", help="Use the python plugin for .py files")] = True,
    css: Annotated[bool, typer.Option("--css/--no-css", help="Use the KSS plugin for .css/.less/.scss files")] = False,
    nav_page: Annotated[Optional[str], typer.Option("--nav-page", help="Reference of the nav root page")] = None,
    base_dir: Annotated[Optional[str], typer.Option("--base-dir", help="Base directory for source paths")] = None,
    reserved: Annotated[Optional[list[str]], typer.Option("--reserved-tag", help="@tag name to keep as prose")] = None,
    out: Annotated[Optional[Path], typer.Option("--out", "-o", help="Write JSON here instead of stdout")] = None,
    ):
    """Compile files into one JSON document."""
    settings = _settings(overrides={"nav_page": nav_page, "source_base_dir": base_dir, "reserved_tags": reserved or None})
    documentation = _build(settings, globs, md, npm, py, css)
    if out is None:
        typer.echo(to_json(documentation))
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(to_json(documentation) + "\n", encoding="utf-8")
    typer.echo(f"Wrote {len(documentation)} key(s) to {out}", err=True)


def _echo_tree(node: dict, depth: int = 0) -> None:
    typer.echo(f"{'  ' * depth}{node['title']}  [{node['route']}]")
    for child in node.get("children", []):
        _echo_tree(child, depth + 1)


def pages_cmd(
    globs: Annotated[list[str], typer.Argument(help="Glob patterns of markdown files")],
    nav_page: Annotated[Optional[str], typer.Option("--nav-page", help="Reference of the nav root page")] = None,
    ):
    """Print the resolved navigation tree of markdown pages."""
    settings = _settings(overrides={"nav_page": nav_page})
    documentation = _build(settings, globs, md=True, npm=False, py=False, css=False)
    nav = documentation.get("nav") or []
    if not nav:
        typer.echo("No pages found.")
        raise typer.Exit(1)
    for node in nav:
        _echo_tree(node)
