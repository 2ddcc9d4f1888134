"""CLI entry point for custom-hud."""

import asyncio
import json
import logging
import sys
from typing import TextIO

import click

from .config import debug_enabled
from .orchestrator import Orchestrator, status_to_dict
from .render import PLACEHOLDER

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    """Send logs to stderr; stdout carries the status line."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def read_request(stream: TextIO) -> dict | None:
    """Return the request document from ``stream``, or None if there isn't one."""
    if stream.isatty():
        return None
    try:
        raw = stream.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Could not read request: %s", e)
        return None
    if not raw.strip():
        return None
    try:
        document = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.debug("Request is not valid JSON: %s", e)
        return None
    return document if isinstance(document, dict) else None


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Print the gathered state as JSON.")
@click.option("--debug", is_flag=True, help="Log diagnostics to stderr.")
def main(as_json: bool, debug: bool):
    """Claude Code status line: rate limits, context, agents and todos.

    Reads the status-line request document from stdin.
    """
    configure_logging(debug or debug_enabled())

    document = read_request(sys.stdin)
    if document is None:
        click.echo(PLACEHOLDER, color=True)
        return

    try:
        orchestrator = Orchestrator()
        if as_json:
            status = asyncio.run(orchestrator.gather(document))
            output = json.dumps(status_to_dict(status), indent=2)
        else:
            output = asyncio.run(orchestrator.run(document))
    except Exception as e:
        logger.debug("Render failed", exc_info=True)
        click.echo(f"[HUD] error: {e}")
        return

    click.echo(output, color=True)
