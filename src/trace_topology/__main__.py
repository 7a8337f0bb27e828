"""Command-line entry point for trace-topology-projector.

Developer tooling around the projection core. The `project` command:
1.  Loads configuration (environment, `.env`).
2.  Reads newline-delimited JSON call observations from a file or stdin.
3.  Builds a `CallContext` per line and projects it (trace_topology.projector).
4.  Writes one JSON object per emitted source record.
5.  Prints a summary of calls, records and suppressions.
"""
from __future__ import annotations

import json
import logging
import sys
from collections import Counter
from contextlib import ExitStack
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, TextIO

import typer
from dotenv import find_dotenv, load_dotenv
from pydantic import ValidationError

from .config import Settings, get_settings
from .models.sources import Source
from .projection.call_context import CallContext
from .projection.naming import InvalidNameError, NamingControl
from .projection.tags import TagPair
from .projector import dispatch, project_call

logger = logging.getLogger(__name__)

app = typer.Typer(help="Trace topology projection CLI")


def build_call_context(raw: Dict[str, Any], settings: Settings) -> CallContext:
    """Build a CallContext from one decoded input object.

    Tags are given as an optional ``tag_pairs`` list of ``{"key", "value"}``
    objects and recorded in order. Missing layers fall back to
    ``settings.DEFAULT_LAYER``.
    """
    payload = dict(raw)
    pairs = payload.pop("tag_pairs", None) or []
    context = CallContext.model_validate(payload)
    if context.source_layer is None:
        context.source_layer = settings.DEFAULT_LAYER
    if context.dest_layer is None:
        context.dest_layer = settings.DEFAULT_LAYER
    context.record_tags(TagPair.model_validate(p) for p in pairs)
    return context


class _WritingReceiver:
    """SourceReceiver that writes each record as one JSON line."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream
        self.count = 0

    def receive(self, source: Source) -> None:
        typer.echo(render_source(source), file=self.stream)
        self.count += 1


def render_source(source: Source) -> str:
    return json.dumps(
        {
            "scope": source.scope.value,
            "entity_id": source.entity_id,
            "record": source.model_dump(mode="json"),
        },
        ensure_ascii=False,
        separators=(",", ":"),
    )


def _iter_lines(stream: TextIO) -> Iterable[tuple[int, str]]:
    for lineno, line in enumerate(stream, start=1):
        line = line.strip()
        if line:
            yield lineno, line


@app.callback()
def main() -> None:  # pragma: no cover - simple callback
    """trace-topology-projector CLI.

    Use a subcommand like 'project' to run a process.
    """
    pass


@app.command(help="Project newline-delimited JSON call observations into source records.")
def project(
    input_path: str = typer.Argument(..., help="Input file with one JSON call per line ('-' for stdin)"),
    output: Optional[Path] = typer.Option(
        None, help="Write records to this file instead of stdout"
    ),
    fail_fast: bool = typer.Option(
        False,
        "--fail-fast/--no-fail-fast",
        help="Stop with a non-zero exit code on the first malformed or unnormalizable call",
    ),
) -> None:
    """Project every call in the input and emit its source records."""
    env_file = find_dotenv(usecwd=True)
    if env_file:
        load_dotenv(env_file)
    settings = get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL)
    naming = NamingControl.from_settings(settings)

    calls = 0
    skipped = 0
    suppressed: Counter[str] = Counter()
    with ExitStack() as stack:
        in_stream: TextIO = sys.stdin
        if input_path != "-":
            in_stream = stack.enter_context(open(input_path, "r", encoding="utf-8"))
        out_stream: Optional[TextIO] = None
        if output:
            out_stream = stack.enter_context(open(output, "w", encoding="utf-8"))
        receiver = _WritingReceiver(out_stream)
        for lineno, line in _iter_lines(in_stream):
            try:
                raw = json.loads(line)
                if not isinstance(raw, dict):
                    raise ValueError("call observation must be a JSON object")
                projected = project_call(build_call_context(raw, settings), naming)
            except (ValueError, ValidationError) as e:
                # json.JSONDecodeError and InvalidNameError are ValueErrors
                kind = "invalid name" if isinstance(e, InvalidNameError) else "malformed call"
                if fail_fast:
                    typer.echo(f"line {lineno}: {kind}: {e}", err=True)
                    raise typer.Exit(code=1)
                logger.warning("Skipping line %d (%s): %s", lineno, kind, e)
                skipped += 1
                continue
            calls += 1
            dispatch(projected, receiver)
            for s in projected.suppressed():
                suppressed[s.scope.value] += 1

    summary = ", ".join(f"{k}={v}" for k, v in sorted(suppressed.items())) or "none"
    typer.echo(
        f"Projected {calls} call(s) into {receiver.count} record(s); skipped={skipped} suppressed: {summary}",
        err=True,
    )


if __name__ == "__main__":  # pragma: no cover
    app()
