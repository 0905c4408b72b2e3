"""CLI commands for annotating, scoring and ranking photos."""

import asyncio
import contextlib
import json
import logging
import signal
import sys
import uuid
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, NoReturn, TypeVar

import click
import structlog

from perfscore.errors import PerfscoreError, ValidationError
from perfscore.features.annotate.factory import create_annotation_client
from perfscore.features.annotate.models import AnnotationResult
from perfscore.features.annotate.retry import CancelToken
from perfscore.features.images.data_url import data_url_from_path, decode_image_payload
from perfscore.features.observability.logging import (
    bind_request_context,
    clear_request_context,
    configure_logging,
)
from perfscore.leaderboard import (
    LeaderboardQuery,
    SortOrder,
    format_score,
    is_eligible,
    select_leaderboard,
    top_entries,
)
from perfscore.scoring import compute_score
from perfscore.settings import AppSettings, get_settings
from perfscore.store import EntryStore
from perfscore.submission import (
    SubmissionOrchestrator,
    SubmissionRequest,
    map_error_to_response,
)


logger = structlog.get_logger()

T = TypeVar("T")

COMPONENT_CLI = "cli"


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _fail(exc: Exception) -> NoReturn:
    """Print the user-facing error body and exit non-zero."""
    response = map_error_to_response(exc)
    logger.warning(
        "command_failed",
        component=COMPONENT_CLI,
        category=response.category.value,
        status=int(response.http_status),
    )
    click.echo(json.dumps(response.to_dict(), indent=2, ensure_ascii=False), err=True)
    sys.exit(1)


def _run_cancellable(work: Callable[[CancelToken], Awaitable[T]]) -> T:
    """Run async work, firing a cancel token on Ctrl-C.

    Args:
        work: Coroutine function receiving the cancel token.

    Returns:
        The work's result.
    """

    async def runner() -> T:
        token = CancelToken()
        loop = asyncio.get_running_loop()
        # Signal handlers are unavailable off the main thread and on Windows.
        with contextlib.suppress(NotImplementedError, ValueError, RuntimeError):
            loop.add_signal_handler(signal.SIGINT, token.cancel)
        try:
            return await work(token)
        finally:
            with contextlib.suppress(NotImplementedError, ValueError, RuntimeError):
                loop.remove_signal_handler(signal.SIGINT)

    return asyncio.run(runner())


def _settings(ctx: click.Context) -> AppSettings:
    settings: AppSettings = ctx.obj["settings"]
    return settings


def _state_path(ctx: click.Context, state_path: Path | None) -> Path:
    return state_path if state_path is not None else _settings(ctx).db_path


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--json-logs/--no-json-logs",
    default=True,
    help="Use JSON format for logs (default: true).",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging.",
)
@click.pass_context
def cli(ctx: click.Context, json_logs: bool, verbose: bool) -> None:
    """Photo annotation and leaderboard scoring CLI."""
    configure_logging(
        level=logging.DEBUG if verbose else logging.INFO,
        json_format=json_logs,
    )
    ctx.ensure_object(dict)
    if "settings" not in ctx.obj:
        ctx.obj["settings"] = get_settings()


@cli.command()
@click.argument("image", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--strict",
    is_flag=True,
    help="Validate the annotation shape instead of trusting the prompt.",
)
@click.pass_context
def annotate(ctx: click.Context, image: Path, strict: bool) -> None:
    """Annotate an image file and print the result with call metadata."""
    settings = _settings(ctx)
    if strict:
        settings = settings.model_copy(update={"strict_annotation": True})

    try:
        data_url = data_url_from_path(image)
        decode_image_payload(data_url)
        client = create_annotation_client(settings)
        outcome = _run_cancellable(
            lambda token: client.annotate(data_url, cancel_token=token)
        )
        result = outcome.unwrap()
    except PerfscoreError as e:
        _fail(e)

    _echo_json(
        {
            "success": True,
            "result": result.model_dump(mode="json"),
            "meta": outcome.meta.to_dict(),
        }
    )


@cli.command()
@click.argument(
    "annotation_path",
    metavar="ANNOTATION_JSON",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
def score(annotation_path: Path) -> None:
    """Score a saved annotation without calling the upstream."""
    try:
        payload = json.loads(annotation_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        msg = f"Annotation file is not valid JSON: {e.msg}"
        _fail(ValidationError(msg, field="annotation"))

    # Accept either a bare annotation or a saved `annotate` response.
    if isinstance(payload, dict) and isinstance(payload.get("result"), dict):
        payload = payload["result"]
    if not isinstance(payload, dict):
        _fail(ValidationError("Annotation must be a JSON object", field="annotation"))

    annotation = AnnotationResult.from_payload(payload)
    record = compute_score(annotation)
    eligibility = is_eligible(annotation, record.score)

    output = record.to_dict()
    output["eligible"] = eligibility.eligible
    if eligibility.reason:
        output["reason"] = eligibility.reason
    _echo_json(output)


@cli.command()
@click.argument("image", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--state",
    "state_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to SQLite state database (default: PERFSCORE_DB_PATH).",
)
@click.option(
    "--no-podium",
    "no_podium",
    is_flag=True,
    help="Keep this entry off the public podium.",
)
@click.pass_context
def submit(
    ctx: click.Context, image: Path, state_path: Path | None, no_podium: bool
) -> None:
    """Annotate, score and store an image file."""
    request_id = str(uuid.uuid4())
    bind_request_context(request_id)
    log = logger.bind(component=COMPONENT_CLI, command="submit")

    try:
        request = SubmissionRequest(
            image_data_url=data_url_from_path(image),
            podium_opt_in=not no_podium,
        )
        client = create_annotation_client(_settings(ctx))
        with EntryStore(_state_path(ctx, state_path)) as store:
            orchestrator = SubmissionOrchestrator(client, store)
            outcome = _run_cancellable(
                lambda token: orchestrator.submit(request, cancel_token=token)
            )
        log.info("submit_complete", entry_id=outcome.entry_id, score=outcome.score)
    except PerfscoreError as e:
        _fail(e)
    finally:
        clear_request_context()

    _echo_json(outcome.to_dict())


@cli.command()
@click.option(
    "--state",
    "state_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to SQLite state database (default: PERFSCORE_DB_PATH).",
)
@click.option(
    "--limit",
    type=int,
    default=None,
    help="Maximum entries to show (1-100, default: 50; podium: 25).",
)
@click.option(
    "--sort",
    type=click.Choice([order.value for order in SortOrder]),
    default=SortOrder.SCORE_DESC.value,
    show_default=True,
    help="Sort order.",
)
@click.option(
    "--min-score",
    type=int,
    default=None,
    help="Lowest score to include (0-10, default: 3).",
)
@click.option("-q", "query_text", default="", help="Free-text filter.")
@click.option(
    "--all-subjects",
    is_flag=True,
    help="Include entries without a male subject keyword.",
)
@click.option(
    "--podium",
    is_flag=True,
    help="Show the public podium view instead of a custom listing.",
)
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_context
def leaderboard(  # noqa: PLR0913
    ctx: click.Context,
    state_path: Path | None,
    limit: int | None,
    sort: str,
    min_score: int | None,
    query_text: str,
    all_subjects: bool,
    podium: bool,
    json_output: bool,
) -> None:
    """List ranked entries from the state database."""
    try:
        with EntryStore(_state_path(ctx, state_path)) as store:
            stored = store.list_entries()
    except PerfscoreError as e:
        _fail(e)

    entries = [entry.to_leaderboard_entry() for entry in stored]
    if podium:
        ranked = top_entries(entries) if limit is None else top_entries(entries, limit)
    else:
        options: dict[str, Any] = {
            "sort": SortOrder(sort),
            "q": query_text,
            "male_only": not all_subjects,
        }
        if limit is not None:
            options["limit"] = limit
        if min_score is not None:
            options["min_score"] = min_score
        ranked = select_leaderboard(entries, LeaderboardQuery(**options))

    if json_output:
        _echo_json({"success": True, "entries": [e.to_dict() for e in ranked]})
        return

    if not ranked:
        click.echo("No entries.")
        return
    for position, entry in enumerate(ranked, start=1):
        keywords = ", ".join(entry.matched_keywords) or "-"
        click.echo(
            f"{position:>3}. {format_score(entry.score):>6}  "
            f"{entry.created_at:%Y-%m-%d %H:%M}  #{entry.entry_id}  {keywords}"
        )


if __name__ == "__main__":
    cli()
