"""Lexis CLI: browse courses, inspect due cards and run review sessions."""

import asyncio
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Annotated, Any

import typer

from lexis.application.config import AppConfig, resolve_config
from lexis.domain.constants import DEFAULT_EASINESS
from lexis.domain.errors import LexisError
from lexis.domain.models import CardMemoryState, Grade, Scope

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="lexis: spaced-repetition vocabulary trainer.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage lexis configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

GRADE_KEYS = {"a": Grade.AGAIN, "h": Grade.HARD, "g": Grade.GOOD, "e": Grade.EASY}
PROMPT = "[f]lip [a]gain [h]ard [g]ood [e]asy [s]kip [q]uit"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _resolve_with_overrides(**overrides: Any) -> AppConfig:
    """Resolve config, turning domain/validation errors into a clean exit."""
    try:
        config = resolve_config(overrides)
    except ValueError as e:
        typer.secho(f"Invalid configuration: {e}", fg="red")
        raise typer.Exit(1) from e

    level = logging.DEBUG if config.verbose >= 3 else logging.INFO if config.verbose == 2 else None
    if level is not None:
        logging.getLogger("lexis").setLevel(level)
    return config


def _run(coro) -> Any:
    try:
        return asyncio.run(coro)
    except LexisError as e:
        typer.secho(f"Error: {e}", fg="red")
        raise typer.Exit(1) from e


def _today(config: AppConfig, today: date | None) -> date:
    return today or config.today()


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
    backend: Annotated[
        str | None, typer.Option(help="Record store: memory or supabase.")
    ] = None,
    seed_file: Annotated[
        Path | None, typer.Option(help="JSON seed file for the memory backend.")
    ] = None,
):
    """Global settings for lexis."""
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {
        # -v is info, -vv debug; with no flag LEXIS_VERBOSE or the config file applies
        "verbose": 1 + verbose if verbose else None,
        "backend": backend,
        "seed_file": seed_file,
    }


def _config(ctx: typer.Context) -> AppConfig:
    return _resolve_with_overrides(**(ctx.obj or {}).get("overrides", {}))


# ---------------------------------------------------------------------------
# Browsing
# ---------------------------------------------------------------------------


@app.command()
def courses(ctx: typer.Context):
    """List available courses."""
    from lexis.application.factory import get_store

    config = _config(ctx)

    async def run():
        store = get_store(config)
        try:
            return await store.list_courses()
        finally:
            await store.aclose()

    found = _run(run())
    if not found:
        typer.secho("No courses found.", fg="yellow")
        return
    for course in found:
        typer.echo(f"{course.id}  {course.title}")


@app.command()
def levels(
    ctx: typer.Context,
    course_id: Annotated[str, typer.Argument(help="Course to list levels for.")],
):
    """List the levels of a course in study order."""
    from lexis.application.factory import get_store

    config = _config(ctx)

    async def run():
        store = get_store(config)
        try:
            return await store.list_levels(course_id)
        finally:
            await store.aclose()

    for level in _run(run()):
        typer.echo(f"{level.id}  {level.name}")


@app.command()
def due(
    ctx: typer.Context,
    level_id: Annotated[str, typer.Argument(help="Level to check.")],
    learner: Annotated[
        str | None, typer.Option("--learner", "-l", help="Learner id. Omit for guest mode.")
    ] = None,
    today: Annotated[
        str | None, typer.Option(help="Override today's date (YYYY-MM-DD).")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show the cards due today in a level."""
    from lexis.application.factory import build_services, get_store

    config = _config(ctx)
    day = _today(config, date.fromisoformat(today) if today else None)

    async def run():
        store = get_store(config)
        selector, _ = build_services(config, store)
        try:
            return await selector.due_cards(learner, Scope.level(level_id), day)
        finally:
            await store.aclose()

    cards = _run(run())

    if json_output:
        typer.echo(
            json.dumps(
                [
                    {"id": c.id, "front": c.front, "back": c.back, "audio_url": c.audio_url}
                    for c in cards
                ],
                indent=2,
            )
        )
        return

    typer.echo(f"Due on {day.isoformat()}: {len(cards)}")
    for card in cards:
        typer.echo(f"  {card.front}  ->  {card.back}")


@app.command()
def counts(
    ctx: typer.Context,
    course_id: Annotated[str, typer.Argument(help="Course to tally.")],
    learner: Annotated[str, typer.Option("--learner", "-l", help="Learner id.")],
    today: Annotated[
        str | None, typer.Option(help="Override today's date (YYYY-MM-DD).")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show how many cards are due today in each level of a course."""
    from lexis.application.factory import build_services, get_store

    config = _config(ctx)
    day = _today(config, date.fromisoformat(today) if today else None)

    async def run():
        store = get_store(config)
        selector, _ = build_services(config, store)
        try:
            tally = await selector.due_counts(learner, Scope.course(course_id), day)
            names = {}
            if tally:
                names = {lvl.id: lvl.name for lvl in await store.list_levels(course_id)}
            return tally, names
        finally:
            await store.aclose()

    tally, names = _run(run())

    if json_output:
        typer.echo(json.dumps(tally, indent=2))
        return

    if not tally:
        typer.secho("Nothing to count.", fg="yellow")
        return
    for level_id, count in tally.items():
        color = "green" if count else None
        typer.secho(f"{names.get(level_id, level_id)}: {count} due", fg=color)


# ---------------------------------------------------------------------------
# Study
# ---------------------------------------------------------------------------


@app.command()
def study(
    ctx: typer.Context,
    level_id: Annotated[str, typer.Argument(help="Level to study.")],
    learner: Annotated[
        str | None,
        typer.Option("--learner", "-l", help="Learner id. Omit to practise without saving."),
    ] = None,
):
    """[bold green]Study[/bold green] the cards due today in a level.

    Keys: [bold]f[/bold] flip, [bold]a[/bold]/[bold]h[/bold]/[bold]g[/bold]/[bold]e[/bold]
    again/hard/good/easy, [bold]s[/bold] skip, [bold]q[/bold] quit.
    """
    from lexis.application.factory import build_services, get_store
    from lexis.application.session import ReviewSession

    config = _config(ctx)
    day = config.today()

    async def run():
        store = get_store(config)
        selector, recorder = build_services(config, store)
        try:
            session = await ReviewSession.start(
                selector, recorder, learner, Scope.level(level_id), day
            )
            if session.is_finished:
                typer.secho("No cards due. Come back tomorrow.", fg="yellow")
                return session

            if learner is None:
                typer.secho("Guest mode: progress is not saved.", fg="yellow")

            total = session.remaining
            while not session.is_finished:
                card = session.current
                shown = total - session.remaining + 1
                side = card.back if session.revealed else card.front
                typer.echo(f"\n[{shown}/{total}]  {side}")
                if card.audio_url:
                    typer.echo(f"  audio: {card.audio_url}")

                key = typer.prompt(PROMPT, default="f").strip().lower()[:1]

                if key == "q":
                    break
                if key == "f":
                    session.flip()
                elif key == "s":
                    session.skip()
                elif key in GRADE_KEYS:
                    try:
                        outcome = await session.grade(GRADE_KEYS[key])
                    except LexisError as e:
                        typer.secho(f"Could not save this review, try again: {e}", fg="red")
                        continue
                    if outcome.state is not None:
                        typer.echo(
                            f"  next review in {outcome.state.interval_days} day(s) "
                            f"({outcome.state.due_date})"
                        )
                else:
                    typer.secho(f"Unknown key '{key}'", fg="yellow")
            return session
        finally:
            await store.aclose()

    session = _run(run())
    if session.reviewed:
        typer.secho(f"\nReviewed {len(session.reviewed)} card(s).", fg="green")


@app.command()
def preview(
    ctx: typer.Context,
    repetition: Annotated[int, typer.Option(help="Current repetition count.")] = 0,
    easiness: Annotated[float, typer.Option(help="Current easiness factor.")] = DEFAULT_EASINESS,
    interval: Annotated[int, typer.Option(help="Current interval in days.")] = 0,
):
    """Show the interval each grade would schedule for a card."""
    from lexis.application.scheduler import preview as preview_intervals

    state = CardMemoryState(
        learner_id=None,
        card_id=None,
        repetition=repetition,
        easiness=easiness,
        interval_days=interval,
    )
    for grade, days in preview_intervals(state, _config(ctx).today()).items():
        typer.echo(f"{grade.value:>5}: {days} day(s)")


@app.command()
def serve(
    host: Annotated[str, typer.Option(help="Interface to bind.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port to listen on.")] = 8777,
    reload: Annotated[bool, typer.Option("--reload", help="Reload on code changes.")] = False,
):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("lexis.server:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _config(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    if d.get("supabase_key"):
        d["supabase_key"] = "***"
    typer.echo(json.dumps(d, indent=2))


def main():
    app()


if __name__ == "__main__":
    main()
