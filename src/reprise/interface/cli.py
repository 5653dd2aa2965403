"""reprise CLI: review, import, stats and deck management commands."""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any

import typer

from reprise.application.config import AppConfig, resolve_config
from reprise.application.factory import get_card_repository
from reprise.application.importer import load_drafts
from reprise.application.review_service import ReviewService
from reprise.domain.constants import REVIEW_BUTTONS
from reprise.domain.errors import EmptyQueueError, EmptySubsetError, RepriseError
from reprise.domain.models import RetakeFilter


# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="reprise: spaced-repetition flashcard reviews from the terminal.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

_LOG_LEVELS = {0: logging.ERROR, 1: logging.WARNING, 2: logging.INFO}


# ---------------------------------------------------------------------------
# Subgroups
# ---------------------------------------------------------------------------

deck_app = typer.Typer(help="Manage decks.", no_args_is_help=True)
app.add_typer(deck_app, name="deck")

config_app = typer.Typer(help="Manage reprise configuration.")
app.add_typer(config_app, name="config")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def humanize_error(exc: Exception) -> str:
    if isinstance(exc, EmptyQueueError):
        return "No cards are due."
    if isinstance(exc, RepriseError):
        return str(exc)
    return f"Unexpected error: {exc}"


def _fail(exc: Exception) -> typer.Exit:
    typer.secho(humanize_error(exc), fg="red", err=True)
    return typer.Exit(1)


def _resolve_with_overrides(ctx: typer.Context | None = None, **overrides: Any) -> AppConfig:
    config = resolve_config(overrides)
    bonus = ctx.obj.get("verbose_bonus", 0) if ctx is not None and ctx.obj else 0
    if bonus:
        # Each -v raises the configured level by one step.
        config = config.model_copy(update={"verbose": config.verbose + bonus})
    logging.getLogger("reprise").setLevel(_LOG_LEVELS.get(config.verbose, logging.DEBUG))
    return config


def _build_service(config: AppConfig) -> ReviewService:
    return ReviewService(get_card_repository(config), policy=config.reconcile_policy)


def _fmt_time(value: datetime | None) -> str:
    if value is None:
        return "-"
    return value.astimezone().strftime("%Y-%m-%d %H:%M")


def _fmt_elapsed(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


def _truncate(text: str, width: int = 50) -> str:
    text = " ".join(text.split())
    return text if len(text) <= width else text[: width - 3] + "..."


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
):
    """Global settings for reprise."""
    ctx.ensure_object(dict)
    ctx.obj["verbose_bonus"] = verbose


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def add(
    ctx: typer.Context,
    path: Annotated[
        Path, typer.Argument(help="Markdown (frontmatter), YAML or TSV file of cards.")
    ],
    deck: Annotated[str | None, typer.Option(help="Deck to add the cards to.")] = None,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Validate the file without storing anything.")
    ] = False,
    data_file: Annotated[Path | None, typer.Option(help="Card store override.")] = None,
):
    """[bold green]Add[/bold green] generated cards. New cards are due immediately."""
    config = _resolve_with_overrides(ctx, data_file=data_file)
    deck = deck or config.default_deck

    try:
        result = load_drafts(path)
    except RepriseError as e:
        raise _fail(e)

    for err in result.errors:
        typer.secho(f"Skipped {err}", fg="yellow")

    if dry_run:
        typer.echo(f"{len(result.drafts)} valid cards, {len(result.errors)} rejected.")
        return

    try:
        cards = _build_service(config).add_drafts(result.drafts, deck=deck)
    except RepriseError as e:
        raise _fail(e)

    typer.secho(f"Added {len(cards)} cards to '{deck or 'default'}'.", fg="green")
    if result.errors:
        raise typer.Exit(1)


@app.command()
def due(
    ctx: typer.Context,
    deck: Annotated[str | None, typer.Option(help="Filter by deck name.")] = None,
    limit: Annotated[int | None, typer.Option(help="Show at most this many cards.")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
    data_file: Annotated[Path | None, typer.Option(help="Card store override.")] = None,
):
    """List cards due for review, in study order."""
    config = _resolve_with_overrides(ctx, data_file=data_file)
    deck = deck or config.default_deck

    try:
        cards = _build_service(config).due_cards(deck, limit)
    except RepriseError as e:
        raise _fail(e)

    if json_output:
        typer.echo(
            json.dumps(
                [
                    {
                        "id": c.id,
                        "deck": c.deck,
                        "front": c.front,
                        "nextReviewAt": c.next_review_at.isoformat(),
                        "easeFactor": round(c.ease_factor, 2),
                    }
                    for c in cards
                ],
                indent=2,
            )
        )
        return

    if not cards:
        typer.secho("No cards due.", fg="green")
        return

    typer.echo(f"Due: {len(cards)}")
    for c in cards:
        typer.echo(f"  {_fmt_time(c.next_review_at)}  {c.ease_factor:.2f}  {_truncate(c.front)}")


def _prompt_grade() -> int:
    labels = "  ".join(f"[{g}] {label}" for g, label in REVIEW_BUTTONS.items())
    while True:
        raw = typer.prompt(labels, default="", show_default=False).strip()
        if raw.isdigit() and int(raw) in REVIEW_BUTTONS:
            return int(raw)
        typer.secho("Choose one of " + ", ".join(str(g) for g in REVIEW_BUTTONS), fg="yellow")


def _run_session(service: ReviewService) -> None:
    session = service.session
    while session.is_active:
        card = session.current_card
        if card is None:
            break
        flag = " [flagged]" if session.flags[session.cursor] else ""
        typer.echo(
            f"\nCard {session.cursor + 1} of {len(session.queue)}"
            f"  ({session.progress_percent:.0f}% answered){flag}"
        )
        typer.secho(card.front, bold=True)

        answer = session.current_answer
        if answer is not None:
            typer.echo(card.back)
            typer.echo(f"Already graded: {REVIEW_BUTTONS.get(answer, answer)}")
            prompt = "[Enter] next  [f]lag  [p]revious  [q]uit"
        else:
            prompt = "[Enter] show answer  [h]int  [f]lag  [p]revious  [q]uit"

        action = typer.prompt(prompt, default="", show_default=False).strip().lower()
        if action == "q":
            session.end()
            break
        if action == "f":
            flagged = session.toggle_flag()
            typer.echo("Flagged." if flagged else "Unflagged.")
            continue
        if action == "p":
            session.retreat()
            continue
        if answer is not None:
            service.advance()
            continue
        if action == "h":
            typer.echo(f"Hint: {card.hint or '(none)'}")
            continue

        typer.echo(card.back)
        updated = service.answer(_prompt_grade())
        days = updated.interval_days
        typer.echo(f"Next review in {days} day{'s' if days != 1 else ''}.")
        service.advance()


def _print_summary(service: ReviewService) -> None:
    session = service.session
    total = len(session.queue)
    typer.secho("\nSession complete!", fg="green", bold=True)
    typer.echo(f"Score: {session.score}/{total}")
    typer.echo(f"Answered: {session.answered_count}  Wrong: {session.wrong_count}")
    typer.echo(f"Flagged: {session.flagged_count}")
    typer.echo(f"Time: {_fmt_elapsed(session.elapsed.total_seconds())}")


@app.command()
def review(
    ctx: typer.Context,
    deck: Annotated[str | None, typer.Option(help="Only review this deck.")] = None,
    limit: Annotated[int | None, typer.Option(help="Maximum cards in the session.")] = None,
    data_file: Annotated[Path | None, typer.Option(help="Card store override.")] = None,
):
    """[bold green]Review[/bold green] the cards that are due."""
    config = _resolve_with_overrides(ctx, data_file=data_file)
    deck = deck or config.default_deck
    limit = limit or config.session_limit
    service = _build_service(config)

    try:
        service.start_session(deck, limit)
    except EmptyQueueError:
        typer.secho("No cards due. Come back later!", fg="green")
        return
    except RepriseError as e:
        raise _fail(e)

    try:
        while True:
            _run_session(service)
            _print_summary(service)

            session = service.session
            if not (session.wrong_count or session.flagged_count):
                break
            choice = typer.prompt(
                f"Retake [w]rong ({session.wrong_count}) / [f]lagged ({session.flagged_count}) / [q]uit",
                default="q",
            ).strip().lower()
            if choice not in ("w", "f"):
                break
            which = RetakeFilter.WRONG if choice == "w" else RetakeFilter.FLAGGED
            try:
                service.retake(which)
            except EmptySubsetError as e:
                typer.secho(humanize_error(e), fg="yellow")
                break
    except RepriseError as e:
        raise _fail(e)


@app.command()
def stats(
    ctx: typer.Context,
    deck: Annotated[str | None, typer.Option(help="Filter by deck name.")] = None,
    cards: Annotated[
        bool, typer.Option("--cards", help="Also list per-card metrics.")
    ] = False,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
    data_file: Annotated[Path | None, typer.Option(help="Card store override.")] = None,
):
    """Show deck statistics."""
    config = _resolve_with_overrides(ctx, data_file=data_file)
    deck = deck or config.default_deck
    service = _build_service(config)

    try:
        summary = service.summary(deck)
        enriched = service.get_enriched_stats(deck) if cards else []
    except RepriseError as e:
        raise _fail(e)

    data: dict[str, Any] = {
        "total": summary.total,
        "due": summary.due,
        "new": summary.new,
        "learning": summary.learning,
        "mastered": summary.mastered,
        "totalReviews": summary.total_reviews,
        "correctReviews": summary.correct_reviews,
        "accuracy": summary.accuracy,
        "nextDueAt": summary.next_due_at.isoformat() if summary.next_due_at else None,
    }
    if cards:
        data["cards"] = [
            {
                "id": e.card_id,
                "deck": e.deck,
                "front": e.front,
                "intervalDays": e.interval_days,
                "easeFactor": round(e.ease_factor, 2),
                "accuracy": e.accuracy,
                "daysOverdue": e.days_overdue,
                "isDue": e.is_due,
                "isMastered": e.is_mastered,
            }
            for e in enriched
        ]
    if json_output:
        typer.echo(json.dumps(data, indent=2))
        return

    typer.echo(f"Cards: {summary.total}  Due: {summary.due}")
    typer.echo(f"New: {summary.new}  Learning: {summary.learning}  Mastered: {summary.mastered}")
    if summary.accuracy is not None:
        typer.echo(f"Accuracy: {summary.accuracy:.0%} of {summary.total_reviews} reviews")
    typer.echo(f"Next due: {_fmt_time(summary.next_due_at)}")

    for e in enriched:
        accuracy = "-" if e.accuracy is None else f"{e.accuracy:.0%}"
        overdue = "new" if e.days_overdue is None else f"{e.days_overdue:+d}d"
        marker = "*" if e.is_mastered else " "
        typer.echo(
            f"{marker} {e.interval_days:>4}d  {e.ease_factor:.2f}  {accuracy:>4}  {overdue:>5}  "
            f"{_truncate(e.front, 40)}"
        )


@app.command()
def export(
    ctx: typer.Context,
    deck: Annotated[str | None, typer.Option(help="Deck to export.")] = None,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write to file instead of stdout.")
    ] = None,
    data_file: Annotated[Path | None, typer.Option(help="Card store override.")] = None,
):
    """Export cards as tab-separated front/back lines."""
    config = _resolve_with_overrides(ctx, data_file=data_file)
    deck = deck or config.default_deck

    try:
        tsv = _build_service(config).export(deck)
    except RepriseError as e:
        raise _fail(e)

    if not tsv:
        typer.secho("No cards to export.", fg="yellow")
        raise typer.Exit(1)

    if output is None:
        typer.echo(tsv, nl=False)
    else:
        output.write_text(tsv, encoding="utf-8")
        typer.secho(f"Exported {len(tsv.splitlines())} cards to {output}", fg="green")


# ---------------------------------------------------------------------------
# Deck subgroup
# ---------------------------------------------------------------------------


@deck_app.command("delete")
def deck_delete(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Deck to delete.")],
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Bypass confirmation.")
    ] = False,
    data_file: Annotated[Path | None, typer.Option(help="Card store override.")] = None,
):
    """Delete a deck and all of its cards."""
    config = _resolve_with_overrides(ctx, data_file=data_file)

    if not force and not typer.confirm(f"Delete every card in '{name}'?"):
        raise typer.Abort()

    try:
        removed = _build_service(config).delete_deck(name)
    except RepriseError as e:
        raise _fail(e)

    if removed:
        typer.secho(f"Deleted {removed} cards.", fg="green")
    else:
        typer.secho(f"No cards in deck '{name}'.", fg="yellow")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = {
        k: str(v) if isinstance(v, Path) else getattr(v, "value", v)
        for k, v in config.model_dump().items()
    }
    typer.echo(json.dumps(d, indent=2))
