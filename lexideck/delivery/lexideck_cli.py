"""
LexiDeck: Main CLI for vocabulary study.

A Rich terminal interface for smart vocabulary sessions with flashcard,
quiz and spelling practice.

Commands:
- lexideck study    - Start a study session
- lexideck preview  - Show the words the next session would use
- lexideck words    - Browse the word list
- lexideck stats    - Show learning statistics
- lexideck add      - Add a custom word
- lexideck remove   - Delete a custom word
- lexideck note     - Show or edit a word's note
- lexideck status   - Set a word's status by hand
- lexideck config   - Session length, mode and filters
- lexideck define   - Show a word's definition
- lexideck reset    - Clear all learning progress
"""
from __future__ import annotations

import asyncio
import sys
import threading
from typing import List, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from config import Settings, get_settings
from lexideck.core.errors import CatalogError
from lexideck.core.mastery import REQUIRED_ENCOUNTERS, MasteryStatus

from .enrichment import (
    EnrichmentService,
    GeminiEnrichmentClient,
    QuizQuestion,
    WordDefinition,
)
from .practice import (
    OPTION_LETTERS,
    PracticeMode,
    PracticeSession,
    StudyAction,
    grade_quiz,
    grade_spelling,
    option_letter,
    resolve_quiz_choice,
)
from .session_selector import SessionPlan
from .word_catalog import WordEntry
from .word_store import WordStore

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="lexideck",
    help="LexiDeck: vocabulary study in the terminal",
    no_args_is_help=True,
)
console = Console()


# =============================================================================
# Styling
# =============================================================================

STYLES = {
    "correct": "bold green",
    "incorrect": "bold red",
    "info": "bold cyan",
    "warning": "bold yellow",
    "dim": "dim",
}


def style_status(status: MasteryStatus) -> str:
    return f"[{status.color}]{status.display_name}[/{status.color}]"


def style_mode(mode: PracticeMode) -> str:
    return f"[{mode.color}]{mode.display_name}[/{mode.color}]"


# =============================================================================
# Wiring
# =============================================================================


def open_store(settings: Settings | None = None) -> WordStore:
    """Create and load the word store for this process."""
    settings = settings or get_settings()
    store = WordStore.from_settings(settings)
    store.load()
    return store


def build_enrichment(store: WordStore, settings: Settings | None = None) -> EnrichmentService:
    """Enrichment service writing into the store's caches."""
    settings = settings or get_settings()
    client = GeminiEnrichmentClient(
        api_key=settings.gemini_api_key,
        api_base=settings.gemini_api_base,
        models=settings.get_gemini_models(),
        timeout_seconds=settings.enrichment_timeout_seconds,
        temperature=settings.gemini_temperature,
        max_output_tokens=settings.gemini_max_output_tokens,
    )
    return EnrichmentService(client, store.definitions, store.quizzes, on_cached=store.save)


def _require_word(store: WordStore, word: str) -> WordEntry:
    entry = store.get_word(word)
    if entry is None:
        console.print(f"[red]Unknown word: {escape(word)}[/red]")
        raise typer.Exit(1)
    return entry


# =============================================================================
# Display Helpers
# =============================================================================


def display_word_front(entry: WordEntry, store: WordStore, index: int, total: int, mode: PracticeMode) -> None:
    """Display the word being studied."""
    status = store.status_of(entry.id)
    state = store.get_state(entry.id)
    encounters = state.encounters if state else 0
    header = (
        f"Word {index}/{total}  |  {style_mode(mode)}  |  {style_status(status)}"
        f"  |  {encounters}/{REQUIRED_ENCOUNTERS}"
    )

    lines = [f"[bold]{escape(entry.id)}[/bold]"]
    details = " ".join(part for part in (entry.phonetics, entry.part_of_speech, entry.level) if part)
    if details:
        lines.append(f"[dim]{escape(details)}[/dim]")

    console.print(Panel(
        "\n".join(lines),
        title=header,
        title_align="left",
        border_style="cyan",
        padding=(1, 2),
    ))


def display_word_back(entry: WordEntry, definition: WordDefinition | None = None) -> None:
    """Display meaning, explanation, examples and the fetched definition."""
    lines: list[str] = []
    if entry.meaning:
        lines.append(f"[bold]{escape(entry.meaning)}[/bold]")
    if entry.explanation:
        lines.append(escape(entry.explanation))
    for example in entry.examples:
        lines.append(f"[italic]- {escape(example)}[/italic]")

    if definition is not None:
        style = "dim" if definition.is_fallback else "white"
        lines.append("")
        lines.append(f"[{style}]{escape(definition.english_definition)}[/{style}]")
        if definition.vietnamese_definition:
            lines.append(f"[{style}]{escape(definition.vietnamese_definition)}[/{style}]")
        for example in definition.examples:
            lines.append(f"[{style} italic]- {escape(example)}[/{style} italic]")

    if entry.note:
        lines.append("")
        lines.append(f"[yellow]Note: {escape(entry.note)}[/yellow]")

    console.print(Panel("\n".join(lines) or "[dim]No details[/dim]", border_style="blue", padding=(1, 2)))


def display_quiz(quiz: QuizQuestion) -> None:
    lines = [f"[bold]{escape(quiz.question)}[/bold]", ""]
    for i, option in enumerate(quiz.options):
        lines.append(f"  {option_letter(i)}. {escape(option)}")
    border = "dim" if quiz.is_fallback else "green"
    console.print(Panel("\n".join(lines), border_style=border, padding=(1, 2)))


def display_plan(plan: SessionPlan) -> None:
    console.print(f"\n[bold]Session: {plan.total_words} words[/bold] ({'smart' if plan.smart else 'traditional'})")
    if plan.smart:
        console.print(f"  New words: {plan.from_new + plan.from_new_backfill}")
        console.print(f"  Focus words: {plan.from_focus}")
        console.print(f"  Review words: {plan.from_review_queue + plan.from_learning}")
    console.print(f"  Eligible pool: {plan.pool_size}")
    console.print(f"  Estimated time: ~{plan.estimated_minutes} min")
    console.print()


def _display_session_summary(stats: dict) -> None:
    """Display end-of-session summary."""
    body = (
        f"[bold]Session Complete![/bold]\n\n"
        f"Duration: {stats['duration_minutes']:.1f} minutes\n"
        f"Words practiced: {stats['words_practiced']}\n"
        f"Completed: {stats['completed']}  Known: {stats['marked_known']}  Skipped: {stats['skipped']}"
    )
    if stats["graded"]:
        body += f"\nAccuracy: {stats['accuracy_percent']:.1f}% ({stats['correct']}/{stats['graded']})"
    console.print("\n")
    console.print(Panel(body, title="Summary", border_style="green"))


# =============================================================================
# Study Loop
# =============================================================================

ACTION_PROMPT = "Action: [c]omplete  [g]ot it  [s]kip  [f]ocus  needs-[p]ractice  [q]uit"
ACTION_CHOICES = [action.key for action in StudyAction]


def _settle(future: asyncio.Future, result: str | None, error: Exception | None) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)


async def _ask(prompt: str, **kwargs) -> str:
    """
    Run a blocking prompt without stalling background fetches.

    The prompt runs on a daemon thread, so an interrupted session can exit
    while input() is still waiting.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future = loop.create_future()

    def read() -> None:
        try:
            answer = Prompt.ask(prompt, console=console, **kwargs)
        except Exception as e:
            outcome: tuple[str | None, Exception | None] = (None, e)
        else:
            outcome = (answer, None)
        try:
            loop.call_soon_threadsafe(_settle, future, *outcome)
        except RuntimeError:
            # Loop already closed after an interrupt
            pass

    threading.Thread(target=read, name="lexideck-prompt", daemon=True).start()
    return await future


async def _ask_action(default: StudyAction = StudyAction.COMPLETE) -> StudyAction:
    key = await _ask(f"\n[dim]{ACTION_PROMPT}[/dim]", choices=ACTION_CHOICES, default=default.key)
    return StudyAction.from_key(key)


async def _practice_flashcard(entry: WordEntry, service: EnrichmentService, timeout: float) -> bool | None:
    await _ask("\n[dim]Press Enter to reveal[/dim]", default="", show_default=False)
    definition = await service.wait_for_definition(entry.id, timeout)
    display_word_back(entry, definition)
    return None


async def _practice_quiz(entry: WordEntry, service: EnrichmentService, timeout: float) -> bool | None:
    with console.status("Loading question..."):
        quiz = await service.wait_for_quiz(entry.id, timeout)
    display_quiz(quiz)

    choices = list(OPTION_LETTERS) + [c.lower() for c in OPTION_LETTERS]
    answer = await _ask("Your answer (A/B/C/D)", choices=choices, show_choices=False)
    correct = grade_quiz(quiz, answer)
    if quiz.is_fallback:
        console.print("[dim]Quiz unavailable, answer not graded.[/dim]")
        return None

    if correct:
        console.print(f"[{STYLES['correct']}]Correct![/{STYLES['correct']}]")
    else:
        chosen = resolve_quiz_choice(quiz, answer)
        console.print(f"[{STYLES['incorrect']}]Incorrect[/{STYLES['incorrect']}] ({escape(str(chosen))})")
        console.print(f"Answer: {option_letter(quiz.correct_index)}. {escape(quiz.correct_answer)}")
    display_word_back(entry)
    return correct


async def _practice_spelling(entry: WordEntry) -> bool | None:
    clue = entry.meaning or entry.explanation or "(no clue available)"
    console.print(Panel(f"[bold]{escape(clue)}[/bold]", title="Spell the word", border_style="magenta"))
    answer = await _ask("Spelling")
    correct = grade_spelling(entry.id, answer)
    if correct:
        console.print(f"[{STYLES['correct']}]Correct![/{STYLES['correct']}]")
    else:
        console.print(f"[{STYLES['incorrect']}]Incorrect[/{STYLES['incorrect']}] - {escape(entry.id)}")
    display_word_back(entry)
    return correct


async def run_study_session(
    store: WordStore,
    service: EnrichmentService,
    plan: SessionPlan,
    mode: PracticeMode,
    display_timeout: float,
) -> PracticeSession:
    """Step through the planned words until finished or the learner quits."""
    session = PracticeSession(word_ids=plan.word_ids, mode=mode)
    kind = EnrichmentService.QUIZ if mode == PracticeMode.QUIZ else EnrichmentService.DEFINITION

    try:
        if session.current is not None:
            service.prefetch(session.current, kind)

        while not session.is_finished:
            word_id = session.current
            entry = store.get_word(word_id) if word_id else None
            if entry is None:
                # Deleted since the session was planned
                session.position += 1
                continue

            if session.upcoming is not None:
                service.prefetch(session.upcoming, kind)

            console.print()
            display_word_front(entry, store, session.position + 1, session.total, mode)

            if mode == PracticeMode.QUIZ:
                correct = await _practice_quiz(entry, service, display_timeout)
            elif mode == PracticeMode.SPELLING:
                correct = await _practice_spelling(entry)
            else:
                correct = await _practice_flashcard(entry, service, display_timeout)

            default = StudyAction.NEEDS_PRACTICE if correct is False else StudyAction.COMPLETE
            action = await _ask_action(default)
            session.apply(store, action, correct=correct)
    except asyncio.CancelledError:
        # Ctrl-C under asyncio.run cancels this task
        task = asyncio.current_task()
        if task is not None:
            task.uncancel()
        console.print("\n\n[yellow]Session interrupted.[/yellow]")
        session.quit_early = True
    except (KeyboardInterrupt, EOFError):
        console.print("\n\n[yellow]Session interrupted.[/yellow]")
        session.quit_early = True
    finally:
        await service.close()

    return session


# =============================================================================
# Commands
# =============================================================================


@app.command()
def study(
    mode: PracticeMode = typer.Option(
        PracticeMode.FLASHCARD,
        "--mode", "-m",
        help="Practice mode",
        case_sensitive=False,
    ),
    length: Optional[int] = typer.Option(
        None,
        "--length", "-n",
        help="Words in this session (default: saved session length)",
    ),
    smart: Optional[bool] = typer.Option(
        None,
        "--smart/--traditional",
        help="Selection mode (default: saved preference)",
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Start without confirmation"),
) -> None:
    """
    Start an interactive study session.

    Picks words with the session selector, then walks through them in the
    chosen practice mode. Progress is saved after every word.
    """
    console.print("\n[bold cyan]LexiDeck[/bold cyan] - Vocabulary Study", style="bold")
    console.print("=" * 40)

    settings = get_settings()
    store = open_store(settings)
    plan = store.build_session(length=length, smart=smart)

    if plan.total_words == 0:
        console.print("\n[yellow]No words available.[/yellow]")
        console.print("Adjust the session filters with 'lexideck config' or add words.")
        raise typer.Exit(0)

    display_plan(plan)
    if not yes and not Confirm.ask("Start session?", default=True):
        raise typer.Exit(0)

    service = build_enrichment(store, settings)
    session = asyncio.run(
        run_study_session(store, service, plan, mode, settings.enrichment_display_timeout)
    )
    _display_session_summary(session.summary())


@app.command()
def preview(
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Number of words to preview"),
    smart: Optional[bool] = typer.Option(None, "--smart/--traditional", help="Selection mode"),
) -> None:
    """Preview the words a session would use (no progress is recorded)."""
    store = open_store()
    plan = store.build_session(length=limit, smart=smart)

    if plan.total_words == 0:
        console.print("[yellow]No words available.[/yellow]")
        return

    console.print("\n[bold]Upcoming Words[/bold]\n")
    table = Table()
    table.add_column("Word")
    table.add_column("Level")
    table.add_column("Status")
    table.add_column("Encounters", justify="right")

    for entry in plan.words:
        state = store.get_state(entry.id)
        table.add_row(
            escape(entry.id),
            entry.level or "-",
            style_status(store.status_of(entry.id)),
            str(state.encounters if state else 0),
        )
    console.print(table)


@app.command()
def words(
    level: Optional[str] = typer.Option(None, "--level", "-l", help="Show one level only"),
    status: Optional[str] = typer.Option(None, "--status", "-s", help="Show one status only"),
    search: Optional[str] = typer.Option(None, "--search", "-q", help="Search words and meanings"),
    clear: bool = typer.Option(False, "--clear", help="Clear the saved browse filters"),
    page: int = typer.Option(1, "--page", "-p", min=1, help="Page number"),
    page_size: int = typer.Option(25, "--page-size", min=1, help="Words per page"),
) -> None:
    """Browse the word list. Filters given here are remembered."""
    store = open_store()

    try:
        if clear:
            store.set_selected_level(None)
            store.set_selected_status(None)
            store.set_search_term("")
        if level is not None:
            store.set_selected_level(level)
        if status is not None:
            store.set_selected_status(status)
        if search is not None:
            store.set_search_term(search)
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    filtered = store.get_filtered_words()
    pages = max(1, -(-len(filtered) // page_size))
    start = (page - 1) * page_size
    shown = filtered[start:start + page_size]

    table = Table(title=f"Words (page {min(page, pages)}/{pages})")
    table.add_column("Word", style="bold")
    table.add_column("Level")
    table.add_column("POS", style="dim")
    table.add_column("Meaning")
    table.add_column("Status")
    table.add_column("", style="yellow")

    for entry in shown:
        flags = ("custom " if entry.is_custom else "") + ("note" if entry.note else "")
        table.add_row(
            escape(entry.id),
            entry.level or "-",
            entry.part_of_speech or "",
            escape(entry.meaning),
            style_status(store.status_of(entry.id)),
            flags.strip(),
        )
    console.print(table)

    word_stats = store.get_word_stats()
    console.print(
        f"[dim]{word_stats.total} words | {word_stats.known} known | "
        f"{word_stats.learning} learning | {word_stats.percent_complete}% complete[/dim]"
    )


@app.command()
def stats() -> None:
    """Show learning statistics and progress."""
    store = open_store()
    completion = store.get_completion_stats()

    console.print("\n[bold cyan]Learning Statistics[/bold cyan]")
    console.print("=" * 40)

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Total words", str(completion.total))
    table.add_row("Completed", str(completion.completed))
    table.add_row("In progress", str(completion.in_progress))
    table.add_row("Not started", str(completion.not_started))
    table.add_row("Complete", f"{completion.percent_complete}%")
    table.add_row("Review queue", str(len(store.review_queue)))
    table.add_row("Custom words", str(store.catalog.custom_count))
    console.print(table)

    console.print("\n[bold]By Status[/bold]")
    status_table = Table()
    status_table.add_column("Status")
    status_table.add_column("Words", justify="right")
    for value, count in store.status_breakdown().items():
        status_table.add_row(style_status(MasteryStatus(value)), str(count))
    console.print(status_table)


@app.command()
def add(
    word: str = typer.Argument(..., help="The word to add"),
    meaning: str = typer.Option("", "--meaning", "-m", help="Meaning in your language"),
    level: Optional[str] = typer.Option(None, "--level", "-l", help="CEFR level (A1-C2)"),
    pos: Optional[str] = typer.Option(None, "--pos", help="Part of speech"),
    phonetics: Optional[str] = typer.Option(None, "--phonetics", help="Pronunciation"),
    explanation: str = typer.Option("", "--explanation", "-e", help="English explanation"),
    example: Optional[List[str]] = typer.Option(None, "--example", help="Example sentence (repeatable)"),
    note: Optional[str] = typer.Option(None, "--note", help="Personal note"),
) -> None:
    """Add (or update) a custom word."""
    store = open_store()
    entry = WordEntry(
        id=word.strip(),
        level=level,
        part_of_speech=pos,
        phonetics=phonetics,
        meaning=meaning,
        explanation=explanation,
        examples=list(example or []),
        note=note,
    )
    existed = store.get_word(entry.id) is not None

    try:
        stored = store.add_custom_word(entry)
    except CatalogError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    verb = "Updated" if existed else "Added"
    console.print(f"[green]{verb} '{escape(stored.id)}'[/green]")


@app.command()
def remove(
    word: str = typer.Argument(..., help="Custom word to delete"),
    confirm: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a custom word with its note and progress."""
    store = open_store()
    entry = _require_word(store, word)
    if not entry.is_custom:
        console.print(f"[red]'{escape(word)}' is a built-in word and cannot be removed.[/red]")
        raise typer.Exit(1)

    if not confirm and not Confirm.ask(f"Delete '{word}'?", default=False):
        raise typer.Exit(0)

    store.remove_word(word)
    console.print(f"[green]Removed '{escape(word)}'[/green]")


@app.command()
def note(
    word: str = typer.Argument(..., help="Word to annotate"),
    text: Optional[str] = typer.Argument(None, help="New note (omit to show the current one)"),
    clear: bool = typer.Option(False, "--clear", help="Delete the note"),
) -> None:
    """Show, set or clear a word's note."""
    store = open_store()
    _require_word(store, word)

    if clear:
        store.set_note(word, None)
        console.print(f"[green]Note cleared for '{escape(word)}'[/green]")
    elif text is None:
        current = store.get_note(word)
        console.print(escape(current) if current else "[dim]No note[/dim]")
    else:
        store.set_note(word, text)
        console.print(f"[green]Note saved for '{escape(word)}'[/green]")


@app.command()
def status(
    word: str = typer.Argument(..., help="Word to update"),
    new_status: str = typer.Argument(..., help="new, learning, focus, known or skipped"),
) -> None:
    """Set a word's status by hand."""
    store = open_store()
    _require_word(store, word)

    try:
        state = store.update_word_status(word, new_status)
    except ValueError:
        valid = ", ".join(s.value for s in MasteryStatus)
        console.print(f"[red]Invalid status '{escape(new_status)}'. Choose one of: {valid}[/red]")
        raise typer.Exit(1)

    if state is not None:
        console.print(f"'{escape(word)}' is now {style_status(state.status)}")


@app.command()
def config(
    length: Optional[int] = typer.Option(None, "--length", "-n", help="Session length"),
    smart: Optional[bool] = typer.Option(None, "--smart/--traditional", help="Selection mode"),
    level: Optional[List[str]] = typer.Option(None, "--level", "-l", help="Session level filter (repeatable)"),
    status_filter: Optional[List[str]] = typer.Option(
        None, "--status", "-s", help="Session status filter (repeatable)"
    ),
    clear_filters: bool = typer.Option(False, "--clear-filters", help="Study all levels and statuses"),
) -> None:
    """Show or change session preferences."""
    store = open_store()

    if length is not None:
        applied = store.set_session_length(length)
        if applied != length:
            console.print(f"[yellow]Session length clamped to {applied}[/yellow]")
    if smart is not None:
        store.set_use_smart(smart)
    if clear_filters:
        store.set_learning_levels([])
        store.set_learning_statuses([])
    if level:
        store.set_learning_levels(level)
    if status_filter:
        try:
            store.set_learning_statuses(status_filter)
        except ValueError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            raise typer.Exit(1)

    filters = store.filters
    table = Table(show_header=False, box=None)
    table.add_column("Setting", style="dim")
    table.add_column("Value", style="bold")
    table.add_row("Session length", str(filters.session_length))
    table.add_row("Mode", "smart" if filters.smart else "traditional")
    table.add_row("Levels", ", ".join(sorted(filters.levels)) or "all")
    table.add_row("Statuses", ", ".join(sorted(filters.statuses)) or "all")
    table.add_row("Available levels", ", ".join(store.levels))
    console.print(table)


@app.command()
def define(
    word: str = typer.Argument(..., help="Word to look up"),
    quiz: bool = typer.Option(False, "--quiz", help="Show a quiz question instead"),
) -> None:
    """Show a word's definition (cached, or fetched from Gemini)."""
    settings = get_settings()
    store = open_store(settings)
    entry = _require_word(store, word)
    service = build_enrichment(store, settings)

    async def fetch() -> WordDefinition | QuizQuestion:
        try:
            if quiz:
                return await service.get_quiz(entry.id)
            return await service.get_definition(entry.id)
        finally:
            await service.close()

    with console.status(f"Looking up '{escape(word)}'..."):
        payload = asyncio.run(fetch())

    if isinstance(payload, QuizQuestion):
        display_quiz(payload)
        console.print(f"[dim]Answer: {option_letter(payload.correct_index)}. {escape(payload.correct_answer)}[/dim]")
    else:
        display_word_back(entry, payload)


@app.command()
def reset(
    confirm: bool = typer.Option(
        False,
        "--yes", "-y",
        help="Skip confirmation",
    ),
) -> None:
    """Clear all learning progress (words and notes are kept)."""
    if not confirm and not Confirm.ask("Reset ALL learning progress? This cannot be undone!", default=False):
        raise typer.Exit(0)

    store = open_store()
    count = store.reset_progress()
    console.print(f"[green]Progress reset for {count} words.[/green]")


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """CLI entry point."""
    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        level=get_settings().log_level,
        format="<level>{message}</level>",
    )

    app()


if __name__ == "__main__":
    main()
