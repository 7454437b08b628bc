"""Interactive CLI application."""
import logging
import os
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.prompt import Prompt

from vocab_srs.db import DEFAULT_DB_PATH
from vocab_srs.errors import EngineError
from vocab_srs.grading import normalize_answer
from vocab_srs.importer import import_words
from vocab_srs.models import QuestionType
from vocab_srs.service import LearningEngine

LOCAL_USER = "local"

console = Console()


class SessionExitRequested(Exception):
    """Raised when the user leaves a running session with 'q' or 'menu'."""


EXIT_WORDS = {"q", "menu"}


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def show_welcome():
    console.print(Panel(
        "[bold]Vocabulary Trainer[/bold]\n[dim]Spaced repetition for the words you collect[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("add", "Add a word"),
        ("import", "Import a word list"),
        ("today", "Show today's task"),
        ("practice", "Practice today's words"),
        ("wrong", "Review missed words"),
        ("schedule", "Upcoming reviews"),
        ("stats", "Progress statistics"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def ask_question(question) -> str | None:
    """Show one question and return the answer, or None to skip."""
    console.print(Panel(question.prompt, title=question.type.value, border_style="cyan"))
    if question.type == QuestionType.MULTIPLE_CHOICE:
        for option in question.options:
            console.print(f"  [cyan]{option.id})[/cyan] {option.text}")
        choices = [o.id for o in question.options] + ["skip", "q", "menu"]
        answer = session_prompt("\nYour answer", choices=choices)
    else:
        if question.type == QuestionType.DICTATION:
            console.print(f"[dim]Audio: {question.audio_url}  {question.phonetic or ''}[/dim]")
        elif question.hint:
            console.print(f"[dim]Hint: {question.hint}[/dim]")
        answer = session_prompt("\nYour answer (Enter to skip)", default="", show_default=False)
    if not answer.strip() or answer == "skip":
        return None
    return answer


def run_practice_session(engine: LearningEngine, user_id: str) -> None:
    session = engine.start_practice(user_id)
    if not session.questions:
        console.print("[yellow]Nothing due today![/yellow]")
        return
    console.print(f"\n[bold]Practice[/bold] — {len(session.questions)} questions\n")
    for question in session.questions:
        answer = ask_question(question)
        if answer is None:
            feedback = engine.skip_question(user_id, question.id)
            console.print(f"[yellow]Skipped.[/yellow] Answer: [green]{feedback.correct_answer}[/green]")
            continue
        feedback = engine.submit_answer(user_id, question.id, answer)
        if feedback.correct:
            console.print("[green]Correct![/green]")
        else:
            console.print(f"[red]Incorrect.[/red] Answer: [green]{feedback.correct_answer}[/green]")
        console.print()
    result = engine.complete_session(user_id)
    console.print(
        f"[bold]Score: {result.score}[/bold]  "
        f"({result.correct_answers}/{result.total_questions}, {result.duration_seconds}s)\n"
    )


def run_wrong_review(engine: LearningEngine, user_id: str) -> None:
    entries = engine.get_wrong_answer_queue(user_id)
    if not entries:
        console.print("[green]No missed words to review.[/green]")
        return
    for entry in entries:
        word = entry.word
        cue = entry.definition or "(no definition)"
        if entry.phonetic:
            cue += f"  [dim]{entry.phonetic}[/dim]"
        console.print(Panel(
            f"{cue}\nYou answered [red]{entry.user_wrong_answer or '(skipped)'}[/red]",
            title=f"Missed {entry.review_count + 1}x", border_style="yellow",
        ))
        answer = session_prompt("Type the word")
        correct = normalize_answer(answer) == normalize_answer(word)
        engine.review_wrong_answer(user_id, entry.word_id, correct)
        if correct:
            console.print("[green]Correct! Removed from the queue.[/green]\n")
        else:
            console.print(f"[red]Not quite.[/red] It was [green]{word}[/green]\n")


def cmd_add(engine: LearningEngine, user_id: str):
    text = Prompt.ask("Word").strip()
    if not text:
        return
    definition = Prompt.ask("Definition", default="")
    phonetic = Prompt.ask("Phonetic", default="")
    engine.on_word_added(user_id, text.lower(), text, definition, phonetic)
    console.print(f"[green]Added {text}[/green]")


def cmd_import(engine: LearningEngine, user_id: str):
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    result = import_words(engine, user_id, file_path)
    console.print(
        f"[green]Imported {result['added']} words from {result['filename']}[/green]"
        + (f" [dim]({result['skipped']} already known)[/dim]" if result["skipped"] else "")
    )


def cmd_today(engine: LearningEngine, user_id: str):
    task = engine.get_daily_task(user_id)
    if not task.words_count:
        console.print("[yellow]Nothing due today![/yellow]")
        return
    console.print(Panel(
        f"[bold]{task.words_count}[/bold] words, about [bold]{task.estimated_minutes}[/bold] min\n"
        f"[cyan]{', '.join(t.value for t in task.practice_types)}[/cyan]",
        title=f"Today's Task ({task.date.isoformat()})",
    ))


def cmd_schedule(engine: LearningEngine, user_id: str):
    table = Table(title="Review Schedule")
    table.add_column("Word", style="cyan")
    table.add_column("Next review")
    table.add_column("Interval", justify="right")
    table.add_column("Ease", justify="right")
    table.add_column("Reviews", justify="right")
    for item in engine.get_review_schedule(user_id):
        table.add_row(
            item.word, item.next_review_date.isoformat(), f"{item.interval_days}d",
            f"{item.ease_factor:.2f}", str(item.review_count),
        )
    console.print(table)


def cmd_stats(engine: LearningEngine, user_id: str):
    stats = engine.get_progress_stats(user_id)
    console.print(Panel(
        f"Words: [bold]{stats.total_words}[/bold]  "
        f"([green]{stats.mastered_words} mastered[/green], "
        f"[yellow]{stats.familiar_words} familiar[/yellow], "
        f"[red]{stats.learning_words} learning[/red])\n"
        f"Streak: [bold]{stats.current_streak}[/bold] days (best {stats.longest_streak})  |  "
        f"Study days: [bold]{stats.study_days}[/bold]\n"
        f"Sessions: [bold]{stats.total_practice_sessions}[/bold]  |  "
        f"Reviews: [bold]{stats.total_reviews}[/bold]  |  "
        f"Accuracy: [bold]{stats.average_accuracy * 100:.0f}%[/bold]",
        title="Progress", border_style="blue",
    ))

    table = Table(title="Last 7 Days")
    table.add_column("Date")
    table.add_column("Accuracy", justify="right")
    for point in stats.weekly_accuracy:
        bar = "█" * round(point.accuracy * 10)
        label = f"{point.accuracy * 100:.0f}% {bar}" if point.questions else "[dim]-[/dim]"
        table.add_row(point.date.isoformat(), label)
    console.print(table)

    for a in stats.achievements:
        mark = "[green]✔[/green]" if a.unlocked else "[dim]·[/dim]"
        console.print(f"  {mark} {a.name} [dim]{a.progress}/{a.target}[/dim]")

    events = engine.get_recent_activity(user_id, limit=5)
    if events:
        console.print("\n[bold]Recent activity[/bold]")
    for event in events:
        console.print(f"  [dim]{event.timestamp[:16]}[/dim] {event.description}")


COMMANDS = {
    "add": cmd_add,
    "import": cmd_import,
    "today": cmd_today,
    "practice": run_practice_session,
    "wrong": run_wrong_review,
    "schedule": cmd_schedule,
    "stats": cmd_stats,
}


def main():
    logging.basicConfig(level=os.environ.get("VOCAB_SRS_LOG_LEVEL", "WARNING").upper())
    engine = LearningEngine(os.environ.get("VOCAB_SRS_DB", DEFAULT_DB_PATH))
    engine.register_user(LOCAL_USER, os.environ.get("VOCAB_SRS_TIMEZONE", "UTC"))

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="practice").strip().lower()
        if choice in ("quit", "exit", "q"):
            console.print("[dim]See you tomorrow![/dim]")
            break
        command = COMMANDS.get(choice)
        if command is None:
            console.print("[red]Unknown command. Try again.[/red]")
            continue
        try:
            command(engine, LOCAL_USER)
        except SessionExitRequested:
            console.print("[dim]Left the session.[/dim]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except EngineError as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
