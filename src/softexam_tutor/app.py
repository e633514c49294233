"""Interactive CLI application."""
import logging
import os
import re
import uuid
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt, IntPrompt
from rich.table import Table

from softexam_tutor.dashboard import (
    calc_readiness_score, get_readiness_label, get_readiness_color,
    get_chapter_scores, get_study_summary, get_weak_chapters,
)
from softexam_tutor.exceptions import NoActiveSessionError
from softexam_tutor.exporter import (
    export_statistics_csv, export_wrong_questions_csv, export_practice_records_csv,
)
from softexam_tutor.identity import ExamLevel, types_for_level
from softexam_tutor.models import KnowledgeChapter, PracticeType
from softexam_tutor.practice import PRACTICE_QUESTION_COUNT
from softexam_tutor.seed import available_exam_types, load_built_in_questions
from softexam_tutor.storage import DEFAULT_DATA_DIR
from softexam_tutor.workspace import Workspace

HOME_ENV_VAR = "SOFTEXAM_TUTOR_HOME"
EXIT_WORDS = ("q", "menu")

console = Console()
logger = logging.getLogger(__name__)


class SessionExitRequested(Exception):
    """Raised when the user types 'q' or 'menu' inside a session."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str] | None = None, **kwargs) -> int:
    """Like IntPrompt, but 'q'/'menu' leave the session."""
    while True:
        answer = session_prompt(prompt, **kwargs).strip()
        if answer.isdigit() and (choices is None or answer in choices):
            return int(answer)
        console.print("[red]Please enter one of the listed numbers.[/red]")


def parse_selection(raw: str) -> frozenset:
    """'A', 'a,c', 'A C' or 'ac' -> {'A', 'C'}."""
    tokens = [t for t in re.split(r"[\s,，]+", raw.strip().upper()) if t]
    if len(tokens) == 1 and len(tokens[0]) > 1 and tokens[0].isalpha():
        tokens = list(tokens[0])
    return frozenset(tokens)


def configure_logging(level: int = logging.WARNING) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def get_data_dir() -> Path:
    return Path(os.environ.get(HOME_ENV_VAR) or DEFAULT_DATA_DIR)


def show_welcome(workspace: Workspace):
    console.print(Panel(
        "[bold]软考刷题助手[/bold]\n[dim]Software Qualification Exam Practice[/dim]\n"
        f"[cyan]{workspace.identity.identity}[/cyan]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("practice", "Daily, random, or chapter practice"),
        ("mock", "Timed mock exam"),
        ("wrong", "Wrong-question book"),
        ("chapters", "Manage knowledge chapters"),
        ("dashboard", "Readiness score + statistics"),
        ("identity", "Switch exam level/type"),
        ("export", "Export statistics to CSV"),
        ("seed", "Load built-in questions"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def show_question(index: int, total: int, question) -> None:
    multi = " [dim](multiple answers)[/dim]" if len(question.correct_answers) > 1 else ""
    console.print(f"[bold]Q{index}/{total}.[/bold] {question.title}{multi}\n")
    for key, text in sorted(question.options.items()):
        console.print(f"  [cyan]{key})[/cyan] {text}")


def show_session_summary(session) -> None:
    answered = len(session.answers)
    correct = session.correct_count
    pct = f" ({correct / answered * 100:.0f}%)" if answered else ""
    console.print(Panel(
        f"Answered [bold]{answered}[/bold] of {len(session.questions)}  |  "
        f"Correct [bold]{correct}[/bold]{pct}  |  "
        f"Time [bold]{session.elapsed_minutes()}[/bold] min",
        title=f"{session.session_type.display_name} finished", border_style="green",
    ))


def run_practice_session(workspace: Workspace, session) -> None:
    """Ask every unanswered question of ``session``; raises SessionExitRequested on 'q'."""
    engine = workspace.engine
    total = len(session.questions)
    for i, question in enumerate(session.questions, 1):
        if question.id in session.answers:
            continue
        if engine.current is not session:
            console.print("[yellow]Time is up![/yellow]")
            return
        console.print()
        remaining = engine.seconds_remaining()
        if remaining is not None:
            console.print(f"[dim]Time left: {remaining // 60}:{remaining % 60:02d}[/dim]")
        show_question(i, total, question)

        selected = frozenset()
        while not selected or not selected.issubset(question.options):
            if selected:
                console.print("[red]Pick from the listed options.[/red]")
            selected = parse_selection(session_prompt("\nYour answer"))

        try:
            record = engine.submit_answer(question.id, selected)
        except NoActiveSessionError:
            console.print("[yellow]Time is up! That answer was not counted.[/yellow]")
            return
        if record.is_correct:
            console.print("[green]Correct![/green]")
        else:
            answer = ",".join(sorted(question.correct_answers))
            console.print(f"[red]Incorrect.[/red] Answer: [green]{answer}[/green]")
        if question.explanation:
            console.print(f"[dim]{question.explanation}[/dim]")


def _play(workspace: Workspace, session) -> None:
    try:
        run_practice_session(workspace, session)
    except SessionExitRequested:
        console.print("[dim]Stopping early.[/dim]")
    finally:
        if workspace.engine.current is session:
            workspace.engine.end()
    show_session_summary(session)


def _pick_chapter(workspace: Workspace) -> str | None:
    identity = workspace.identity
    names = workspace.chapters.names_by_identity(identity.level.display_name, identity.exam_type.display_name)
    names |= {
        q.chapter for q in workspace.questions.by_identity(identity.level, identity.exam_type) if q.chapter
    }
    if not names:
        console.print("[yellow]No chapters for this exam yet.[/yellow]")
        return None
    ordered = sorted(names)
    for i, name in enumerate(ordered, 1):
        console.print(f"  [cyan]{i}[/cyan]) {name}")
    choice = session_int_prompt("Select chapter ('q' to cancel)", choices=[str(i) for i in range(1, len(ordered) + 1)])
    return ordered[choice - 1]


def cmd_identity(workspace: Workspace):
    context = workspace.identity
    console.print(f"\nCurrent exam: [cyan]{context.identity}[/cyan]")
    levels = list(ExamLevel)
    for i, level in enumerate(levels, 1):
        console.print(f"  [cyan]{i}[/cyan]) {level.display_name}")
    level = levels[IntPrompt.ask("Select level", choices=[str(i) for i in range(1, len(levels) + 1)]) - 1]

    exam_types = types_for_level(level)
    for i, exam_type in enumerate(exam_types, 1):
        console.print(f"  [cyan]{i}[/cyan]) {exam_type.display_name}")
    choice = IntPrompt.ask("Select exam", choices=[str(i) for i in range(1, len(exam_types) + 1)])
    context.set_type(exam_types[choice - 1])
    console.print(f"[green]Now practicing for {context.identity}[/green]")


def cmd_practice(workspace: Workspace):
    console.print("\n[bold]Practice[/bold]")
    mode = Prompt.ask("Mode", choices=["daily", "random", "topic"], default="daily")
    chapter = None
    if mode == "topic":
        chapter = _pick_chapter(workspace)
        if chapter is None:
            return
        session = workspace.start_practice(PracticeType.SPECIAL_TOPIC, chapter=chapter)
    else:
        count = IntPrompt.ask("Number of questions", default=PRACTICE_QUESTION_COUNT)
        session_type = PracticeType.DAILY if mode == "daily" else PracticeType.RANDOM
        session = workspace.start_practice(session_type, count=count)
    if session is None:
        console.print("[yellow]No questions for this exam yet. Use 'seed' to load the built-in bank.[/yellow]")
        return
    console.print("[dim]Type 'q' or 'menu' to stop early.[/dim]")
    _play(workspace, session)


def cmd_mock(workspace: Workspace):
    console.print(Panel(
        "50 questions, 150 minutes. Unanswered questions count as not attempted.",
        title="Mock Exam", border_style="magenta",
    ))
    if Prompt.ask("Start now?", choices=["y", "n"], default="y") != "y":
        return
    session = workspace.start_practice(PracticeType.MOCK_EXAM)
    if session is None:
        console.print("[yellow]No questions for this exam yet. Use 'seed' to load the built-in bank.[/yellow]")
        return
    _play(workspace, session)


def cmd_wrong(workspace: Workspace):
    identity = workspace.identity
    entries = workspace.wrong_book.for_identity(identity.level.display_name, identity.exam_type.display_name)
    if not entries:
        console.print("[green]Your wrong-question book is empty. Keep it up![/green]")
        return
    table = Table(title="Wrong-Question Book")
    table.add_column("Question", style="cyan")
    table.add_column("Errors", justify="right")
    table.add_column("Streak", justify="right")
    table.add_column("Status")
    for info in sorted(entries, key=lambda e: e.error_count, reverse=True):
        question = workspace.questions.get(info.question_id)
        title = question.title if question else f"[dim]{info.question_id} (deleted)[/dim]"
        status = "[green]mastered[/green]" if info.mastered else "[red]learning[/red]"
        table.add_row(title[:50], str(info.error_count), str(info.consecutive_correct_count), status)
    console.print(table)

    if Prompt.ask("Practice unmastered questions now?", choices=["y", "n"], default="y") == "y":
        session = workspace.start_review()
        if session is None:
            console.print("[green]Everything here is mastered.[/green]")
            return
        _play(workspace, session)


def cmd_chapters(workspace: Workspace):
    identity = workspace.identity
    level = identity.level.display_name
    exam_type = identity.exam_type.display_name
    chapters = sorted(workspace.chapters.by_identity(level, exam_type), key=lambda c: c.name)

    table = Table(title=f"Chapters: {identity.identity}")
    table.add_column("#", justify="right")
    table.add_column("Chapter", style="cyan")
    table.add_column("Questions", justify="right")
    for i, chapter in enumerate(chapters, 1):
        table.add_row(str(i), chapter.name, str(len(workspace.questions.by_chapter(chapter.name))))
    console.print(table)

    action = Prompt.ask("Action", choices=["add", "remove", "back"], default="back")
    if action == "add":
        name = Prompt.ask("Chapter name").strip()
        if not name:
            return
        if workspace.chapters.name_exists(name, level, exam_type):
            console.print(f"[red]Chapter '{name}' already exists.[/red]")
            return
        workspace.chapters.add(KnowledgeChapter(
            id=str(uuid.uuid4()), name=name, level=level, exam_type=exam_type,
        ))
        console.print(f"[green]Added chapter {name}[/green]")
    elif action == "remove" and chapters:
        choice = IntPrompt.ask("Chapter number", choices=[str(i) for i in range(1, len(chapters) + 1)])
        chapter = chapters[choice - 1]
        if workspace.chapters.remove(chapter.id, workspace.questions):
            console.print(f"[green]Removed chapter {chapter.name}[/green]")
        else:
            blocking = workspace.chapters.blocking_question_count(chapter.id, workspace.questions)
            console.print(f"[red]{blocking} questions still use '{chapter.name}'.[/red]")


def cmd_dashboard(workspace: Workspace):
    identity = workspace.identity
    stats = workspace.statistics.for_identity(identity.identity)
    entries = workspace.wrong_book.for_identity(identity.level.display_name, identity.exam_type.display_name)
    score = calc_readiness_score(stats, entries)
    label = get_readiness_label(score)
    color = get_readiness_color(score)
    summary = get_study_summary(stats, workspace.statistics.today_record(identity.identity))

    console.print(Panel(f"[bold]{identity.identity}[/bold]", title="Readiness Dashboard", border_style="blue"))

    bar_filled = int(score / 5)
    bar_empty = 20 - bar_filled
    bar = f"[{color}]{'█' * bar_filled}{'░' * bar_empty}[/{color}]"
    console.print(f"\n  Overall Readiness: [bold]{score}%[/bold] {bar} [{color}]{label}[/{color}]\n")

    chapter_scores = get_chapter_scores(stats)
    if chapter_scores:
        table = Table(title="Chapter Breakdown")
        table.add_column("Chapter", style="cyan")
        table.add_column("Answered", justify="right")
        table.add_column("Score", justify="right")
        table.add_column("Status")
        for cs in chapter_scores:
            sc_color = get_readiness_color(cs["score"])
            table.add_row(
                cs["name"], str(cs["answered"]), f"{cs['score']}%",
                f"[{sc_color}]{cs['label']}[/{sc_color}]",
            )
        console.print(table)

    console.print(f"\n  Practices: [bold]{summary['total_practices']}[/bold]  |  "
                  f"Questions: [bold]{summary['total_questions']}[/bold]  |  "
                  f"Accuracy: [bold]{summary['accuracy']}%[/bold]  |  "
                  f"Streak: [bold]{summary['daily_streak']}[/bold] days  |  "
                  f"Today: [bold]{summary['today_questions']}[/bold] questions")
    if summary["achievements"]:
        console.print(f"  Achievements: [magenta]{', '.join(summary['achievements'])}[/magenta]")

    weak = get_weak_chapters(stats)
    if weak:
        console.print(f"\n  [yellow]Recommendation: Focus on {weak[0]}[/yellow]")


def cmd_export(workspace: Workspace):
    identity = workspace.identity
    stats = workspace.statistics.for_identity(identity.identity)
    entries = workspace.wrong_book.for_identity(identity.level.display_name, identity.exam_type.display_name)
    kind = Prompt.ask("Export", choices=["statistics", "wrong", "records"], default="records")
    path = Prompt.ask("File path", default=f"softexam_{kind}.csv")
    if kind == "statistics":
        ok = export_statistics_csv(path, stats)
    elif kind == "wrong":
        ok = export_wrong_questions_csv(path, entries)
    else:
        ok = export_practice_records_csv(path, stats, entries)
    if ok:
        console.print(f"[green]Exported to {path}[/green]")
    else:
        console.print(f"[red]Could not write {path}[/red]")


def cmd_seed(workspace: Workspace):
    exam_type = workspace.identity.exam_type
    if exam_type not in available_exam_types():
        names = ", ".join(t.display_name for t in available_exam_types())
        console.print(f"[yellow]No built-in questions for {exam_type.display_name}. Available: {names}[/yellow]")
        return
    added = load_built_in_questions(workspace.questions, workspace.chapters, exam_type)
    console.print(f"[green]Added {added} built-in questions for {exam_type.display_name}.[/green]")


def main():
    configure_logging()
    workspace = Workspace.open(get_data_dir())

    try:
        if not workspace.identity.is_selected():
            console.print("[dim]Setting up for first use...[/dim]")
            cmd_identity(workspace)
            cmd_seed(workspace)
            console.print("[green]Ready![/green]\n")

        show_welcome(workspace)

        commands = {
            "practice": cmd_practice,
            "mock": cmd_mock,
            "wrong": cmd_wrong,
            "chapters": cmd_chapters,
            "dashboard": cmd_dashboard,
            "identity": cmd_identity,
            "export": cmd_export,
            "seed": cmd_seed,
        }
        while True:
            show_menu()
            choice = Prompt.ask("\n[bold]>[/bold]", default="practice").strip().lower()
            try:
                if choice in commands:
                    commands[choice](workspace)
                elif choice in ("quit", "exit", "q"):
                    console.print("[dim]Good luck on your exam![/dim]")
                    break
                else:
                    console.print("[red]Unknown command. Try again.[/red]")
            except SessionExitRequested:
                console.print("[dim]Back to the menu.[/dim]")
            except KeyboardInterrupt:
                console.print("\n[dim]Use 'quit' to exit.[/dim]")
            except Exception as e:
                logger.exception("Command %s failed", choice)
                console.print(f"[red]Error: {e}[/red]")
    finally:
        workspace.close()


if __name__ == "__main__":
    main()
