"""Rich console front end for taking a quiz session.

The loop renders one question at a time, reads a command from an injected
input provider and forwards selections to :class:`SessionManager`. On submit
it finalizes, scores and renders the report; quitting leaves the session
open so it can be resumed later.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from ..bank import Period, Question
from ..errors import InvalidOptionError, SessionClosedError
from ..report import ReportView, format_report, render_report
from ..scoring import score
from ..session import QuizSession, SessionManager

InputProvider = Callable[[], str]
ExitAction = Literal["submitted", "quit"]


@dataclass(frozen=True)
class SessionCommand:
    """Normalized command parsed from console input."""

    type: Literal["next", "prev", "goto", "submit", "quit", "select"]
    choice: str | None = None
    index: int | None = None


@dataclass(frozen=True)
class QuizRunResult:
    session: QuizSession
    exit_action: ExitAction
    report: ReportView | None = None


def parse_session_command(raw: str | None) -> SessionCommand | None:
    """Parse a line of user input; ``None`` when it is not a command."""

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    lowered = text.lower()
    if lowered in {"n", "next"}:
        return SessionCommand("next")
    if lowered in {"p", "prev", "previous"}:
        return SessionCommand("prev")
    if lowered in {"s", "submit"}:
        return SessionCommand("submit")
    if lowered in {"q", "quit", "exit"}:
        return SessionCommand("quit")
    if lowered.isdigit():
        return SessionCommand("goto", index=int(lowered) - 1)
    if len(text) == 1 and text.isalpha():
        return SessionCommand("select", choice=text.upper())
    return None


def run_quiz_session(
    manager: SessionManager,
    session: QuizSession,
    console: Console,
    input_provider: InputProvider,
    *,
    reveal_answers: bool = True,
) -> QuizRunResult:
    """Drive ``session`` interactively until it is submitted or abandoned."""

    period = manager.period_for(session)
    index = _first_unanswered(session)

    while True:
        _render_question(console, period, session, index)
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Session interrupted.[/]")
            return QuizRunResult(session, "quit")

        command = parse_session_command(raw)
        if command is None:
            console.print("[red]Unrecognized command. Try again.[/]")
            continue
        if command.type == "quit":
            console.print(
                "\n[bold yellow]Session saved without submitting: "
                f"{session.session_id}[/]"
            )
            return QuizRunResult(session, "quit")
        if command.type == "submit":
            break
        index = _apply_command(
            command, manager, session, period, index, console
        )

    manager.finalize(session)
    result = score(session, period)
    view = format_report(result, period, session)
    render_report(console, view, reveal_answers=reveal_answers)
    return QuizRunResult(session, "submitted", view)


def _apply_command(
    command: SessionCommand,
    manager: SessionManager,
    session: QuizSession,
    period: Period,
    index: int,
    console: Console,
) -> int:
    last = len(period.questions) - 1
    if command.type == "next":
        return min(index + 1, last)
    if command.type == "prev":
        return max(index - 1, 0)
    if command.type == "goto" and command.index is not None:
        if 0 <= command.index <= last:
            return command.index
        console.print(f"[red]There is no question {command.index + 1}.[/]")
        return index
    if command.type == "select" and command.choice:
        question = period.questions[index]
        value = question.option_for(command.choice)
        if value is None:
            console.print(
                f"[red]'{command.choice}' is not a valid choice for this "
                "question.[/]"
            )
            return index
        try:
            manager.select_answer(session, index, value)
        except (InvalidOptionError, SessionClosedError) as exc:
            console.print(
                f"[red]Cannot submit this answer: {escape(str(exc))}[/]"
            )
            return index
        console.print(f"Selected [bold]{command.choice}[/].")
    return index


def _first_unanswered(session: QuizSession) -> int:
    for position, response in enumerate(session.responses):
        if response is None:
            return position
    return 0


def _render_question(
    console: Console, period: Period, session: QuizSession, index: int
) -> None:
    question = period.questions[index]
    header = Text.assemble(
        (f"{period.key} · Question {index + 1}", "bold cyan"),
        (f" / {len(period.questions)}", "dim"),
    )
    console.print()
    console.rule(header)
    _render_prompt(console, question)

    table = Table(show_header=False, box=box.SIMPLE, expand=True)
    table.add_column("Key", justify="center", style="cyan")
    table.add_column("Choice")

    selected = session.responses[index]
    for offset, option in enumerate(question.options):
        key = chr(ord("A") + offset)
        marker = "•" if option == selected else " "
        text = Text(f"{marker} ")
        text.append(option, style="bold green" if option == selected else "")
        table.add_row(key, text)
    console.print(table)

    keys = ", ".join(chr(ord("A") + i) for i in range(len(question.options)))
    console.print(
        Text(
            f"Answered {session.answered_count()}/{len(session.responses)} | "
            f"Commands: choices [{keys}], n (next), p (prev), <number> "
            "(jump), submit, quit",
            style="dim",
        )
    )


def _render_prompt(console: Console, question: Question) -> None:
    parts = question.parts()
    if not parts.statements:
        console.print(Text(question.prompt, style="bold"))
        return
    console.print(Text(parts.stem, style="bold"))
    for label, statement in parts.statements:
        line = Text(f"  {label}. ", style="cyan")
        line.append(statement)
        console.print(line)
