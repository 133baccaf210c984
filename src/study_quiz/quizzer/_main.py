"""``study-quiz quizzer`` command line interface."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from study_quiz.core import config_templates
from study_quiz.core import workspace as workspace_mod
from study_quiz.core.config_templates import ConfigTemplateError
from study_quiz.core.logging import configure_logger

from .bank import QuestionBank, load_question_bank
from .config import (
    CONFIG_FILENAME,
    ConfigOverrides,
    LoadResult,
    QuizConfigError,
    load_config,
)
from .errors import (
    BankLoadError,
    InvalidOptionError,
    LengthMismatchError,
    NotFoundError,
    SessionClosedError,
    SessionNotFinalizedError,
    ValidationError,
)
from .report import format_report, render_report, write_report_json
from .scoring import score
from .session import SessionManager
from .store import JsonSessionStore, SessionStoreError
from .view.quiz import InputProvider, run_quiz_session

_LOGGER_NAME = "study_quiz.quizzer"


@dataclass(frozen=True)
class _Runtime:
    loaded: LoadResult
    logger: logging.Logger
    log_path: Path


def _make_console() -> Console:
    return Console()


def _input_provider(console: Console) -> InputProvider:
    return lambda: console.input("[bold]> [/]")


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to quiz.toml (defaults to the workspace config directory).",
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root.",
    )
    parser.add_argument(
        "--bank",
        type=Path,
        help="Question bank JSON file (defaults to the bundled bank).",
    )
    parser.add_argument("--log-level", help="Log level for the log file.")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Mirror log records to stderr.",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="study-quiz quizzer",
        description="Take and review weekly multiple-choice quizzes.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sp_config = sub.add_parser("config", help="Manage quiz.toml")
    config_sub = sp_config.add_subparsers(dest="action", required=True)
    sp_init = config_sub.add_parser(
        "init", help="Write the default quiz.toml template"
    )
    sp_init.add_argument("--path", type=Path, help="Destination file.")
    sp_init.add_argument("--workspace", type=Path)
    sp_init.add_argument(
        "--force", action="store_true", help="Overwrite an existing file."
    )

    sp_periods = sub.add_parser("periods", help="List periods in the bank")
    _add_common_options(sp_periods)

    sp_questions = sub.add_parser(
        "questions", help="List the questions of a period"
    )
    sp_questions.add_argument("period")
    sp_questions.add_argument(
        "--show-answers",
        action="store_true",
        help="Include the correct option for each question.",
    )
    _add_common_options(sp_questions)

    sp_validate = sub.add_parser(
        "validate", help="Check the question bank for data errors"
    )
    _add_common_options(sp_validate)

    sp_start = sub.add_parser("start", help="Start a quiz for a period")
    sp_start.add_argument("period")
    sp_start.add_argument("--user", help="Owner id recorded on the session.")
    _add_reveal_options(sp_start)
    _add_common_options(sp_start)

    sp_resume = sub.add_parser("resume", help="Continue an open session")
    sp_resume.add_argument("session_id")
    _add_reveal_options(sp_resume)
    _add_common_options(sp_resume)

    sp_sessions = sub.add_parser("sessions", help="List stored sessions")
    sp_sessions.add_argument("--user", help="Only sessions for this owner.")
    _add_common_options(sp_sessions)

    sp_report = sub.add_parser(
        "report", help="Show the results of a finalized session"
    )
    sp_report.add_argument("session_id")
    sp_report.add_argument(
        "--json",
        dest="json_path",
        type=Path,
        help="Also write the report as JSON to this path.",
    )
    _add_reveal_options(sp_report)
    _add_common_options(sp_report)
    return parser


def _add_reveal_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--reveal", dest="reveal_answers", action="store_true", default=None
    )
    parser.add_argument(
        "--no-reveal", dest="reveal_answers", action="store_false"
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.command == "config":
        return _cmd_config_init(args)

    handler = _HANDLERS[args.command]
    try:
        runtime = _prepare_runtime(args)
    except QuizConfigError as exc:
        _err(f"Error: {exc}")
        return 2

    try:
        return handler(args, runtime)
    except ValidationError as exc:
        _err(str(exc))
        return 1
    except (BankLoadError, SessionStoreError) as exc:
        _err(f"Error: {exc}")
        return 1
    except NotFoundError as exc:
        _err(f"Not found: {exc}")
        return 1
    except (InvalidOptionError, SessionClosedError) as exc:
        _err(f"Cannot submit: {exc}")
        return 1
    except SessionNotFinalizedError as exc:
        _err(f"Session still open: {exc}")
        return 1
    except (LengthMismatchError, ValueError) as exc:
        # Stored session no longer lines up with the loaded bank.
        _err(f"Session does not match the question bank: {exc}")
        return 1


def _prepare_runtime(args: argparse.Namespace) -> _Runtime:
    bank = args.bank.expanduser().resolve() if args.bank else None
    overrides = ConfigOverrides(
        bank_source=bank,
        reveal_answers=getattr(args, "reveal_answers", None),
        log_level=args.log_level,
    )
    loaded = load_config(
        config_path=args.config,
        overrides=overrides,
        workspace_path=args.workspace,
    )
    logger, log_path = configure_logger(
        _LOGGER_NAME,
        log_dir=loaded.layout.path_for("logs"),
        level=loaded.config.log_level,
        verbose=args.verbose,
        filename="quizzer.log",
    )
    logger.debug("quizzer command invoked", extra={"command": args.command})
    return _Runtime(loaded=loaded, logger=logger, log_path=log_path)


def _load_bank(runtime: _Runtime) -> QuestionBank:
    return load_question_bank(
        runtime.loaded.config.bank_source, logger=runtime.logger
    )


def _manager(runtime: _Runtime) -> SessionManager:
    return SessionManager(
        _load_bank(runtime),
        store=JsonSessionStore(runtime.loaded.config.sessions_dir),
        logger=runtime.logger,
    )


def _cmd_periods(args: argparse.Namespace, runtime: _Runtime) -> int:
    bank = _load_bank(runtime)
    for key in bank.list_period_keys():
        count = len(bank.get_period(key))
        print(f"{key}\t{count} question(s)")
    return 0


def _cmd_questions(args: argparse.Namespace, runtime: _Runtime) -> int:
    period = _load_bank(runtime).get_period(args.period)
    console = _make_console()
    table = Table(title=f"Questions: {period.key}", box=box.SIMPLE)
    table.add_column("#", justify="right")
    table.add_column("Id")
    table.add_column("Question", overflow="fold")
    if args.show_answers:
        table.add_column("Answer", overflow="fold")
    for number, question in enumerate(period.questions, start=1):
        row = [str(number), question.id, question.prompt]
        if args.show_answers:
            row.append(question.correct_option)
        table.add_row(*row)
    console.print(table)
    return 0


def _cmd_validate(args: argparse.Namespace, runtime: _Runtime) -> int:
    bank = _load_bank(runtime)
    total = sum(len(period) for period in bank)
    print(f"Question bank OK: {len(bank)} period(s), {total} question(s).")
    return 0


def _cmd_start(args: argparse.Namespace, runtime: _Runtime) -> int:
    manager = _manager(runtime)
    session = manager.start_session(args.period, owner_id=args.user)
    return _run_interactive(manager, session, runtime)


def _cmd_resume(args: argparse.Namespace, runtime: _Runtime) -> int:
    manager = _manager(runtime)
    session = manager.get_session(args.session_id)
    if session.is_finalized:
        raise SessionClosedError(
            f"Session '{session.session_id}' is already finalized; "
            f"run 'report {session.session_id}' instead."
        )
    return _run_interactive(manager, session, runtime)


def _run_interactive(manager, session, runtime: _Runtime) -> int:
    console = _make_console()
    result = run_quiz_session(
        manager,
        session,
        console,
        _input_provider(console),
        reveal_answers=runtime.loaded.config.reveal_answers,
    )
    if result.report is not None:
        target = runtime.loaded.layout.path_for("reports") / (
            f"{session.session_id}.json"
        )
        write_report_json(result.report, target)
        console.print(f"Report saved to {target}")
    return 0


def _cmd_sessions(args: argparse.Namespace, runtime: _Runtime) -> int:
    manager = _manager(runtime)
    sessions = manager.list_sessions(owner_id=args.user)
    if not sessions:
        print("No sessions found.")
        return 1
    for session in sessions:
        owner = session.owner_id or "-"
        print(
            "{0}\t{1}\t{2}\t{3}/{4} answered\t{5}".format(
                session.session_id,
                session.period_key,
                session.status,
                session.answered_count(),
                len(session.responses),
                owner,
            )
        )
    return 0


def _cmd_report(args: argparse.Namespace, runtime: _Runtime) -> int:
    manager = _manager(runtime)
    session = manager.get_session(args.session_id)
    period = manager.period_for(session)
    view = format_report(score(session, period), period, session)
    render_report(
        _make_console(),
        view,
        reveal_answers=runtime.loaded.config.reveal_answers,
    )
    if args.json_path is not None:
        written = write_report_json(view, args.json_path)
        print(f"Wrote report JSON to {written}")
    return 0


def _cmd_config_init(args: argparse.Namespace) -> int:
    try:
        target = _resolve_config_target(args)
    except workspace_mod.WorkspaceError as exc:
        _err(str(exc))
        return 1
    template = config_templates.get_template("quizzer")
    try:
        written = template.write(target, overwrite=args.force)
    except ConfigTemplateError as exc:
        _err(str(exc))
        return 1
    print(f"Wrote quizzer config to {written}")
    return 0


def _resolve_config_target(args: argparse.Namespace) -> Path:
    if args.path is not None:
        candidate = args.path.expanduser()
        if not candidate.is_absolute():
            candidate = (Path.cwd() / candidate).resolve()
        return candidate
    layout = workspace_mod.ensure_workspace(path=args.workspace)
    return layout.path_for("config") / CONFIG_FILENAME


def _err(message: str) -> None:
    sys.stderr.write(message + "\n")


_HANDLERS: dict[str, Callable[[argparse.Namespace, _Runtime], int]] = {
    "periods": _cmd_periods,
    "questions": _cmd_questions,
    "validate": _cmd_validate,
    "start": _cmd_start,
    "resume": _cmd_resume,
    "sessions": _cmd_sessions,
    "report": _cmd_report,
}


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
