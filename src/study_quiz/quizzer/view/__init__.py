from .quiz import (
    QuizRunResult,
    SessionCommand,
    parse_session_command,
    run_quiz_session,
)

__all__ = [
    "QuizRunResult",
    "SessionCommand",
    "parse_session_command",
    "run_quiz_session",
]
