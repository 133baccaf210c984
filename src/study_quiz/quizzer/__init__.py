from ._main import build_arg_parser
from .bank import (
    Period,
    PromptParts,
    Question,
    QuestionBank,
    default_bank_source,
    load_question_bank,
)
from .errors import (
    BankLoadError,
    InvalidOptionError,
    LengthMismatchError,
    NotFoundError,
    QuizError,
    SessionClosedError,
    SessionNotFinalizedError,
    ValidationError,
    ValidationIssue,
)
from .report import (
    ReportItem,
    ReportView,
    format_report,
    render_report,
    write_report_json,
)
from .scoring import ScoreResult, score
from .session import QuizSession, SessionManager
from .store import (
    JsonSessionStore,
    MemorySessionStore,
    SessionStore,
    SessionStoreError,
)
from .view.quiz import QuizRunResult, run_quiz_session

__all__ = [
    "build_arg_parser",
    "Period",
    "PromptParts",
    "Question",
    "QuestionBank",
    "default_bank_source",
    "load_question_bank",
    "BankLoadError",
    "InvalidOptionError",
    "LengthMismatchError",
    "NotFoundError",
    "QuizError",
    "SessionClosedError",
    "SessionNotFinalizedError",
    "ValidationError",
    "ValidationIssue",
    "ReportItem",
    "ReportView",
    "format_report",
    "render_report",
    "write_report_json",
    "ScoreResult",
    "score",
    "QuizSession",
    "SessionManager",
    "JsonSessionStore",
    "MemorySessionStore",
    "SessionStore",
    "SessionStoreError",
    "QuizRunResult",
    "run_quiz_session",
]
