"""Multiple-choice quiz built from AI-generated questions."""

from .config import (  # noqa: F401
    CONFIG_ENV,
    QuizAppConfig,
    QuizConfigError,
    default_tree,
    load_config,
    resolve_config_path,
)
from .models import (  # noqa: F401
    OPTION_LETTERS,
    AnswerAttempt,
    AnswerOutcome,
    Question,
    SessionState,
    Stage,
)
from .parser import (  # noqa: F401
    ParseFailureReason,
    QuestionParseError,
    parse_question,
    try_parse_question,
)
from .prompts import is_affirmative  # noqa: F401
from .provider import (  # noqa: F401
    CallableTextProvider,
    OpenAITextProvider,
    ProviderError,
    ProviderTimeoutError,
    TextProvider,
    generate_text,
)
from .scores import (  # noqa: F401
    JsonFileKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
    ScorePolicy,
    ScoreRecord,
    ScoreStore,
    ScoreStoreError,
    is_better,
)
from .session import (  # noqa: F401
    InvalidTransitionError,
    QuizSession,
    QuizSessionError,
)

__all__ = [
    "CONFIG_ENV",
    "QuizAppConfig",
    "QuizConfigError",
    "default_tree",
    "load_config",
    "resolve_config_path",
    "OPTION_LETTERS",
    "AnswerAttempt",
    "AnswerOutcome",
    "Question",
    "SessionState",
    "Stage",
    "ParseFailureReason",
    "QuestionParseError",
    "parse_question",
    "try_parse_question",
    "is_affirmative",
    "CallableTextProvider",
    "OpenAITextProvider",
    "ProviderError",
    "ProviderTimeoutError",
    "TextProvider",
    "generate_text",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "ScorePolicy",
    "ScoreRecord",
    "ScoreStore",
    "ScoreStoreError",
    "is_better",
    "InvalidTransitionError",
    "QuizSession",
    "QuizSessionError",
]
