class QuizBotError(Exception):
    """Base class for errors raised by the quiz bot core."""


class ValidationError(QuizBotError):
    """Malformed wizard input. The message is the prompt to send back."""


class NotFoundError(QuizBotError):
    """A referenced test, channel or admin no longer exists."""


class ExternalCallFailure(QuizBotError):
    """A Telegram call (send, channel lookup) failed."""


class PersistenceFailure(QuizBotError):
    """A collection could not be read or written."""


class PermissionDenied(QuizBotError):
    """The sender lost the privilege required for the current step."""
