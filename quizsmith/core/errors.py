"""
Error taxonomy
==============
Every failure a pipeline can surface is a ``QuizServiceError`` carrying the
HTTP status it maps to. ``main.py`` turns them into the JSON error envelope.
"""


class QuizServiceError(Exception):
    status_code = 500
    default_message = "Something went wrong, please try again."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class QuizValidationError(QuizServiceError):
    """Bad question types, difficulty, count, file type or empty subject."""
    status_code = 400
    default_message = "Invalid request."


class Unauthorized(QuizServiceError):
    status_code = 401
    default_message = "Unauthorized"


class InsufficientCredits(QuizServiceError):
    status_code = 402
    default_message = "Insufficient Credits."


class RecordNotFound(QuizServiceError):
    status_code = 404
    default_message = "Quiz not found."


class PersistenceFailure(QuizServiceError):
    status_code = 500
    default_message = "Could not connect to database."


# ── Oracle failures ──────────────────────────────────────────────────────────

class GenerationFailure(QuizServiceError):
    """Any failure of the external generator. Never retried by the client."""
    status_code = 502
    default_message = "A problem occurred generating questions."


class OracleRejection(GenerationFailure):
    """The oracle declared the input unsuitable. Its message is user-safe."""
    status_code = 400
    default_message = "Invalid entry."


class EmptyResult(GenerationFailure):
    status_code = 422
    default_message = "No questions could be generated from this document."


class ParseFailure(GenerationFailure):
    status_code = 502
    default_message = "A problem occurred generating questions."


class TransportFailure(GenerationFailure):
    status_code = 502
    default_message = "The AI provider is unavailable, please try again."
