"""
Error taxonomy surfaced by the HTTP layer as ``{"error": message}`` bodies
"""


class FlashcardServiceError(Exception):
    status_code = 500
    message = "An error occurred while processing your request"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class InvalidRequest(FlashcardServiceError):
    status_code = 400
    message = "Please provide some text to generate flashcards from."


class RateLimitExceeded(FlashcardServiceError):
    status_code = 429
    message = "Rate limit exceeded. Please try again later."


class DuplicateRequest(FlashcardServiceError):
    status_code = 429
    message = "Duplicate request. Please wait before submitting the same request again."


class GenerationError(FlashcardServiceError):
    """Upstream failure or malformed completion.

    ``str(exc)`` carries the cause for the logs; ``exc.message`` is the
    generic text returned to the caller.
    """

    status_code = 500

    def __init__(self, detail: str):
        super().__init__()
        self.detail = detail

    def __str__(self) -> str:
        return self.detail


class SetNotFound(FlashcardServiceError):
    status_code = 404
    message = "Flashcard set not found"
