class QuizError(Exception):
    """Base class for failures reported back to the caller."""

    status_code = 500
    code = "quiz_error"
    default_message = "Quiz error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(QuizError):
    status_code = 401
    code = "unauthenticated"
    default_message = "Unauthorized"


class NotFound(QuizError):
    status_code = 404
    code = "not_found"
    default_message = "Session not found"


class Unauthorized(NotFound):
    # Someone else's session looks exactly like a missing one
    pass


class InvalidQuestion(QuizError):
    status_code = 400
    code = "invalid_question"
    default_message = "Invalid question"


class InvalidRequest(QuizError):
    status_code = 400
    code = "invalid_request"
    default_message = "Invalid request"


class UnknownAction(InvalidRequest):
    code = "unknown_action"
    default_message = "Unknown action"


class Conflict(QuizError):
    status_code = 409
    code = "conflict"
    default_message = "Session was modified concurrently"


class StorageError(QuizError):
    status_code = 500
    code = "storage_error"
    default_message = "Session storage failed"
