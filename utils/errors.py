class QuizError(Exception):
    """Base class for every expected failure of a quiz operation.

    Each subclass carries the HTTP status and a stable code so the request
    layer can translate it without knowing the individual kinds.
    """
    status_code = 400
    code = "quiz_error"
    default_message = "The request could not be completed."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {"error": self.message, "code": self.code}


# Authorization
class Forbidden(QuizError):
    status_code = 403
    code = "forbidden"
    default_message = "You do not have permission to do that."


class NotFound(QuizError):
    status_code = 404
    code = "not_found"
    default_message = "Not found."


# Lifecycle state
class StateError(QuizError):
    status_code = 409
    code = "invalid_state"


class AttemptFinalized(StateError):
    code = "attempt_finalized"
    default_message = "This attempt is already finalized and can no longer be changed."


class AlreadyFinalized(StateError):
    code = "already_finalized"
    default_message = "This attempt has already been submitted."


class NotInProgress(StateError):
    code = "not_in_progress"
    default_message = "Only in-progress attempts can be abandoned."


# Validation
class ValidationError(QuizError):
    status_code = 422
    code = "validation_error"
    default_message = "Invalid data."


class InvalidSubmission(ValidationError):
    code = "invalid_submission"
    default_message = "The submitted answer is not valid for this question."


class QuestionMismatch(ValidationError):
    code = "question_mismatch"
    default_message = "Question does not belong to this quiz."


# Limits
class AttemptLimitExceeded(QuizError):
    status_code = 403
    code = "attempt_limit_exceeded"
    default_message = "You have reached the maximum number of attempts for this quiz."
