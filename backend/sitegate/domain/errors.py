"""
Workflow error taxonomy.

Every error carries the HTTP status the API layer answers with, so route
handlers never translate them by hand.
"""


class WorkflowError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(WorkflowError):
    status_code = 400


class CustomerNotFound(WorkflowError):
    status_code = 404


class RequestNotFound(WorkflowError):
    status_code = 404


class VersionNotFound(WorkflowError):
    status_code = 404


class DuplicateSubmission(WorkflowError):
    """The customer already submitted a request inside the cooldown window."""

    status_code = 429

    def __init__(self, message: str, retry_after: int | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class AlreadyHandled(WorkflowError):
    """Another actor already moved the request out of the expected status."""

    status_code = 409


class IllegalTransition(WorkflowError, ValueError):
    status_code = 409


class RequestConflict(WorkflowError):
    status_code = 409
