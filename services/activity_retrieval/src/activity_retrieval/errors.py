"""Errors returned to callers of the activity data endpoint.

Each error carries a stable code the client switches on and a message meant
for the end user.
"""


class QueryError(Exception):
    code = "error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArgumentError(QueryError):
    code = "invalid-argument"
    status_code = 400


class FailedPreconditionError(QueryError):
    code = "failed-precondition"
    status_code = 400


class NotFoundError(QueryError):
    code = "not-found"
    status_code = 404


class QueryFailedError(QueryError):
    pass
