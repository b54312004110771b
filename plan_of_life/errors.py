from __future__ import annotations


class PlanOfLifeError(Exception):
    status_code = 500

    def __init__(self, message: str = "", status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(PlanOfLifeError, ValueError):
    status_code = 400


class NotFound(PlanOfLifeError):
    status_code = 404


class InvariantViolation(PlanOfLifeError):
    status_code = 409


class AlreadySeeded(InvariantViolation):
    pass


class NotAuthenticated(PlanOfLifeError):
    status_code = 401


class Forbidden(PlanOfLifeError):
    status_code = 403


class StorageError(PlanOfLifeError):
    status_code = 503


class NoInsightData(PlanOfLifeError):
    status_code = 422


class ServiceError(PlanOfLifeError):
    """The suggestion generator failed.

    ``kind`` is one of ``rate_limited`` (429), ``quota_exhausted`` (402),
    ``config`` or ``upstream``; callers decide how to surface each.
    """

    status_code = 502

    def __init__(self, message: str = "", kind: str = "upstream", status_code: int | None = None):
        super().__init__(message, status_code)
        self.kind = kind
