"""Error taxonomy shared by the workflow layer and the HTTP surface."""

from typing import Optional


class WorkflowError(Exception):
    status_code = 500

    def __init__(self, detail: str, field: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        self.field = field


class InvalidInput(WorkflowError):
    status_code = 400


class AuthenticationRequired(WorkflowError):
    status_code = 401


class PermissionDenied(WorkflowError):
    status_code = 403


class NotFound(WorkflowError):
    status_code = 404


class Conflict(WorkflowError):
    status_code = 409


class DependencyFailure(WorkflowError):
    status_code = 502
