"""
Workflow error taxonomy.

Every expected failure of a file/forward transition is one of these; the
app-level exception handler in main.py renders them as
``{"success": false, "error": ...}`` with the matching HTTP status.
"""
from typing import Any, Dict, List, Optional


class WorkflowError(Exception):
    status_code = 500
    code = "workflow_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "error": self.message, "code": self.code}


class ValidationError(WorkflowError):
    status_code = 400
    code = "validation_error"

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.errors:
            body["errors"] = self.errors
        return body


class AuthorizationError(WorkflowError):
    status_code = 403
    code = "not_authorized"

    def __init__(self, message: str, reason_kind: str = "role"):
        super().__init__(message)
        self.reason_kind = reason_kind  # role|department|ownership

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["reason"] = self.reason_kind
        return body


class NotFoundError(WorkflowError):
    status_code = 404
    code = "not_found"


class StateConflictError(WorkflowError):
    status_code = 400
    code = "state_conflict"

    def __init__(self, message: str, current_status: Optional[str] = None, expected_status: Optional[str] = None):
        super().__init__(message)
        self.current_status = current_status
        self.expected_status = expected_status

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["current_status"] = self.current_status
        body["expected_status"] = self.expected_status
        return body
