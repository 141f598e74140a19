"""Error taxonomy for the signing workflow.

Every error is an ``HTTPException`` carrying ``{"code", "message"}`` as its
detail, so the API error handlers render the kind verbatim and callers can
tell an expected outcome (``already_signed``) apart from a transient failure.
"""

from __future__ import annotations

from fastapi import HTTPException


class WorkflowError(HTTPException):
    status_code = 500
    code = "workflow_error"
    default_message = "Request failed"

    def __init__(self, message: str | None = None, details: object = None) -> None:
        self.message = message or self.default_message
        self.details = details
        detail: dict = {"code": self.code, "message": self.message}
        if details is not None:
            detail["details"] = details
        super().__init__(status_code=self.status_code, detail=detail)

    def __str__(self) -> str:
        return self.message


class Unauthorized(WorkflowError):
    status_code = 401
    code = "unauthorized"
    default_message = "Unauthorized"


class NotFound(WorkflowError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class SignerNotFound(NotFound):
    code = "signer_not_found"
    default_message = "Signer not found"


class Forbidden(WorkflowError):
    status_code = 403
    code = "forbidden"
    default_message = "Access denied"


class InvalidInput(WorkflowError):
    status_code = 400
    code = "invalid_input"
    default_message = "Invalid input"


class InvalidPartyList(InvalidInput):
    code = "invalid_party_list"
    default_message = "Invalid signer list"


class AlreadySigned(WorkflowError):
    status_code = 409
    code = "already_signed"
    default_message = "Document already signed by this signer"


class Conflict(WorkflowError):
    status_code = 409
    code = "conflict"
    default_message = "Request conflict"


class InfrastructureFailure(WorkflowError):
    status_code = 503
    code = "infrastructure_failure"
    default_message = "Service temporarily unavailable"
