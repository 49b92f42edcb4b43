# controller-ui/core/errors.py
"""
Error taxonomy for controller operations

Every error carries a stable error_code (used in API error responses)
and a human-readable description of the operation that failed.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class ErrorKind:
    """Field-level validation error kinds"""
    REQUIRED = "required"
    INVALID_FORMAT = "invalid_format"
    OUT_OF_RANGE = "out_of_range"
    FAILED_CUSTOM_RULE = "failed_custom_rule"


@dataclass
class FieldError:
    """A single failing field, re-displayable next to the submitted value"""
    field: str
    kind: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "kind": self.kind, "message": self.message}


class ControllerError(Exception):
    """Base class for all errors raised by the controller UI core"""

    error_code = "CONTROLLER_ERROR"

    def __init__(self, message: str, operation: Optional[str] = None):
        self.message = message
        self.operation = operation
        super().__init__(message)

    def details(self) -> Dict[str, Any]:
        details: Dict[str, Any] = {}
        if self.operation:
            details["operation"] = self.operation
        return details


# === Lookup failures ===

class NotFound(ControllerError):
    """Requested object does not exist at the controller"""
    error_code = "NOT_FOUND"


class NetworkNotFound(NotFound):
    error_code = "NETWORK_NOT_FOUND"

    def __init__(self, nwid: str, operation: Optional[str] = None):
        self.nwid = nwid
        super().__init__(f"Network {nwid} not found", operation)


class MemberNotFound(NotFound):
    error_code = "MEMBER_NOT_FOUND"

    def __init__(self, nwid: str, member_id: str, operation: Optional[str] = None):
        self.nwid = nwid
        self.member_id = member_id
        super().__init__(f"Member {member_id} not found in network {nwid}", operation)


class PeerNotFound(NotFound):
    error_code = "PEER_NOT_FOUND"

    def __init__(self, address: str, operation: Optional[str] = None):
        self.address = address
        super().__init__(f"Peer {address} not found", operation)


class PoolNotFound(NotFound):
    error_code = "POOL_NOT_FOUND"


class RouteNotFound(NotFound):
    error_code = "ROUTE_NOT_FOUND"


# === Transport failures ===

class ControllerUnavailable(ControllerError):
    """Controller could not be reached or answered with an error"""

    error_code = "CONTROLLER_UNAVAILABLE"

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        status_code: Optional[int] = None
    ):
        self.status_code = status_code
        super().__init__(message, operation)

    def details(self) -> Dict[str, Any]:
        details = super().details()
        if self.status_code is not None:
            details["status_code"] = self.status_code
        return details


# === Rejected deltas ===

class ValidationFailed(ControllerError):
    """A delta failed a structural or business rule; nothing was sent"""

    error_code = "VALIDATION_FAILED"

    def __init__(
        self,
        errors: List[FieldError],
        submitted: Optional[Dict[str, Any]] = None,
        operation: Optional[str] = None
    ):
        self.errors = list(errors)
        self.submitted = dict(submitted or {})
        message = "; ".join(e.message for e in self.errors) or "Validation failed"
        super().__init__(message, operation)

    def details(self) -> Dict[str, Any]:
        details = super().details()
        details["errors"] = [e.to_dict() for e in self.errors]
        details["submitted"] = self.submitted
        return details


class AddressNotInManagedRoute(ValidationFailed):
    error_code = "ADDRESS_NOT_IN_MANAGED_ROUTE"

    def __init__(self, address: str, operation: Optional[str] = None):
        self.address = address
        super().__init__(
            [FieldError(
                field="ipAddress",
                kind=ErrorKind.FAILED_CUSTOM_RULE,
                message=f"IP address {address} must lie within a managed route",
            )],
            submitted={"ipAddress": address},
            operation=operation,
        )


class AmbiguousDelete(ControllerError):
    """A delete key no longer identifies the entry the caller meant"""
    error_code = "AMBIGUOUS_DELETE"


@dataclass
class OperationResult:
    """
    Outcome of an operation whose failure the caller may choose to ignore

    Used for renames: the HTTP layer redirects regardless, but the
    failure stays inspectable.
    """
    ok: bool
    errors: List[FieldError] = field(default_factory=list)
    cause: Optional[str] = None

    @classmethod
    def success(cls) -> "OperationResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, errors: Optional[List[FieldError]] = None,
                cause: Optional[str] = None) -> "OperationResult":
        return cls(ok=False, errors=list(errors or []), cause=cause)
