"""Error taxonomy and result types returned by the service layer.

Services return ``Ok(value)`` or ``Err(ServiceError)`` instead of raising, so every
failure path shows up in their signatures. Only the HTTP layer turns an error kind
into a status code.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Every failure a service operation may report."""
    VALIDATION_FAILED = "VALIDATION_FAILED"
    DUPLICATE_CREDENTIAL = "DUPLICATE_CREDENTIAL"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    UNEXPECTED = "UNEXPECTED"


@dataclass(frozen=True)
class ServiceError:
    kind: ErrorKind
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind.value, "message": self.message, "details": self.details}


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: ServiceError


Result = Union[Ok[T], Err]


# ==================== Constructors ====================

def validation_failed(errors: dict[str, list[str]]) -> Err:
    return Err(ServiceError(
        ErrorKind.VALIDATION_FAILED,
        "One or more fields are invalid",
        {"errors": errors},
    ))


def not_found(resource: str, identifier: Any) -> Err:
    return Err(ServiceError(
        ErrorKind.NOT_FOUND,
        f"{resource} with ID {identifier} not found",
        {"id": str(identifier)},
    ))


def unexpected(message: str = "An unexpected error occurred") -> Err:
    return Err(ServiceError(ErrorKind.UNEXPECTED, message))


def field_errors(errors: list[dict]) -> dict[str, list[str]]:
    """Group pydantic error entries by field name.

    Request-level locations such as ``("body", "title")`` or ``("query", "status")``
    drop their first element; a missing body maps to ``"body"``.
    """
    grouped: dict[str, list[str]] = {}
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if len(loc) > 1 and loc[0] in ("body", "query", "path", "header"):
            loc = loc[1:]
        name = ".".join(loc) or "body"
        grouped.setdefault(name, []).append(error.get("msg", "Invalid value"))
    return grouped
