"""
Result<T, E> model for recoverable handler failures.

Object handlers return ``Ok(value)`` or ``Err(HandlerError)``. An ``Err`` is
local to the rule being expanded: the engine shows a placeholder for that
rule and keeps going.
"""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class HandlerErrorKind(str, Enum):
    """Categorizes object handler failures."""
    INVALID_PARAMETERS = "InvalidParameters"


class HandlerError(BaseModel):
    """Rich error context for a failed handler invocation."""
    kind: HandlerErrorKind
    message: str
    handler: str
    details: Optional[str] = None

    def __str__(self):
        result = "❌ " + self.kind.value + " in '" + self.handler + "': " + self.message
        if self.details:
            result = result + chr(10) + "   Details: " + str(self.details)
        return result


class Result:
    """Base class for Result<T, E> (Ok or Err)."""

    def is_err(self) -> bool:
        return isinstance(self, Err)

    def unwrap(self):
        """Get value or raise error."""
        if isinstance(self, Ok):
            return self.value
        else:
            raise RuntimeError(f"Called unwrap() on Err: {self.error.message}")


class Ok(Result):
    """Success case: Ok<T>."""

    def __init__(self, value: Any):
        self.value = value

    def __repr__(self):
        return f"Ok({self.value!r})"


class Err(Result):
    """Error case: Err<HandlerError>."""

    def __init__(self, error: HandlerError):
        self.error = error

    def __repr__(self):
        return str(self.error)

    def __str__(self):
        return str(self.error)
