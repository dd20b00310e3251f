"""
Error Types
Gateway failures are classified once at the model boundary; pipeline failures
are what a caller of ``HandwritingPipeline.run`` sees.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    ACCESS_DENIED = "access_denied"
    TRANSIENT = "transient"
    MALFORMED = "malformed"


# =============================================================================
# Model Gateway
# =============================================================================
class GatewayError(Exception):
    """A model call failed."""
    kind: ErrorKind = ErrorKind.TRANSIENT

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class GatewayAccessDenied(GatewayError):
    """The backend rejected the credential (HTTP 403 / PERMISSION_DENIED)."""
    kind = ErrorKind.ACCESS_DENIED


class GatewayTransientError(GatewayError):
    kind = ErrorKind.TRANSIENT


class GatewayMalformedResponse(GatewayError):
    """The call completed but produced nothing usable (blocked, stopped, empty)."""
    kind = ErrorKind.MALFORMED


# =============================================================================
# Stages
# =============================================================================
class NoImageProducedError(Exception):
    """The page writer's response contained no inline image."""


class InvalidTransitionError(RuntimeError):
    """A progress update that the state machine does not allow."""


# =============================================================================
# Pipeline
# =============================================================================
class PipelineError(Exception):
    """A pipeline run ended without verified pages."""

    def __init__(self, message: str, attempt: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.attempt = attempt


class AccessDeniedError(PipelineError):
    """Authorization failed. Not retried: the caller must refresh the credential."""


class EmptySolutionError(PipelineError):
    """The solver returned no pages on every attempt."""

    def __init__(self, message: str = "Could not solve the problem.", attempt: Optional[int] = None):
        super().__init__(message, attempt)


class ValidationRejectedError(PipelineError):
    """The validator rejected the final attempt's pages."""

    def __init__(self, reason: str, attempt: Optional[int] = None):
        super().__init__(f"Validation failed: {reason or 'Output illegible'}", attempt)
        self.reason = reason


class SystemFailureError(PipelineError):
    """Any other stage failure that survived every attempt."""
