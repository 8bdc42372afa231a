"""Route optimization request/response reconciliation."""

from .controller import OptimizationSessionController
from .errors import ErrorCategory, ValidationError, translate_error
from .reconciler import ReconciliationContext, ResponseReconciler
from .request_builder import OptimizationRequest, RequestBuilder
from .selection import SelectionStateStore
from .session import SessionState, SessionStatus
from .telemetry import extract_telemetry, normalize_series

__all__ = [
    "ErrorCategory",
    "OptimizationRequest",
    "OptimizationSessionController",
    "ReconciliationContext",
    "RequestBuilder",
    "ResponseReconciler",
    "SelectionStateStore",
    "SessionState",
    "SessionStatus",
    "ValidationError",
    "extract_telemetry",
    "normalize_series",
    "translate_error",
]
