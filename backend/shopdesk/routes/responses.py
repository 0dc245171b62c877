# Overview: Shared mapping from domain/store errors to JSON error responses.

from flask import current_app

from ..services.stores import (
    StoreError,
    StoreUnavailable,
    ConstraintViolation,
    RecordNotFound,
)


def store_error_response(exc: StoreError, action: str):
    """
    StoreUnavailable -> 503 (retryable), ConstraintViolation -> 409,
    RecordNotFound -> 404, anything else from a store -> 502.
    """
    if isinstance(exc, RecordNotFound):
        return {"error": str(exc), "details": exc.details}, 404
    if isinstance(exc, ConstraintViolation):
        return {"error": str(exc), "details": exc.details}, 409
    if isinstance(exc, StoreUnavailable):
        current_app.logger.warning("%s: store unavailable (%s)", action, exc)
        return {"error": "Store unavailable, please retry", "retryable": True}, 503
    current_app.logger.exception("%s: store error", action)
    return {"error": "Store error"}, 502
