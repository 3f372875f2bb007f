"""
Translation of domain exceptions into HTTP responses.

Bodies use the same {"detail": ...} shape as HTTPException so clients
handle both alike.
"""
import logging
from typing import Any, Dict, Tuple

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.exceptions import (
    AlreadyBetaTester,
    BetaRegistrationClosed,
    EditAjaError,
    FeedbackNotFound,
    GenerationFailed,
    GenerationNotFound,
    GenerationTimeout,
    ImageSaveFailed,
    InsufficientBalance,
    InvalidSignature,
    NotOwner,
    PaymentGatewayError,
    PlanNotFound,
    ProviderNotConfigured,
    QuotaExceeded,
    StyleNotFound,
    TransactionNotFound,
)

logger = logging.getLogger(__name__)


def error_response(exc: EditAjaError) -> Tuple[int, Dict[str, Any]]:
    """Status code and detail body for a domain exception."""
    if isinstance(exc, InsufficientBalance):
        return status.HTTP_402_PAYMENT_REQUIRED, {
            "error": "Insufficient tokens",
            "balance": exc.balance,
            "cost": exc.cost,
            "action": "topup",
        }
    if isinstance(exc, QuotaExceeded):
        return status.HTTP_429_TOO_MANY_REQUESTS, {
            "error": "Free generation limit reached",
            "used": exc.used,
            "limit": exc.limit,
            "action": "login",
        }
    if isinstance(exc, (StyleNotFound, GenerationNotFound, TransactionNotFound, PlanNotFound, FeedbackNotFound)):
        return status.HTTP_404_NOT_FOUND, {"error": str(exc)}
    if isinstance(exc, AlreadyBetaTester):
        return status.HTTP_409_CONFLICT, {"error": str(exc)}
    if isinstance(exc, (InvalidSignature, NotOwner, BetaRegistrationClosed)):
        return status.HTTP_403_FORBIDDEN, {"error": str(exc)}
    if isinstance(exc, GenerationTimeout):
        return status.HTTP_504_GATEWAY_TIMEOUT, {"error": str(exc)}
    if isinstance(exc, (GenerationFailed, ImageSaveFailed, PaymentGatewayError)):
        return status.HTTP_502_BAD_GATEWAY, {"error": str(exc)}
    if isinstance(exc, ProviderNotConfigured):
        return status.HTTP_503_SERVICE_UNAVAILABLE, {"error": str(exc)}
    return status.HTTP_500_INTERNAL_SERVER_ERROR, {"error": str(exc)}


async def _handle_domain_error(request: Request, exc: EditAjaError) -> JSONResponse:
    status_code, detail = error_response(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": detail})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EditAjaError, _handle_domain_error)
