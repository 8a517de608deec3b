from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

log = logging.getLogger(__name__)


class PlatformError(Exception):
    """
    Базова помилка платформи.
    status_code/code — те, що бачить адмінка (людина, якій потрібна конкретика).
    """

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None, *, details: Any = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


# ---------------------------------------------------------------------
# vault
# ---------------------------------------------------------------------
class ConfigurationError(PlatformError):
    code = "CONFIGURATION_ERROR"
    default_message = "Server is not configured"


class MalformedCiphertextError(PlatformError):
    code = "MALFORMED_CIPHERTEXT"
    default_message = "Stored token cannot be decrypted"


# ---------------------------------------------------------------------
# shops / bot config
# ---------------------------------------------------------------------
class ShopNotFoundError(PlatformError):
    status_code = 404
    code = "SHOP_NOT_FOUND"
    default_message = "Shop not found"


class InvalidTokenError(PlatformError):
    status_code = 400
    code = "INVALID_TOKEN"
    default_message = "Invalid Telegram Bot Token. Please check and try again."


class BotAlreadyLinkedError(PlatformError):
    status_code = 409
    code = "BOT_ALREADY_LINKED"
    default_message = "This bot is already linked to another shop."


class TokenNotConfiguredError(PlatformError):
    status_code = 400
    code = "TOKEN_NOT_CONFIGURED"
    default_message = "No bot token configured"


class NotificationTargetMissingError(PlatformError):
    status_code = 400
    code = "NOTIFICATION_TARGET_MISSING"
    default_message = "Notification chat id is not configured for this shop"


# ---------------------------------------------------------------------
# upstream (Telegram)
# ---------------------------------------------------------------------
class UpstreamError(PlatformError):
    status_code = 502
    code = "UPSTREAM_ERROR"
    default_message = "Telegram request failed"


class UpstreamTimeoutError(UpstreamError):
    status_code = 504
    code = "UPSTREAM_TIMEOUT"
    default_message = "Telegram did not respond in time. Please try again."


class DeliveryError(UpstreamError):
    code = "DELIVERY_FAILED"
    default_message = "Failed to send message. Bot might be blocked by user."


def _error_body(message: str, code: str, details: Any = None) -> dict[str, Any]:
    return {"error": message, "code": code, "details": details}


def add_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PlatformError)
    async def platform_error_handler(request: Request, exc: PlatformError):
        if exc.status_code >= 500:
            log.warning("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.message, exc.code, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=_error_body("Input validation failed", "VALIDATION_ERROR", jsonable_errors(exc)),
        )


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    # ctx у pydantic може містити сам Exception — у JSON його не віддаємо
    out: list[dict[str, Any]] = []
    for err in exc.errors():
        out.append({"loc": list(err.get("loc") or ()), "msg": err.get("msg"), "type": err.get("type")})
    return out
