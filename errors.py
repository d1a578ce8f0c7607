from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse


class PickupAppError(HTTPException):
    """Base class for errors surfaced to API callers.

    Each subclass fixes the HTTP status and a machine-readable code; the
    message is the human-readable text shown to the user.
    """

    status_code = 400
    code = "BAD_REQUEST"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(status_code=self.status_code, detail=message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class BadRequestError(PickupAppError):
    status_code = 400
    code = "BAD_REQUEST"


class UnauthorizedError(PickupAppError):
    status_code = 401
    code = "UNAUTHORIZED"


class ForbiddenError(PickupAppError):
    status_code = 403
    code = "FORBIDDEN"


class BannedError(ForbiddenError):
    """Login refused for a banned account; carries the token used to file an appeal."""

    code = "BANNED"

    def __init__(self, message: str, appeal_token: str):
        super().__init__(message)
        self.appeal_token = appeal_token

    def to_dict(self) -> dict:
        return {**super().to_dict(), "appeal_token": self.appeal_token}


class NotFoundError(PickupAppError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(PickupAppError):
    status_code = 409
    code = "CONFLICT"


class TerminalStateError(PickupAppError):
    """Raised when a completed or cancelled request is asked to change."""

    status_code = 400
    code = "TERMINAL_STATE"


class InvalidTransitionError(PickupAppError):
    status_code = 400
    code = "INVALID_TRANSITION"


async def _pickup_app_error_handler(request: Request, exc: PickupAppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PickupAppError, _pickup_app_error_handler)
