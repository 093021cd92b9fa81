"""Global error handlers ensuring request_id is included in JSON responses."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from roomie.domain.errors import (
	MessagingError,
	ProfileNotFoundError,
	StoreUnavailableError,
	SurveyValidationError,
)
from roomie.obs import logging as obs_logging


def get_request_id(request: Request, default: str = "unknown") -> str:
	rid = getattr(request.state, "request_id", None) or obs_logging.current_request_id()
	return rid or default


def _error(request: Request, status_code: int, detail, **extra) -> JSONResponse:
	rid = get_request_id(request)
	payload = {"detail": detail, "request_id": rid, **extra}
	return JSONResponse(status_code=status_code, content=payload, headers={"X-Request-Id": rid})


def install_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(StarletteHTTPException)
	async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
		return _error(request, exc.status_code, exc.detail)

	@app.exception_handler(RequestValidationError)
	async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
		return _error(request, 422, "validation_error", errors=exc.errors())

	@app.exception_handler(SurveyValidationError)
	async def survey_exc_handler(request: Request, exc: SurveyValidationError):  # type: ignore[override]
		return _error(request, 422, "survey_invalid", field=exc.field, reason=exc.reason)

	@app.exception_handler(ProfileNotFoundError)
	async def missing_profile_handler(request: Request, exc: ProfileNotFoundError):  # type: ignore[override]
		return _error(request, 404, "profile_not_found")

	@app.exception_handler(MessagingError)
	async def messaging_exc_handler(request: Request, exc: MessagingError):  # type: ignore[override]
		return _error(request, 400, str(exc))

	@app.exception_handler(StoreUnavailableError)
	async def store_exc_handler(request: Request, exc: StoreUnavailableError):  # type: ignore[override]
		return _error(request, 503, "store_unavailable")


__all__ = ["get_request_id", "install_error_handlers"]
