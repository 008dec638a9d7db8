"""
Problem-details (RFC 7807) error responses
"""

from http import HTTPStatus
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from core.exceptions import JobAlreadyActiveError, JobNotFoundError, NoDataFoundError
from schemas.api import Problem
import logging

logger = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"


def problem_response(status_code: int, detail: Optional[str] = None, title: Optional[str] = None) -> JSONResponse:
    problem = Problem(
        type=f"https://httpstatuses.com/{status_code}",
        title=title or HTTPStatus(status_code).phrase,
        status=status_code,
        detail=detail
    )
    return JSONResponse(
        status_code=status_code,
        content=problem.model_dump(exclude_none=True),
        media_type=PROBLEM_MEDIA_TYPE
    )


def register_error_handlers(app: FastAPI):
    """Map domain and HTTP errors to problem responses"""

    @app.exception_handler(JobAlreadyActiveError)
    async def job_already_active(request: Request, exc: JobAlreadyActiveError):
        return problem_response(409, exc.message)

    @app.exception_handler(JobNotFoundError)
    async def job_not_found(request: Request, exc: JobNotFoundError):
        return problem_response(404, exc.message)

    @app.exception_handler(NoDataFoundError)
    async def no_data_found(request: Request, exc: NoDataFoundError):
        return problem_response(404, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return problem_response(exc.status_code, str(exc.detail) if exc.detail else None)
