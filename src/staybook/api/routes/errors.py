"""Translate domain validation errors into HTTP responses."""

from fastapi import HTTPException

from staybook.domain.stays import StayValidationError


def validation_http_error(exc: StayValidationError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"message": exc.message, "reason_code": exc.reason_code},
    )


def not_found(what: str = "Stay") -> HTTPException:
    return HTTPException(status_code=404, detail=f"{what} not found")
