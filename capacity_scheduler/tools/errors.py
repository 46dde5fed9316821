from fastapi import HTTPException

from capacity_scheduler.services.exceptions import (
    CONFLICT,
    NOT_FOUND,
    PARSE_ERROR,
    STORE_ERROR,
    VALIDATION_ERROR,
    ServiceError,
)

_STATUS_BY_CODE = {
    VALIDATION_ERROR: 422,
    PARSE_ERROR: 422,
    NOT_FOUND: 404,
    CONFLICT: 409,
    STORE_ERROR: 502,
}


def to_http_error(exc: ServiceError) -> HTTPException:
    return HTTPException(
        status_code=_STATUS_BY_CODE.get(exc.code, 500),
        detail={"code": exc.code, "message": exc.message},
    )
