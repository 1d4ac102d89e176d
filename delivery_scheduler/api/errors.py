"""Translate domain errors into HTTP errors."""

from fastapi import HTTPException, status

from delivery_scheduler.core.exceptions import DeliverySchedulerError, NotFoundError


def to_http_exception(exc: DeliverySchedulerError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
