from __future__ import annotations

from json import JSONDecodeError

import structlog
from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ...domain.errors import RateLimitExceeded, SubmissionInvalid
from ...domain.rate_limits import RateLimitExceededPayload
from ...domain.takedowns import TakedownStatusResponse, TakedownSubmitResponse
from ...services.takedowns import TakedownService
from ..dependencies import get_client_ip, get_takedown_service

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/takedown-requests", tags=["takedowns"])

NOT_FOUND_MESSAGE = "Request not found or email does not match"


def _internal_error(message: str | None = None) -> JSONResponse:
    content = {"error": "Internal server error"}
    if message:
        content["message"] = message
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


@router.post(
    "",
    response_model=TakedownSubmitResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {}, 429: {}, 500: {}},
)
async def submit_takedown_request(
    request: Request,
    service: TakedownService = Depends(get_takedown_service),
    client_ip: str = Depends(get_client_ip),
):
    try:
        body = await request.json()
    except (JSONDecodeError, UnicodeDecodeError):
        # Left to validation so rate limiting still sees the attempt first.
        body = None

    try:
        outcome = await service.submit(body, actor_ip=client_ip)
    except RateLimitExceeded as exc:
        limit = exc.status
        payload = RateLimitExceededPayload(
            message=(
                "Please wait before submitting another DMCA request. "
                f"Maximum {limit.limit} requests per window; "
                f"retry in {limit.retry_after_seconds} seconds."
            ),
            retry_after=limit.retry_after_seconds,
        )
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content=payload.model_dump(),
            headers={"Retry-After": str(limit.retry_after_seconds)},
        )
    except SubmissionInvalid as exc:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Validation failed", "details": exc.field_errors},
        )
    except Exception:
        logger.exception("takedown.unexpected_error", stage="submit", actor=client_ip)
        return _internal_error("Failed to process DMCA request")

    response = TakedownSubmitResponse(
        message=outcome.message,
        request_id=outcome.request.id,
        link_removed=outcome.link_removed,
    )
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=jsonable_encoder(response),
    )


@router.get(
    "",
    response_model=TakedownStatusResponse,
    responses={400: {}, 404: {}, 500: {}},
)
async def get_takedown_request_status(
    request_id: str | None = Query(default=None, alias="id"),
    email: str | None = Query(default=None),
    service: TakedownService = Depends(get_takedown_service),
):
    if not request_id or not email:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Missing required parameters: id and email"},
        )

    try:
        view = await service.lookup(request_id, email)
    except Exception:
        logger.exception("takedown.unexpected_error", stage="lookup", request_id=request_id)
        return _internal_error()

    if view is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": NOT_FOUND_MESSAGE},
        )
    return TakedownStatusResponse(request=view)
