"""Email validation API router."""

import time
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.auth.rate_limit import limiter
from app.config import get_settings

from .disposable import DisposableDomainCache, get_disposable_cache, validate_email
from .schemas import (
    EmailValidationData,
    EmailValidationRequest,
    EmailValidationResponse,
    ErrorDetail,
    ValidationMeta,
)

settings = get_settings()

router = APIRouter(tags=["email"])


def _meta(start_time: float, domains_loaded: int) -> ValidationMeta:
    return ValidationMeta(
        timestamp=datetime.now(UTC).isoformat(),
        processing_time_ms=int((time.monotonic() - start_time) * 1000),
        domains_loaded=domains_loaded,
    )


@router.post(
    "/validate-email",
    response_model=EmailValidationResponse,
    response_model_exclude_none=True,
)
@limiter.limit(settings.VALIDATE_EMAIL_RATE_LIMIT)
async def validate_email_address(
    request: Request,
    body: EmailValidationRequest,
    cache: DisposableDomainCache = Depends(get_disposable_cache),
):
    """Validate an email address and check it against disposable domains."""
    start_time = time.monotonic()
    result = await validate_email(body.email, body.allow_disposable, cache)

    if result.domain is None:
        response = EmailValidationResponse(
            success=False,
            error=ErrorDetail(message=result.error or "Invalid email", code="VALIDATION_ERROR"),
            meta=_meta(start_time, 0),
        )
        return JSONResponse(status_code=400, content=response.model_dump(exclude_none=True))

    return EmailValidationResponse(
        success=True,
        data=EmailValidationData(
            is_valid=result.is_valid,
            is_disposable=result.is_disposable,
            domain=result.domain,
            error=result.error,
        ),
        meta=_meta(start_time, cache.domain_count),
    )
