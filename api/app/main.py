"""GateFlow API - Main application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.auth.rate_limit import limiter
from app.config import get_settings
from app.db.session import engine
from app.email.router import router as email_router
from app.webhooks.exceptions import WebhookError
from app.webhooks.router import router as webhooks_router

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    yield
    # Cleanup on shutdown
    await engine.dispose()


app = FastAPI(
    title="GateFlow API",
    description="""
## Webhook Delivery API

GateFlow notifies external systems about business events (purchases, leads,
payments, access changes) with signed HTTP callbacks.

### Features

- **Endpoint Registry** - Register HTTPS endpoints and the event types they receive
- **Signed Delivery** - Every request carries an HMAC-SHA256 signature of its body
- **Delivery Log** - One entry per attempt, with response status and timing
- **Operator Retry** - Replay failed deliveries with the original payload

### Verifying deliveries

Compute `HMAC-SHA256(secret, body)` over the raw request body and compare it
with the hex value of the `X-GateFlow-Signature` header.
    """,
    version="1.0.0",
    lifespan=lifespan,
)

# Rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(WebhookError)
async def webhook_error_handler(request: Request, exc: WebhookError):
    if exc.status_code >= 500:
        logger.error("Webhook API error on %s: %s", request.url.path, exc.message)
    else:
        logger.warning(
            "Rejected %s %s (%s): %s", request.method, request.url.path, exc.code, exc.message
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes - all under /api/v1
API_PREFIX = "/api/v1"
app.include_router(webhooks_router, prefix=API_PREFIX)
app.include_router(email_router, prefix=API_PREFIX)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "GateFlow API",
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
