"""Email validation schemas."""

from pydantic import BaseModel, Field


class EmailValidationRequest(BaseModel):
    email: str = Field(..., description="Address to validate")
    allow_disposable: bool = Field(False, description="Accept disposable domains")


class EmailValidationData(BaseModel):
    is_valid: bool
    is_disposable: bool
    domain: str | None = None
    error: str | None = None


class ValidationMeta(BaseModel):
    timestamp: str
    processing_time_ms: int
    domains_loaded: int


class ErrorDetail(BaseModel):
    message: str
    code: str


class EmailValidationResponse(BaseModel):
    success: bool
    data: EmailValidationData | None = None
    error: ErrorDetail | None = None
    meta: ValidationMeta
