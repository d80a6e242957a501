"""Email address validation with disposable-domain filtering."""

from .disposable import (
    DisposableDomainCache,
    EmailValidationResult,
    get_disposable_cache,
    validate_email,
)

__all__ = [
    "DisposableDomainCache",
    "EmailValidationResult",
    "get_disposable_cache",
    "validate_email",
]
