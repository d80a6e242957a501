"""Access token handling for admin and service principals."""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from app.config import get_settings

settings = get_settings()


def create_access_token(
    subject: str,
    email: str | None = None,
    role: str = "admin",
    scopes: list[str] | None = None,
) -> str:
    """Create a short-lived access token (JWT)."""
    expire = datetime.now(UTC) + timedelta(seconds=settings.ACCESS_TOKEN_LIFETIME_SECONDS)
    payload = {
        "sub": subject,
        "email": email,
        "role": role,
        "scopes": scopes or [],
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Decode and validate access token."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
        if payload.get("type") != "access":
            return None
        return payload
    except JWTError:
        return None
