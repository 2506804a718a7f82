"""Bearer token authentication for internal users.

This module verifies identity provider JWTs sent as
`Authorization: Bearer <token>` and resolves them to application users.

Security: Tokens are verified against the configured secret, algorithm,
issuer, audience and tenant before any claim is trusted. Token contents
are never logged.
"""

from typing import Optional

import jwt
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from survey_studio.config import get_settings
from survey_studio.models.database import get_db
from survey_studio.models.user import User
from survey_studio.services.errors import AuthenticationError
from survey_studio.services.users import Identity, UserService
from survey_studio.logging_config import get_logger

logger = get_logger(__name__)


class TokenVerifier:
    """Service for verifying identity provider tokens.

    Claims used:
        - oid or sub: stable subject identifier
        - preferred_username, email or upn: email address
        - name: display name
        - tid: tenant id (checked when AUTH_ALLOWED_TENANT_ID is set)
    """

    def __init__(self):
        """Initialize verifier from settings."""
        self.settings = get_settings()

    def verify(self, token: str) -> Identity:
        """Verify a bearer token and extract the caller's identity.

        Args:
            token: Encoded JWT

        Returns:
            Identity for the verified subject

        Raises:
            AuthenticationError: If the token is invalid or its claims are unacceptable
        """
        settings = self.settings
        options = {"require": ["exp"], "verify_aud": settings.auth_audience is not None}

        try:
            claims = jwt.decode(
                token,
                settings.auth_jwt_secret,
                algorithms=[settings.auth_jwt_algorithm],
                audience=settings.auth_audience,
                issuer=settings.auth_issuer,
                options=options,
            )
        except jwt.ExpiredSignatureError:
            logger.info("Rejected expired bearer token")
            raise AuthenticationError("Session expired, please sign in again")
        except jwt.InvalidTokenError as e:
            logger.warning(
                f"Rejected invalid bearer token: {type(e).__name__}",
                extra={"error_type": type(e).__name__}
            )
            raise AuthenticationError("Invalid auth token")

        if settings.auth_allowed_tenant_id and claims.get("tid") != settings.auth_allowed_tenant_id:
            logger.warning("Rejected token from another tenant")
            raise AuthenticationError("Unauthorized tenant")

        subject = claims.get("oid") or claims.get("sub")
        if not subject:
            raise AuthenticationError("Invalid auth token")

        email = next(
            (
                value.strip().lower()
                for value in (claims.get(key) for key in ("preferred_username", "email", "upn"))
                if isinstance(value, str) and value.strip()
            ),
            "",
        )
        if not email.endswith(f"@{settings.allowed_email_domain}"):
            logger.warning("Rejected token with email outside the allowed domain")
            raise AuthenticationError(
                f"Only @{settings.allowed_email_domain} accounts can sign in"
            )

        name = claims.get("name")
        return Identity(
            subject=str(subject),
            email=email,
            full_name=name if isinstance(name, str) else "",
        )


def extract_bearer_token(request: Request) -> Optional[str]:
    """Return the bearer token from the Authorization header, if any."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


# Dependency function for FastAPI routes
def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """FastAPI dependency resolving the authenticated user.

    Args:
        request: FastAPI request object
        db: Database session

    Returns:
        Provisioned User for the token's subject

    Raises:
        AuthenticationError: If the token is missing or invalid

    Usage:
        @router.get("/api/me")
        def me(user: User = Depends(get_current_user)):
            ...
    """
    token = extract_bearer_token(request)
    if token is None:
        client_ip = request.client.host if request.client else "unknown"
        logger.info(f"Missing bearer token from IP: {client_ip}")
        raise AuthenticationError("Missing auth token")

    identity = TokenVerifier().verify(token)
    user = UserService(db).resolve(identity)
    return user
