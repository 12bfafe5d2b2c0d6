"""FastAPI dependencies for bearer authentication."""

from datetime import timedelta
from typing import Iterable, Optional
from uuid import UUID

import jwt
from fastapi import Depends, Header
from jwt import PyJWTError

from .auth import STAFF_ROLE_NAMES, AuthContext, Role
from .config import settings
from .database import utcnow
from .exceptions import AuthenticationError


def issue_token(
    subject: str,
    roles: Iterable[str],
    customer_id: Optional[UUID] = None,
    expires_in: timedelta = timedelta(hours=8),
) -> str:
    """Sign a bearer token carrying the claims ``get_auth_context`` reads."""
    payload = {
        "sub": subject,
        "roles": list(roles),
        "exp": utcnow() + expires_in,
    }
    if customer_id is not None:
        payload["customer_id"] = str(customer_id)
    return jwt.encode(payload, settings.bearer_token_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> AuthContext:
    """
    Validate a bearer token and build the caller's authorization context.

    Raises:
        AuthenticationError: If the token is invalid, expired, or malformed
    """
    try:
        payload = jwt.decode(
            token,
            settings.bearer_token_secret,
            algorithms=[settings.jwt_algorithm]
        )
    except PyJWTError as e:
        raise AuthenticationError(detail=f"Token validation failed: {str(e)}") from e

    user_id = payload.get("sub")
    if user_id is None:
        raise AuthenticationError(detail="Invalid token payload")

    roles = tuple(payload.get("roles", []))
    role = Role.STAFF if STAFF_ROLE_NAMES.intersection(roles) else Role.CUSTOMER

    customer_id = None
    raw_customer_id = payload.get("customer_id")
    if raw_customer_id:
        try:
            customer_id = UUID(str(raw_customer_id))
        except ValueError as e:
            raise AuthenticationError(detail="Invalid customer_id claim") from e

    return AuthContext(user_id=str(user_id), role=role, customer_id=customer_id, roles=roles)


async def get_auth_context(
    authorization: Optional[str] = Header(None, alias="Authorization")
) -> AuthContext:
    """
    Authentication dependency that validates Bearer tokens.

    Args:
        authorization: Authorization header with Bearer token

    Returns:
        AuthContext: Caller identity and role

    Raises:
        AuthenticationError: If token is invalid or missing
    """
    if not authorization:
        raise AuthenticationError(detail="Authorization header missing")

    try:
        scheme, token = authorization.split()
    except ValueError as e:
        raise AuthenticationError(detail="Invalid authorization header format") from e

    if scheme.lower() != "bearer":
        raise AuthenticationError(detail="Invalid authentication scheme")

    return decode_token(token)


async def get_staff_context(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
    """Authentication dependency that additionally requires a staff role."""
    auth.require_staff()
    return auth


RequiredAuth = Depends(get_auth_context)
StaffAuth = Depends(get_staff_context)
