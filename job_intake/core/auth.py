"""
Authentication dependency.

Tokens are issued by the external user service. The claims are normalized
here, once, into an Actor; nothing downstream inspects raw token payloads.
"""
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from job_intake.core.audit import audit_logger
from job_intake.core.exceptions import InvalidTokenError, UnauthenticatedError
from job_intake.core.security import verify_jwt_token
from job_intake.log.logging import logger
from job_intake.models.actor import Actor, Role

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)

# Claim names the user service has used for the user ID, in order of preference
ID_CLAIMS = ("id", "userId", "_id", "sub")


def actor_from_claims(payload: dict) -> Actor:
    """
    Build an Actor from decoded token claims.

    Raises:
        InvalidTokenError: If the ID or role claim is missing or unknown.
    """
    user_id = next((payload[claim] for claim in ID_CLAIMS if payload.get(claim)), None)
    if user_id is None:
        raise InvalidTokenError()

    try:
        role = Role(str(payload.get("role", "")).lower())
    except ValueError:
        raise InvalidTokenError()

    return Actor(id=str(user_id), role=role, email=payload.get("email"))


async def get_current_actor(token: str | None = Depends(oauth2_scheme)) -> Actor:
    """
    Resolve the authenticated actor from the bearer token.

    Raises:
        UnauthenticatedError: If no token is presented.
        InvalidTokenError: If the token cannot be verified.
    """
    if not token:
        raise UnauthenticatedError()

    try:
        payload = verify_jwt_token(token)
    except JWTError as e:
        logger.warning("Token verification failed", error=str(e), event_type="auth_failed")
        audit_logger.log_token_invalid(reason=str(e))
        raise InvalidTokenError()

    return actor_from_claims(payload)
