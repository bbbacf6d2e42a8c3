"""Authentication helpers integrating AWS Cognito JWTs.

This module provides two FastAPI dependencies:

``get_current_user``
    1. Extracts the ``Authorization: Bearer <id_token>`` header.
    2. Downloads / caches the JSON Web Key Set (JWKS) for the Cognito User Pool.
    3. Verifies signature, expiration and audience.
    4. Creates or fetches a ``models.User`` database row on-the-fly. New users
       take their account type from the ``custom:user_type`` claim.

``get_auth_context``
    Wraps the user in a ``permissions.AuthContext`` that domain operations
    receive explicitly instead of reading request state.

When ``auth_enabled`` is false every request runs as the configured local
user, created on first use.
"""
from __future__ import annotations

import time
from functools import lru_cache
from typing import Annotated, Optional

import httpx
import structlog
from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

import crud
import models
import schemas
from database import get_db
from permissions import AuthContext
from settings import get_settings

logger = structlog.get_logger(__name__)


class TokenPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sub: str
    email: Optional[str] = None
    exp: int
    aud: str
    user_type: Optional[models.UserType] = Field(default=None, alias="custom:user_type")


class AuthSettings(BaseModel):
    region: str
    user_pool_id: str
    client_id: str

    @property
    def issuer(self) -> str:  # cognito issuer URL
        return f"https://cognito-idp.{self.region}.amazonaws.com/{self.user_pool_id}"

    @property
    def jwks_url(self) -> str:
        return f"{self.issuer}/.well-known/jwks.json"


@lru_cache
def _load_settings() -> AuthSettings:
    settings = get_settings()
    if not settings.auth_enabled:
        raise RuntimeError("Cognito auth disabled in local mode")
    if not settings.cognito_user_pool_id or not settings.cognito_app_client_id:
        raise RuntimeError("COGNITO_USER_POOL_ID and COGNITO_APP_CLIENT_ID are required when auth is enabled")
    return AuthSettings(
        region=settings.aws_region or "us-east-1",
        user_pool_id=settings.cognito_user_pool_id,
        client_id=settings.cognito_app_client_id,
    )


@lru_cache
def _get_jwks():
    settings = _load_settings()
    logger.info("Fetching JWKS", jwks_url=settings.jwks_url)
    resp = httpx.get(settings.jwks_url, timeout=10)
    resp.raise_for_status()
    return resp.json()


def verify_token(token: str) -> TokenPayload:
    """Verify Cognito JWT and return payload.

    Raises HTTPException(401) on failure.
    """
    app_settings = get_settings()
    if not app_settings.auth_enabled:
        return TokenPayload(
            sub="local-dev",
            email=app_settings.local_user_email,
            exp=int(time.time()) + 3600,
            aud="local",
        )

    settings = _load_settings()
    jwks = _get_jwks()

    try:
        payload = jwt.decode(
            token,
            jwks,
            algorithms=["RS256"],
            audience=settings.client_id,
            issuer=settings.issuer,
            options={"verify_at_hash": False},
        )
        return TokenPayload.model_validate(payload)
    except JWTError as exc:
        logger.warning("JWT verification failed", exc=str(exc))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def _get_authorization_header(request: Request) -> Optional[str]:
    return request.headers.get("Authorization")


def _get_or_provision_user(db: Session, email: str, sub: str, user_type: models.UserType) -> models.User:
    user = crud.get_user_by_email(db, email)
    if not user:
        user = crud.create_user(
            db, schemas.UserCreate(email=email, cognito_sub=sub, user_type=user_type)
        )
        db.commit()
        logger.info("Provisioned user", user_id=user.id, user_type=user_type.value)
    return user


# --- FastAPI dependencies ---
async def get_current_user(
    authorization: Annotated[Optional[str], Depends(_get_authorization_header)],
    db: Session = Depends(get_db),
) -> models.User:
    settings = get_settings()
    if not settings.auth_enabled:
        # Local dev: always return / create the configured user
        return _get_or_provision_user(
            db,
            settings.local_user_email,
            "local-dev",
            models.UserType(settings.local_user_type),
        )

    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    token = authorization.split(" ")[1]
    payload = verify_token(token)
    return _get_or_provision_user(
        db,
        payload.email or payload.sub,
        payload.sub,
        payload.user_type or models.UserType.JOBSEEKER,
    )


def get_auth_context(current_user: models.User = Depends(get_current_user)) -> AuthContext:
    return AuthContext.from_user(current_user)
