"""
Shared FastAPI dependencies.

Identity is resolved from the Authorization header before any
engine operation runs.
"""

from fastapi import Depends, Header, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from topup_store.config import get_settings
from topup_store.errors import ErrorKind, InvalidTokenError
from topup_store.models.base import get_db
from topup_store.schemas.common import OperationResult
from topup_store.services.engine import StorefrontEngine
from topup_store.services.identity import Identity, JwtIdentityProvider
from topup_store.services.username_lookup import (
    UsernameLookupClient,
    build_lookup_client,
)


STATUS_FOR_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UNAUTHORIZED: 403,
    ErrorKind.STATE_CONFLICT: 409,
    ErrorKind.LIMIT_EXCEEDED: 409,
    ErrorKind.INSUFFICIENT_BALANCE: 402,
    ErrorKind.UPSTREAM_FAILURE: 502,
    ErrorKind.CONFLICT: 409,
    ErrorKind.TIMEOUT: 504,
}


def get_identity_provider() -> JwtIdentityProvider:
    return JwtIdentityProvider()


def get_identity(
    authorization: str | None = Header(default=None),
    provider: JwtIdentityProvider = Depends(get_identity_provider),
) -> Identity:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing token")
    token = authorization.split(" ", 1)[1].strip()
    try:
        return provider.verify_token(token)
    except InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=e.message)


def require_admin(identity: Identity = Depends(get_identity)) -> Identity:
    if identity.user_id not in get_settings().ADMIN_USER_IDS:
        raise HTTPException(status_code=403, detail="Admin access required")
    return identity


def get_engine(db: Session = Depends(get_db)) -> StorefrontEngine:
    return StorefrontEngine(db)


_lookup_client: UsernameLookupClient | None = None


def get_lookup_client() -> UsernameLookupClient:
    # One client per process so the cache outlives requests
    global _lookup_client
    if _lookup_client is None:
        _lookup_client = build_lookup_client()
    return _lookup_client


def to_response(result: OperationResult, success_status: int = 200) -> JSONResponse:
    status_code = (
        success_status if result.success
        else STATUS_FOR_KIND.get(result.error_kind, 400)
    )
    return JSONResponse(
        status_code=status_code, content=result.model_dump(mode="json")
    )
