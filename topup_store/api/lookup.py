"""
Username lookup endpoint.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from topup_store.api.deps import get_lookup_client
from topup_store.errors import InvalidRequestError, UpstreamFailureError
from topup_store.services.username_lookup import UsernameLookupClient

router = APIRouter(tags=["Lookup"])


class UsernameLookupRequest(BaseModel):
    user_id: str | int | None = Field(default=None, alias="userId")
    zone_id: str | int | None = Field(default=None, alias="zoneId")

    model_config = {"populate_by_name": True}


@router.post("/lookup-username")
def lookup_username(
    request: UsernameLookupRequest,
    client: UsernameLookupClient = Depends(get_lookup_client),
):
    """Resolve a game account's display name, served from cache when possible."""
    try:
        result = client.lookup(request.user_id, request.zone_id)
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except UpstreamFailureError as e:
        raise HTTPException(status_code=502, detail=e.message)
    return {"username": result.username, "cached": result.cached}
