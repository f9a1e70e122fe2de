"""
Reward code API endpoints.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends

from topup_store.api.deps import get_engine, get_identity, to_response
from topup_store.services.engine import StorefrontEngine
from topup_store.services.identity import Identity

router = APIRouter(prefix="/rewards", tags=["Rewards"])


@router.post("/check")
def check_redemption_code(
    payload: dict[str, Any] = Body(...),
    identity: Identity = Depends(get_identity),
    engine: StorefrontEngine = Depends(get_engine),
):
    """Preview a reward code without redeeming it."""
    return to_response(engine.check_redemption_code(identity, payload))


@router.post("/redeem")
def redeem_code(
    payload: dict[str, Any] = Body(...),
    identity: Identity = Depends(get_identity),
    engine: StorefrontEngine = Depends(get_engine),
):
    """Redeem a reward code."""
    return to_response(engine.redeem_code(identity, payload))
