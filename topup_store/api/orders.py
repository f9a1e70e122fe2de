"""
Order and gift API endpoints.

The API layer is thin: it resolves the caller's identity,
hands the payload to the StorefrontEngine and maps the
outcome's error kind to an HTTP status.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session

from topup_store.api.deps import get_engine, get_identity, to_response
from topup_store.errors import StoreError
from topup_store.models.base import get_db
from topup_store.schemas.order import OrderResponse
from topup_store.services.engine import StorefrontEngine
from topup_store.services.identity import Identity
from topup_store.services.order_service import OrderService

router = APIRouter(tags=["Orders"])


@router.post("/orders")
def create_order(
    payload: dict[str, Any] = Body(...),
    identity: Identity = Depends(get_identity),
    engine: StorefrontEngine = Depends(get_engine),
):
    """Create a direct order or send a gift."""
    return to_response(engine.create_order(identity, payload), 201)


@router.get("/orders/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: str,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Get an order visible to the caller."""
    try:
        return OrderService(db).get_order(identity.user_id, order_id)
    except StoreError as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.post("/gifts/{order_id}/claim")
def claim_gift(
    order_id: str,
    payload: dict[str, Any] | None = Body(default=None),
    identity: Identity = Depends(get_identity),
    engine: StorefrontEngine = Depends(get_engine),
):
    """Claim a gift sent to the caller."""
    return to_response(
        engine.claim_gift(identity, {**(payload or {}), "order_id": order_id})
    )


@router.patch("/gifts/{order_id}/delivery")
def finalize_gift_delivery(
    order_id: str,
    payload: dict[str, Any] | None = Body(default=None),
    identity: Identity = Depends(get_identity),
    engine: StorefrontEngine = Depends(get_engine),
):
    """Update delivery details of a claimed gift."""
    return to_response(
        engine.finalize_gift_delivery(identity, {**(payload or {}), "order_id": order_id})
    )


@router.post("/gifts/{order_id}/refund")
def refund_expired_gift(
    order_id: str,
    identity: Identity = Depends(get_identity),
    engine: StorefrontEngine = Depends(get_engine),
):
    """Refund an expired, unclaimed gift to its sender."""
    return to_response(
        engine.refund_expired_gift(identity, {"order_id": order_id})
    )
