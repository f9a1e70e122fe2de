"""
Account API endpoints for the signed-in user.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from topup_store.api.deps import get_identity
from topup_store.errors import StoreError
from topup_store.models.base import get_db
from topup_store.schemas.account import AccountOpen, AccountResponse
from topup_store.schemas.ledger import LedgerEntryResponse
from topup_store.services.account_service import AccountService
from topup_store.services.identity import Identity

router = APIRouter(prefix="/accounts", tags=["Accounts"])


@router.post("/me", response_model=AccountResponse, status_code=201)
def open_account(
    request: AccountOpen,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Open the caller's account, or return it if it already exists."""
    service = AccountService(db)
    try:
        return service.open_account(
            identity.user_id,
            email=identity.email,
            display_name=request.display_name or identity.display_name,
        )
    except StoreError as e:
        raise HTTPException(status_code=409, detail=e.message)


@router.get("/me", response_model=AccountResponse)
def get_account(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Get the caller's balance and counters."""
    try:
        return AccountService(db).get_account(identity.user_id)
    except StoreError as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.get("/me/ledger", response_model=list[LedgerEntryResponse])
def get_ledger(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Get the caller's ledger entries, newest first."""
    try:
        return AccountService(db).get_entries(identity.user_id)
    except StoreError as e:
        raise HTTPException(status_code=404, detail=e.message)
