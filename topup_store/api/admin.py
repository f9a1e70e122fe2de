"""
Admin API endpoints — catalog, vouchers, rewards, top-ups.

Every route requires an identity listed in ADMIN_USER_IDS.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from topup_store.api.deps import require_admin
from topup_store.errors import StoreError, NotFoundError
from topup_store.models.base import get_db
from topup_store.schemas.account import AccountCredit
from topup_store.schemas.ledger import LedgerEntryResponse
from topup_store.schemas.product import ProductCreate, ProductResponse
from topup_store.schemas.redemption import (
    RewardCreate,
    VoucherCreate,
    VoucherResponse,
)
from topup_store.services.account_service import AccountService
from topup_store.services.catalog import DatabaseProductCatalog
from topup_store.services.redemption_service import RedemptionService

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)


@router.post("/products", response_model=ProductResponse, status_code=201)
def create_product(request: ProductCreate, db: Session = Depends(get_db)):
    """Add a product to the catalog."""
    catalog = DatabaseProductCatalog(db)
    try:
        product = catalog.create_product(request)
        db.commit()
        return product
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/vouchers", response_model=VoucherResponse, status_code=201)
def create_voucher(request: VoucherCreate, db: Session = Depends(get_db)):
    """Create a voucher code."""
    service = RedemptionService(db)
    try:
        voucher = service.create_voucher(request)
        db.commit()
        return voucher
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/rewards", status_code=201)
def create_reward(request: RewardCreate, db: Session = Depends(get_db)):
    """Create a reward code. The response never includes the hidden key."""
    service = RedemptionService(db)
    try:
        reward = service.create_reward(request)
        db.commit()
        return {"id": reward.id, "code": reward.code, "reward_type": reward.reward_type}
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.post(
    "/accounts/{account_id}/credit",
    response_model=LedgerEntryResponse,
    status_code=201,
)
def credit_account(
    account_id: str,
    request: AccountCredit,
    db: Session = Depends(get_db),
):
    """Top up an account balance by hand."""
    service = AccountService(db)
    try:
        return service.credit_balance(account_id, request.amount, request.note)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except StoreError as e:
        raise HTTPException(status_code=400, detail=e.message)
