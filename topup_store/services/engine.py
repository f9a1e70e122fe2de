"""
Storefront engine — the operation surface.

Each operation takes the caller's verified identity and a
request payload (a dict or the matching schema) and always
returns an OperationResult. Typed failures from the services,
malformed payloads and unmapped database errors become failure
results; nothing is raised past this boundary.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from topup_store.errors import StoreError, ErrorKind
from topup_store.models.base import utcnow
from topup_store.schemas.common import OperationResult
from topup_store.schemas.order import (
    CreateOrderRequest,
    ClaimGiftRequest,
    FinalizeDeliveryRequest,
    RefundGiftRequest,
    OrderResponse,
    TransitionResponse,
)
from topup_store.schemas.redemption import CheckCodeRequest, RedeemCodeRequest
from topup_store.services.catalog import ProductCatalog
from topup_store.services.identity import Identity
from topup_store.services.order_service import OrderService, TransitionResult
from topup_store.services.redemption_service import RedemptionService
from topup_store.services.store import ReadAfterWriteError

logger = logging.getLogger(__name__)

RequestT = TypeVar("RequestT", bound=BaseModel)


def _parse(schema: type[RequestT], payload: Any) -> RequestT:
    if isinstance(payload, schema):
        return payload
    return schema.model_validate(payload or {})


def _transition_data(result: TransitionResult) -> dict:
    return TransitionResponse(
        order=OrderResponse.model_validate(result.order),
        advisories=result.advisories,
        refunded_amount=result.refunded_amount,
    ).model_dump(mode="json")


class StorefrontEngine:

    def __init__(
        self,
        db: Session,
        catalog: ProductCatalog | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.orders = OrderService(db, catalog=catalog, clock=clock)
        self.redemptions = RedemptionService(db, clock=clock)

    def _resolve(
        self, operation: str, identity: Identity, call: Callable[[], Any]
    ) -> OperationResult:
        try:
            data = call()
        except ValidationError as e:
            logger.info("%s rejected for %s: invalid payload", operation, identity.user_id)
            return OperationResult.failure(
                ErrorKind.VALIDATION_ERROR,
                "; ".join(err["msg"] for err in e.errors()),
            )
        except StoreError as e:
            logger.info(
                "%s rejected for %s: %s (%s)",
                operation, identity.user_id, e.kind.value, e.message,
            )
            return OperationResult.failure(e.kind, e.message, e.reason)
        except (ReadAfterWriteError, SQLAlchemyError):
            logger.exception("%s failed for %s", operation, identity.user_id)
            return OperationResult.failure(
                ErrorKind.CONFLICT, "The request could not be completed"
            )
        return OperationResult.ok(data)

    def create_order(self, identity: Identity, payload: Any) -> OperationResult:
        return self._resolve("create_order", identity, lambda: _transition_data(
            self.orders.create_order(
                identity.user_id, _parse(CreateOrderRequest, payload)
            )
        ))

    def claim_gift(self, identity: Identity, payload: Any) -> OperationResult:
        return self._resolve("claim_gift", identity, lambda: _transition_data(
            self.orders.claim_gift(
                identity.user_id, _parse(ClaimGiftRequest, payload)
            )
        ))

    def finalize_gift_delivery(
        self, identity: Identity, payload: Any
    ) -> OperationResult:
        return self._resolve("finalize_gift_delivery", identity, lambda: _transition_data(
            self.orders.finalize_gift_delivery(
                identity.user_id, _parse(FinalizeDeliveryRequest, payload)
            )
        ))

    def refund_expired_gift(
        self, identity: Identity, payload: Any
    ) -> OperationResult:
        return self._resolve("refund_expired_gift", identity, lambda: _transition_data(
            self.orders.refund_expired_gift(
                identity.user_id, _parse(RefundGiftRequest, payload)
            )
        ))

    def check_redemption_code(
        self, identity: Identity, payload: Any
    ) -> OperationResult:
        def _check():
            request = _parse(CheckCodeRequest, payload)
            return self.redemptions.check_code(
                request.code, identity.user_id
            ).model_dump(mode="json")

        return self._resolve("check_redemption_code", identity, _check)

    def redeem_code(self, identity: Identity, payload: Any) -> OperationResult:
        def _redeem():
            request = _parse(RedeemCodeRequest, payload)
            return self.redemptions.redeem_code(
                request.code, identity.user_id, request.payload
            ).model_dump(mode="json")

        return self._resolve("redeem_code", identity, _redeem)
