"""
Redemption service — reward codes and voucher/reward admin.

check_code() is a read-only preview. redeem_code() repeats every
check inside the atomic transaction, because the preview and
the redemption are independent requests and anything may have
changed in between.

A user has already redeemed a reward when their ledger holds
an entry for it of the type that reward produces: Receive for
choices rewards, Redeemed for all others.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from topup_store.errors import (
    InvalidRequestError,
    NotFoundError,
    ExpiredError,
    AlreadyRedeemedError,
    LimitExceededError,
    WrongKeyError,
    UnsupportedRewardTypeError,
)
from topup_store.models.account import UserAccount
from topup_store.models.base import utcnow, new_id
from topup_store.models.enums import EntryType, RewardType
from topup_store.models.reward import Reward, RewardSubmission
from topup_store.models.voucher import Voucher
from topup_store.schemas.ledger import ReceiveDetails, RedeemedDetails
from topup_store.schemas.redemption import (
    RewardCreate,
    RewardPublic,
    RedeemResult,
    VoucherCreate,
)
from topup_store.services.ledger_service import LedgerService
from topup_store.services.store import LedgerStore, AtomicTransaction

logger = logging.getLogger(__name__)


# Entry type written when a reward of each type is redeemed
REDEEM_ENTRY_TYPE: dict[RewardType, EntryType] = {
    RewardType.CHOICES: EntryType.RECEIVE,
    RewardType.AIRDROP: EntryType.REDEEMED,
    RewardType.FORM: EntryType.REDEEMED,
    RewardType.REDEMPTION_KEY: EntryType.REDEEMED,
}

# Follow-up flow an airdrop unlocks
AIRDROP_NEXT_FLOW = "choices"


def normalize_code(code: str) -> str:
    return code.strip().upper()


def sanitize(reward: Reward) -> RewardPublic:
    remaining = None
    if reward.max_redemptions > 0:
        remaining = max(reward.max_redemptions - reward.redemption_count, 0)
    return RewardPublic(
        id=reward.id,
        code=reward.code,
        reward_type=reward.reward_type,
        title=reward.title,
        value=reward.value,
        expires_at=reward.expires_at,
        remaining=remaining,
        form_fields=reward.form_fields,
        key_hint=reward.key_hint,
    )


class RedemptionService:

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock
        self.store = LedgerStore(db)
        self.ledger_service = LedgerService(db)

    def check_code(self, code: str, user_id: str) -> RewardPublic:
        """Validate a reward code without redeeming it."""

        def _check(txn: AtomicTransaction) -> RewardPublic:
            reward, _ = self._validate(txn, code, user_id, self.clock())
            return sanitize(reward)

        return self.store.run_atomic(_check)

    def redeem_code(
        self, code: str, user_id: str, payload: Any = None
    ) -> RedeemResult:
        """
        Redeem a reward code for a user.

        choices: credits ``value`` to the balance.
        airdrop: records the claim and hands off to the choices flow.
        form: stores the payload as a submission.
        redemptionKey: payload must equal the hidden key; returns
        the secret message.
        """

        def _redeem(txn: AtomicTransaction) -> RedeemResult:
            now = self.clock()

            # --- reads ---
            reward, reward_type = self._validate(txn, code, user_id, now)
            account = txn.get(UserAccount, user_id, lock=True)
            if account is None:
                raise NotFoundError(f"Account {user_id} not found")

            result = RedeemResult(
                reward_id=reward.id, reward_type=reward.reward_type
            )
            if reward_type == RewardType.FORM:
                if not isinstance(payload, dict) or not payload:
                    raise InvalidRequestError(
                        "A form submission is required for this reward"
                    )
            elif reward_type == RewardType.REDEMPTION_KEY:
                if not isinstance(payload, str) or payload != reward.redemption_key:
                    raise WrongKeyError("The redemption key is incorrect")

            # --- writes ---
            submission = None
            if reward_type == RewardType.FORM:
                submission = txn.add(RewardSubmission(
                    reward_id=reward.id,
                    user_id=user_id,
                    payload=payload,
                    created_at=now,
                ))
                # Submission id is needed on the ledger entry
                self.db.flush()
                result.submission_id = submission.id

            if reward_type == RewardType.CHOICES:
                self.ledger_service.post(
                    txn, account, EntryType.RECEIVE, reward.value,
                    ReceiveDetails(source="reward", reward_code=reward.code),
                    now,
                    external_reference=reward.code,
                    related_doc_id=reward.id,
                )
                result.credited = reward.value
            else:
                self.ledger_service.post(
                    txn, account, EntryType.REDEEMED, 0,
                    RedeemedDetails(
                        reward_code=reward.code,
                        reward_type=reward.reward_type,
                        submission_id=result.submission_id,
                    ),
                    now,
                    external_reference=reward.code,
                    related_doc_id=reward.id,
                )
                if reward_type == RewardType.AIRDROP:
                    result.next_flow = AIRDROP_NEXT_FLOW
                    result.flow_value = reward.value
                elif reward_type == RewardType.REDEMPTION_KEY:
                    result.secret_message = reward.secret_message

            txn.update(reward, redemption_count=reward.redemption_count + 1)
            return result

        result = self.store.run_atomic(_redeem)
        logger.info(
            "Reward %s redeemed by %s (%s)",
            normalize_code(code), user_id, result.reward_type,
        )
        return result

    def _validate(
        self, txn: AtomicTransaction, code: str, user_id: str, now: datetime
    ) -> tuple[Reward, RewardType]:
        reward = txn.first(
            select(Reward).where(Reward.code == normalize_code(code))
        )
        if reward is None:
            raise NotFoundError(f"Reward code {normalize_code(code)} not found")
        try:
            reward_type = RewardType(reward.reward_type)
        except ValueError:
            raise UnsupportedRewardTypeError(
                f"Reward type '{reward.reward_type}' is not supported"
            ) from None
        if reward.is_expired(now):
            raise ExpiredError(f"Reward code {reward.code} has expired")
        if self.ledger_service.has_entry(
            txn, user_id, reward.id, [REDEEM_ENTRY_TYPE[reward_type]]
        ):
            raise AlreadyRedeemedError(
                f"Reward code {reward.code} was already redeemed"
            )
        if reward.limit_reached():
            raise LimitExceededError(
                f"Reward code {reward.code} has reached its redemption limit"
            )
        return reward, reward_type

    # --- admin ---

    def create_voucher(self, request: VoucherCreate) -> Voucher:
        """
        Create a voucher.

        Raises ValueError if the code already exists.
        """
        existing = self.db.execute(
            select(Voucher).where(Voucher.code == request.code)
        ).scalar_one_or_none()
        if existing:
            raise ValueError(f"Voucher with code '{request.code}' already exists")

        voucher = Voucher(id=new_id(), redemption_count=0, **request.model_dump())
        self.db.add(voucher)
        self.db.flush()
        return voucher

    def create_reward(self, request: RewardCreate) -> Reward:
        """
        Create a reward code.

        Raises ValueError if the code already exists or the
        type-specific fields are missing.
        """
        existing = self.db.execute(
            select(Reward).where(Reward.code == request.code)
        ).scalar_one_or_none()
        if existing:
            raise ValueError(f"Reward with code '{request.code}' already exists")
        if request.reward_type == RewardType.REDEMPTION_KEY and not request.redemption_key:
            raise ValueError("redemptionKey rewards need a redemption_key")

        data = request.model_dump()
        data["reward_type"] = request.reward_type.value
        reward = Reward(id=new_id(), redemption_count=0, **data)
        self.db.add(reward)
        self.db.flush()
        return reward
