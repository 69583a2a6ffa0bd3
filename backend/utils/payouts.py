import logging
from datetime import datetime

from config.constants import (
    ADMIN_LIST_LIMIT,
    ALLOWED_PAYOUT_METHODS,
    PAYOUT_COMPLETED,
    PAYOUT_PENDING,
    PAYOUT_REJECTED,
)
from utils.errors import (
    ConflictError,
    InsufficientFundsError,
    NotFoundError,
    ValidationError,
)
from utils.guards import parse_object_id
from utils.money import format_amount
from utils.notifications import emit_notification

logger = logging.getLogger(__name__)


def normalize_payout_method(method: str) -> str:
    value = (method or "").strip().lower()
    if value not in ALLOWED_PAYOUT_METHODS:
        raise ValidationError(
            f"Invalid payout method. Allowed: {', '.join(sorted(ALLOWED_PAYOUT_METHODS))}"
        )
    return value


# ======================================================
# REQUEST PAYOUT (SELLER)
# ======================================================

async def request_payout(store, seller_id, amount: int, method: str):
    """
    Debits the wallet and records a pending payout request in one transaction.

    The debit is a single conditional update (balance >= amount), so two
    concurrent requests can never both pass the balance check.
    """
    seller_oid = parse_object_id(seller_id, "seller id")
    method = normalize_payout_method(method)
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise ValidationError("Payout amount must be positive")

    async with store.transaction() as session:
        if not await session.debit_wallet(seller_oid, amount):
            if not await session.get_user(seller_oid):
                raise NotFoundError("Seller", seller_oid)
            raise InsufficientFundsError(seller_oid)

        payout_id = await session.insert_payout({
            "seller_id": seller_oid,
            "amount": amount,
            "method": method,
            "status": PAYOUT_PENDING,
            "created_at": datetime.utcnow(),
            "reviewed_at": None,
            "review_reason": None,
        })

        await emit_notification(
            session,
            seller_oid,
            "Payout requested",
            f"Your payout of {format_amount(amount)} via {method} is being processed",
        )

    logger.info("PAYOUT_REQUESTED seller=%s payout=%s amount=%s", seller_oid, payout_id, amount)
    return payout_id


# ======================================================
# PAYOUT DECISION (ADMIN)
# ======================================================

async def decide_payout(store, payout_id, action: str, *, reason: str | None = None):
    """
    approve: pending -> completed.
    reject:  pending -> rejected, amount credited back to the wallet.
    """
    payout_oid = parse_object_id(payout_id, "payout id")
    if action not in {"approve", "reject"}:
        raise ValidationError("Invalid action")

    new_status = PAYOUT_COMPLETED if action == "approve" else PAYOUT_REJECTED

    async with store.transaction() as session:
        payout = await session.get_payout(payout_oid)
        if not payout:
            raise NotFoundError("Payout request", payout_oid)

        updated = await session.set_payout_status(
            payout_oid,
            PAYOUT_PENDING,
            new_status,
            {"reviewed_at": datetime.utcnow(), "review_reason": reason},
        )
        if not updated:
            raise ConflictError("Payout request already processed")

        if new_status == PAYOUT_REJECTED:
            # Re-credit held payout amount on rejection
            if not await session.credit_wallet(payout["seller_id"], payout["amount"]):
                raise NotFoundError("Seller", payout["seller_id"])
            title = "Payout rejected"
            message = f"Your payout of {format_amount(payout['amount'])} was rejected and returned to your wallet"
        else:
            title = "Payout completed"
            message = f"Your payout of {format_amount(payout['amount'])} via {payout['method']} was sent"

        await emit_notification(session, payout["seller_id"], title, message)

    logger.info("PAYOUT_DECIDED payout=%s status=%s", payout_oid, new_status)
    return new_status


# ======================================================
# READS
# ======================================================

async def list_payouts(store, seller_id=None, status: str | None = None, limit: int | None = None):
    seller_oid = parse_object_id(seller_id, "seller id") if seller_id is not None else None
    async with store.session() as session:
        return await session.list_payouts(seller_oid, status, limit)


async def get_wallet(store, seller_id) -> dict:
    seller_oid = parse_object_id(seller_id, "seller id")
    async with store.session() as session:
        user = await session.get_user(seller_oid)
    if not user:
        raise NotFoundError("Seller", seller_oid)
    return {
        "seller_id": seller_oid,
        "wallet_balance": user.get("wallet_balance", 0),
        "loyalty_points": user.get("loyalty_points", 0),
    }


async def list_admin_payouts(store, status: str | None = None):
    return await list_payouts(store, None, status, ADMIN_LIST_LIMIT)
