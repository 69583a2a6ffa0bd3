import logging
from datetime import datetime
from decimal import Decimal

from config.constants import ORDER_STATUS_TRANSITIONS, STATUS_DELIVERED
from config.env import LOYALTY_UNIT_AMOUNT
from models.order import OrderStatus
from utils.broadcast import broadcast_safely, order_update_topic
from utils.errors import InvalidTransitionError, NotFoundError, ValidationError
from utils.guards import parse_object_id
from utils.inventory import get_commission_rate
from utils.money import format_amount, net_of_commission, round_minor, to_minor_units
from utils.notifications import emit_notification
from utils.order_timeline import record_order_event

logger = logging.getLogger(__name__)


def normalize_status(status) -> str:
    try:
        return OrderStatus(status).value
    except ValueError:
        raise ValidationError(f"Unknown order status: {status}")


def assert_transition_allowed(current: str, requested: str):
    if requested == current:
        return
    if requested not in ORDER_STATUS_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(current, requested)


# ==============================
# Earnings
# ==============================

async def compute_seller_earnings(session, items: list[dict]) -> dict:
    """
    Groups order items by seller and returns `{seller_id: net_minor}`.

    The net is accumulated exactly and rounded half-to-even once per seller.
    Items without a seller are house inventory and never settle.
    """
    rates = {}
    exact = {}
    for item in items:
        seller_id = item.get("seller_id")
        if not seller_id:
            continue

        if seller_id not in rates:
            rates[seller_id] = await get_commission_rate(session, seller_id)

        gross = item["price"] * item["quantity"]
        exact[seller_id] = exact.get(seller_id, Decimal(0)) + net_of_commission(gross, rates[seller_id])

    return {seller_id: round_minor(net) for seller_id, net in exact.items()}


def loyalty_points_for(total_amount: int) -> int:
    unit = to_minor_units(LOYALTY_UNIT_AMOUNT)
    if unit <= 0:
        return 0
    return total_amount // unit


async def settle_order(session, order: dict) -> list[dict]:
    order_id = order["_id"]
    items = await session.get_order_items(order_id)
    earnings = await compute_seller_earnings(session, items)

    credited = []
    for seller_id, net in earnings.items():
        if net <= 0:
            continue

        if not await session.credit_wallet(seller_id, net):
            raise NotFoundError("Seller", seller_id)

        await emit_notification(
            session,
            seller_id,
            "Payment received",
            f"You received {format_amount(net)} for the sale of order #{order_id}",
        )
        credited.append({"seller_id": seller_id, "amount": net})

    buyer_id = order.get("buyer_id")
    if buyer_id:
        points = loyalty_points_for(order.get("total_amount", 0))
        if points > 0 and not await session.add_loyalty_points(buyer_id, points):
            logger.warning("LOYALTY_SKIPPED order=%s buyer=%s", order_id, buyer_id)

    await record_order_event(
        session,
        order_id=order_id,
        event="ORDER_SETTLED",
        actor_role="system",
        metadata={
            "sellers": [str(c["seller_id"]) for c in credited],
            "amount": sum(c["amount"] for c in credited),
        },
    )
    return credited


# ==============================
# Status transition
# ==============================

async def update_order_status(
    store,
    broadcaster,
    order_id,
    status,
    *,
    actor_id=None,
) -> dict:
    order_oid = parse_object_id(order_id, "order id")
    requested = normalize_status(status)
    now = datetime.utcnow()
    credited = []

    async with store.transaction() as session:
        order = await session.get_order(order_oid)
        if not order:
            raise NotFoundError("Order", order_oid)

        previous = order.get("status")
        assert_transition_allowed(previous, requested)

        if requested != previous:
            fields = {"updated_at": now}
            if requested == STATUS_DELIVERED:
                fields["delivered_at"] = now
            await session.set_order_status(order_oid, requested, fields)

            await record_order_event(
                session,
                order_id=order_oid,
                event="ORDER_STATUS_CHANGED",
                actor_role="admin",
                actor_id=actor_id,
                metadata={"from": previous, "to": requested},
            )

        # settle only on the first transition into delivered
        if requested == STATUS_DELIVERED and previous != STATUS_DELIVERED:
            credited = await settle_order(session, order)

    logger.info("ORDER_STATUS_CHANGED order=%s from=%s to=%s", order_oid, previous, requested)
    for entry in credited:
        logger.info("SELLER_SETTLED order=%s seller=%s amount=%s", order_oid, entry["seller_id"], entry["amount"])

    broadcast_safely(broadcaster, order_update_topic(order_oid), {"status": requested})
    return {
        "order_id": order_oid,
        "previous_status": previous,
        "status": requested,
        "settlements": credited,
    }
