import logging
from datetime import datetime

from config.constants import ADMIN_LIST_LIMIT, STATUS_PENDING
from utils.broadcast import broadcast_safely
from utils.errors import NotFoundError, ValidationError
from utils.guards import parse_object_id, parse_optional_object_id
from utils.inventory import decrement_stock, get_product_seller_and_price
from utils.order_timeline import record_order_event

logger = logging.getLogger(__name__)


def _normalize_items(items) -> list[dict]:
    if not items:
        raise ValidationError("Order must contain at least one item")

    normalized = []
    for index, item in enumerate(items):
        try:
            product_id = item["id"]
            quantity = item["quantity"]
            price = item["price"]
        except (KeyError, TypeError):
            raise ValidationError(f"Item {index} is missing id, quantity or price")

        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise ValidationError(f"Item {index} quantity must be a positive integer")
        if not isinstance(price, int) or isinstance(price, bool) or price < 0:
            raise ValidationError(f"Item {index} price must be a non-negative amount")

        normalized.append({
            "product_id": parse_object_id(product_id, "product id"),
            "quantity": quantity,
            "price": price,
        })
    return normalized


# ======================================================
# CREATE ORDER
# ======================================================

async def create_order(
    store,
    broadcaster=None,
    *,
    customer_name: str,
    customer_phone: str,
    address: str,
    items: list[dict],
    total_amount: int,
    region_id=None,
    buyer_id=None,
):
    """
    Inserts the order, its items and the stock decrements as one transaction.

    `items` are `{"id", "quantity", "price"}` with prices in minor units and
    `total_amount` must equal the sum of `price * quantity`. The `new_order`
    event is broadcast only after commit.
    """
    if not customer_name or not customer_phone or not address:
        raise ValidationError("customer_name, customer_phone and address are required")

    lines = _normalize_items(items)
    computed_total = sum(line["price"] * line["quantity"] for line in lines)
    if computed_total != total_amount:
        raise ValidationError("total_amount does not match the sum of item prices")

    buyer_oid = parse_optional_object_id(buyer_id, "buyer id")
    now = datetime.utcnow()

    async with store.transaction() as session:
        if buyer_oid and not await session.get_user(buyer_oid):
            raise NotFoundError("Buyer", buyer_oid)

        order_id = await session.insert_order({
            "buyer_id": buyer_oid,
            "customer_name": customer_name,
            "customer_phone": customer_phone,
            "region_id": region_id,
            "address": address,
            "total_amount": total_amount,
            "status": STATUS_PENDING,
            "delivered_at": None,
            "created_at": now,
            "updated_at": now,
        })

        sellers = []
        for line in lines:
            seller_id, _ = await get_product_seller_and_price(session, line["product_id"])
            if seller_id and seller_id not in sellers:
                sellers.append(seller_id)

            await session.insert_order_item({
                "order_id": order_id,
                "product_id": line["product_id"],
                "quantity": line["quantity"],
                "price": line["price"],
            })
            await decrement_stock(session, line["product_id"], line["quantity"])

        await record_order_event(
            session,
            order_id=order_id,
            event="ORDER_CREATED",
            actor_role="buyer",
            actor_id=buyer_oid,
            metadata={
                "items": len(lines),
                "total_amount": total_amount,
                "sellers": [str(s) for s in sellers],
            },
        )

    logger.info("ORDER_CREATED order=%s items=%s total=%s", order_id, len(lines), total_amount)
    broadcast_safely(broadcaster, "new_order", {"id": str(order_id), "status": STATUS_PENDING})
    return order_id


# ======================================================
# READS
# ======================================================

async def get_order_details(store, order_id) -> dict:
    order_oid = parse_object_id(order_id, "order id")
    async with store.session() as session:
        order = await session.get_order(order_oid)
        if not order:
            raise NotFoundError("Order", order_oid)
        order["items"] = await session.get_order_items(order_oid)
    return order


async def list_orders(store, limit: int = ADMIN_LIST_LIMIT) -> list[dict]:
    async with store.session() as session:
        return await session.list_orders(limit)


async def list_seller_orders(store, seller_id, limit: int = ADMIN_LIST_LIMIT) -> list[dict]:
    seller_oid = parse_object_id(seller_id, "seller id")
    async with store.session() as session:
        return await session.list_seller_orders(seller_oid, limit)
