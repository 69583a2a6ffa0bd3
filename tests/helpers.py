"""Shared helpers for the ledger tests."""

from utils.order_service import create_order


def user_doc(store, user_id):
    return store.snapshot("users")[user_id]


def wallet(store, user_id):
    return user_doc(store, user_id)["wallet_balance"]


def product_stock(store, product_id):
    return store.snapshot("products")[product_id]["stock"]


def notifications_for(store, user_id):
    return [n for n in store.snapshot("notifications").values() if n["user_id"] == user_id]


async def place_order(store, lines, broadcaster=None, buyer_id=None):
    """`lines` are (product_id, quantity, price_minor) tuples."""
    items = [{"id": str(pid), "quantity": qty, "price": price} for pid, qty, price in lines]
    return await create_order(
        store,
        broadcaster,
        customer_name="Maria",
        customer_phone="+258840000000",
        region_id=1,
        address="Av. Julius Nyerere 100, Maputo",
        items=items,
        total_amount=sum(qty * price for _, qty, price in lines),
        buyer_id=buyer_id,
    )


async def fund(store, user_id, amount):
    async with store.transaction() as session:
        assert await session.credit_wallet(user_id, amount)
