from decimal import Decimal, InvalidOperation

from config.env import DEFAULT_COMMISSION_RATE
from utils.errors import NotFoundError, OutOfStockError, TransactionError

DEFAULT_RATE = Decimal(DEFAULT_COMMISSION_RATE)


async def get_product_seller_and_price(session, product_id):
    product = await session.get_product(product_id)
    if not product:
        raise NotFoundError("Product", product_id)
    return product.get("seller_id"), product.get("price", 0)


async def decrement_stock(session, product_id, quantity: int):
    # oversell is rejected, never booked as backorder
    if await session.decrement_stock(product_id, quantity):
        return

    if not await session.get_product(product_id):
        raise NotFoundError("Product", product_id)
    raise OutOfStockError(product_id, quantity)


async def get_commission_rate(session, seller_id) -> Decimal:
    seller = await session.get_seller_by_user(seller_id)
    if not seller or seller.get("commission_rate") is None:
        return DEFAULT_RATE

    try:
        rate = Decimal(str(seller["commission_rate"]))
    except InvalidOperation:
        raise TransactionError(f"Seller {seller_id} has an invalid commission rate")
    if not Decimal(0) <= rate <= Decimal(1):
        raise TransactionError(f"Seller {seller_id} has an invalid commission rate")
    return rate
