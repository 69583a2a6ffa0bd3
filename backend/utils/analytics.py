from datetime import datetime, timedelta

from config.constants import ANALYTICS_TOP_PRODUCTS, ANALYTICS_WINDOW_DAYS
from utils.errors import NotFoundError
from utils.guards import parse_object_id


async def get_seller_analytics(
    store,
    seller_id,
    *,
    days: int = ANALYTICS_WINDOW_DAYS,
    top: int = ANALYTICS_TOP_PRODUCTS,
    now: datetime | None = None,
) -> dict:
    """
    Daily delivered-sales totals over the last `days` days (by order
    creation date, oldest first) and the seller's best-selling products.
    Totals are gross item value in minor units, before commission.
    """
    seller_oid = parse_object_id(seller_id, "seller id")
    since = (now or datetime.utcnow()) - timedelta(days=days)

    async with store.session() as session:
        if not await session.get_user(seller_oid):
            raise NotFoundError("Seller", seller_oid)
        report = await session.seller_analytics(seller_oid, since, top)

    return {"seller_id": seller_oid, **report}
