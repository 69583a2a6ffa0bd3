from pymongo import ASCENDING, DESCENDING
from pymongo.errors import OperationFailure


def _normalize_key_pairs(keys):
    return [(k, v) for k, v in keys]


async def _create_index_safe(collection, keys, **kwargs):
    """
    Create index safely.
    If Mongo reports IndexOptionsConflict/IndexKeySpecsConflict for same key pattern,
    drop the conflicting index and recreate with desired options.
    """
    desired_key = _normalize_key_pairs(keys)
    desired_name = kwargs.get("name")
    try:
        await collection.create_index(keys, **kwargs)
        return
    except OperationFailure as e:
        if getattr(e, "code", None) not in {85, 86}:
            raise

        conflicting_names = []
        async for idx in collection.list_indexes():
            idx_key = _normalize_key_pairs(list(idx.get("key", {}).items()))
            if idx_key == desired_key:
                idx_name = idx.get("name")
                if idx_name and idx_name != desired_name:
                    conflicting_names.append(idx_name)

        for idx_name in conflicting_names:
            await collection.drop_index(idx_name)

        await collection.create_index(keys, **kwargs)


async def ensure_indexes(db):
    # Sellers (commission lookup by owning user)
    await _create_index_safe(
        db.sellers,
        [("user_id", ASCENDING)],
        name="sellers_user_unique_idx",
        unique=True,
    )

    # Products
    await _create_index_safe(
        db.products,
        [("seller_id", ASCENDING)],
        name="products_seller_idx",
    )

    # Orders
    await _create_index_safe(
        db.orders,
        [("created_at", DESCENDING)],
        name="orders_created_at_idx",
    )
    await _create_index_safe(
        db.orders,
        [("buyer_id", ASCENDING), ("created_at", DESCENDING)],
        name="orders_buyer_created_at_idx",
        sparse=True,
    )

    # Order items
    await _create_index_safe(
        db.order_items,
        [("order_id", ASCENDING)],
        name="order_items_order_idx",
    )
    await _create_index_safe(
        db.order_items,
        [("product_id", ASCENDING)],
        name="order_items_product_idx",
    )

    # Payout requests
    await _create_index_safe(
        db.payout_requests,
        [("status", ASCENDING), ("created_at", DESCENDING)],
        name="payout_requests_status_created_at_idx",
    )
    await _create_index_safe(
        db.payout_requests,
        [("seller_id", ASCENDING), ("created_at", DESCENDING)],
        name="payout_requests_seller_created_at_idx",
    )

    # Notifications
    await _create_index_safe(
        db.notifications,
        [("user_id", ASCENDING), ("created_at", DESCENDING)],
        name="notifications_user_created_at_idx",
    )

    # Order timeline
    await _create_index_safe(
        db.order_timeline,
        [("order_id", ASCENDING), ("created_at", ASCENDING)],
        name="order_timeline_order_created_at_idx",
    )
