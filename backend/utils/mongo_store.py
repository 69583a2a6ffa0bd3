import logging
from contextlib import asynccontextmanager

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from config.constants import STATUS_DELIVERED
from utils.errors import LedgerError, ConflictError, TransactionError
from utils.indexes import ensure_indexes
from utils.store import LedgerSession, LedgerStore

logger = logging.getLogger(__name__)

NEWEST_FIRST = [("created_at", DESCENDING), ("_id", DESCENDING)]


class MongoLedgerSession(LedgerSession):
    def __init__(self, db, session=None):
        self._db = db
        self._session = session

    async def _find_many(self, collection, query: dict, limit: int | None = None) -> list[dict]:
        cursor = collection.find(query, session=self._session).sort(NEWEST_FIRST)
        if limit:
            cursor = cursor.limit(limit)
        return await cursor.to_list(None)

    # ---- reads

    async def get_product(self, product_id):
        return await self._db.products.find_one({"_id": product_id}, session=self._session)

    async def get_user(self, user_id):
        return await self._db.users.find_one({"_id": user_id}, session=self._session)

    async def get_seller_by_user(self, user_id):
        return await self._db.sellers.find_one({"user_id": user_id}, session=self._session)

    async def get_order(self, order_id):
        return await self._db.orders.find_one({"_id": order_id}, session=self._session)

    async def get_order_items(self, order_id):
        pipeline = [
            {"$match": {"order_id": order_id}},
            {"$lookup": {
                "from": "products",
                "localField": "product_id",
                "foreignField": "_id",
                "as": "product",
            }},
            {"$unwind": {"path": "$product", "preserveNullAndEmptyArrays": True}},
            {"$addFields": {
                "product_name": "$product.name",
                "seller_id": "$product.seller_id",
            }},
            {"$project": {"product": 0}},
            {"$sort": {"_id": 1}},
        ]
        rows = await self._db.order_items.aggregate(pipeline, session=self._session).to_list(None)
        for row in rows:
            row.setdefault("product_name", None)
            row.setdefault("seller_id", None)
        return rows

    async def list_orders(self, limit):
        return await self._find_many(self._db.orders, {}, limit)

    async def list_seller_orders(self, seller_id, limit):
        product_ids = await self._db.products.distinct(
            "_id", {"seller_id": seller_id}, session=self._session
        )
        if not product_ids:
            return []
        order_ids = await self._db.order_items.distinct(
            "order_id", {"product_id": {"$in": product_ids}}, session=self._session
        )
        return await self._find_many(self._db.orders, {"_id": {"$in": order_ids}}, limit)

    async def get_payout(self, payout_id):
        return await self._db.payout_requests.find_one({"_id": payout_id}, session=self._session)

    async def list_payouts(self, seller_id=None, status=None, limit=None):
        query = {}
        if seller_id is not None:
            query["seller_id"] = seller_id
        if status is not None:
            query["status"] = status
        return await self._find_many(self._db.payout_requests, query, limit)

    async def get_notification(self, notification_id):
        return await self._db.notifications.find_one({"_id": notification_id}, session=self._session)

    async def list_notifications(self, user_id, limit):
        return await self._find_many(self._db.notifications, {"user_id": user_id}, limit)

    async def seller_analytics(self, seller_id, since, top):
        seller_items = [
            {"$lookup": {
                "from": "products",
                "localField": "product_id",
                "foreignField": "_id",
                "as": "product",
            }},
            {"$unwind": "$product"},
            {"$match": {"product.seller_id": seller_id}},
        ]
        sales_pipeline = seller_items + [
            {"$lookup": {
                "from": "orders",
                "localField": "order_id",
                "foreignField": "_id",
                "as": "order",
            }},
            {"$unwind": "$order"},
            {"$match": {"order.status": STATUS_DELIVERED, "order.created_at": {"$gte": since}}},
            {"$group": {
                "_id": {"$dateToString": {"format": "%Y-%m-%d", "date": "$order.created_at"}},
                "total": {"$sum": {"$multiply": ["$price", "$quantity"]}},
            }},
            {"$sort": {"_id": 1}},
        ]
        top_pipeline = seller_items + [
            {"$group": {
                "_id": "$product_id",
                "name": {"$first": "$product.name"},
                "count": {"$sum": "$quantity"},
            }},
            {"$sort": {"count": -1, "_id": 1}},
            {"$limit": top},
        ]

        sales = await self._db.order_items.aggregate(sales_pipeline, session=self._session).to_list(None)
        ranked = await self._db.order_items.aggregate(top_pipeline, session=self._session).to_list(None)
        return {
            "sales": [{"date": row["_id"], "total": row["total"]} for row in sales],
            "top_products": [
                {"product_id": row["_id"], "name": row.get("name"), "count": row["count"]}
                for row in ranked
            ],
        }

    # ---- writes

    async def insert_order(self, doc):
        result = await self._db.orders.insert_one(dict(doc), session=self._session)
        return result.inserted_id

    async def insert_order_item(self, doc):
        result = await self._db.order_items.insert_one(dict(doc), session=self._session)
        return result.inserted_id

    async def decrement_stock(self, product_id, quantity):
        result = await self._db.products.update_one(
            {"_id": product_id, "stock": {"$gte": quantity}},
            {"$inc": {"stock": -quantity}},
            session=self._session,
        )
        return result.modified_count == 1

    async def set_order_status(self, order_id, status, fields=None):
        result = await self._db.orders.update_one(
            {"_id": order_id},
            {"$set": {**(fields or {}), "status": status}},
            session=self._session,
        )
        return result.matched_count == 1

    async def credit_wallet(self, user_id, amount):
        result = await self._db.users.update_one(
            {"_id": user_id},
            {"$inc": {"wallet_balance": amount}},
            session=self._session,
        )
        return result.matched_count == 1

    async def debit_wallet(self, user_id, amount):
        updated = await self._db.users.find_one_and_update(
            {"_id": user_id, "wallet_balance": {"$gte": amount}},
            {"$inc": {"wallet_balance": -amount}},
            return_document=ReturnDocument.AFTER,
            session=self._session,
        )
        return updated is not None

    async def add_loyalty_points(self, user_id, points):
        result = await self._db.users.update_one(
            {"_id": user_id},
            {"$inc": {"loyalty_points": points}},
            session=self._session,
        )
        return result.matched_count == 1

    async def insert_payout(self, doc):
        result = await self._db.payout_requests.insert_one(dict(doc), session=self._session)
        return result.inserted_id

    async def set_payout_status(self, payout_id, expected_status, status, fields=None):
        result = await self._db.payout_requests.update_one(
            {"_id": payout_id, "status": expected_status},
            {"$set": {**(fields or {}), "status": status}},
            session=self._session,
        )
        return result.modified_count == 1

    async def insert_notification(self, doc):
        result = await self._db.notifications.insert_one(dict(doc), session=self._session)
        return result.inserted_id

    async def mark_notification_read(self, notification_id):
        result = await self._db.notifications.update_one(
            {"_id": notification_id},
            {"$set": {"is_read": True}},
            session=self._session,
        )
        return result.matched_count == 1

    async def insert_order_event(self, doc):
        result = await self._db.order_timeline.insert_one(dict(doc), session=self._session)
        return result.inserted_id


class MongoLedgerStore(LedgerStore):
    """
    MongoDB-backed store. Multi-document transactions need a replica set
    (a single-node replica set is enough for development).
    """

    def __init__(self, uri: str, client: AsyncIOMotorClient | None = None):
        self._client = client or AsyncIOMotorClient(uri)
        self._db = self._client.get_default_database()

    @property
    def db(self):
        return self._db

    async def ensure_indexes(self):
        await ensure_indexes(self._db)

    @asynccontextmanager
    async def transaction(self):
        try:
            async with await self._client.start_session() as session:
                async with session.start_transaction():
                    yield MongoLedgerSession(self._db, session)
        except LedgerError:
            raise
        except PyMongoError as e:
            if e.has_error_label("TransientTransactionError"):
                logger.warning("TRANSACTION_CONFLICT error=%s", e)
                raise ConflictError("Concurrent update on the same record, please retry") from e
            logger.exception("TRANSACTION_ABORTED backend=mongo")
            raise TransactionError("Transaction failed") from e
        except Exception as e:
            logger.exception("TRANSACTION_ABORTED backend=mongo")
            raise TransactionError("Transaction failed") from e

    @asynccontextmanager
    async def session(self):
        yield MongoLedgerSession(self._db)
