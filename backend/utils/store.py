import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime

from bson import ObjectId

from config.constants import STATUS_DELIVERED
from utils.errors import LedgerError, TransactionError

logger = logging.getLogger(__name__)

COLLECTIONS = (
    "products",
    "users",
    "sellers",
    "orders",
    "order_items",
    "payout_requests",
    "notifications",
    "order_timeline",
)


# ==============================
# Store contract
# ==============================

class LedgerSession(ABC):
    """
    Row-level read/write surface used inside (or outside) a transaction.

    Money values are integer minor units. Conditional writes return False
    instead of raising so callers decide which domain error applies.
    """

    # ---- reads

    @abstractmethod
    async def get_product(self, product_id: ObjectId) -> dict | None: ...

    @abstractmethod
    async def get_user(self, user_id: ObjectId) -> dict | None: ...

    @abstractmethod
    async def get_seller_by_user(self, user_id: ObjectId) -> dict | None: ...

    @abstractmethod
    async def get_order(self, order_id: ObjectId) -> dict | None: ...

    @abstractmethod
    async def get_order_items(self, order_id: ObjectId) -> list[dict]:
        """Items of an order joined with `product_name` and `seller_id`."""

    @abstractmethod
    async def list_orders(self, limit: int) -> list[dict]: ...

    @abstractmethod
    async def list_seller_orders(self, seller_id: ObjectId, limit: int) -> list[dict]: ...

    @abstractmethod
    async def get_payout(self, payout_id: ObjectId) -> dict | None: ...

    @abstractmethod
    async def list_payouts(
        self,
        seller_id: ObjectId | None = None,
        status: str | None = None,
        limit: int | None = None,
    ) -> list[dict]: ...

    @abstractmethod
    async def get_notification(self, notification_id: ObjectId) -> dict | None: ...

    @abstractmethod
    async def list_notifications(self, user_id: ObjectId, limit: int) -> list[dict]: ...

    @abstractmethod
    async def seller_analytics(self, seller_id: ObjectId, since: datetime, top: int) -> dict:
        """
        `{"sales": [{"date", "total"}], "top_products": [{"product_id", "name", "count"}]}`.

        `sales` are daily totals of delivered orders created at or after `since`,
        oldest day first. `top_products` ranks the seller's products by units
        ordered across all orders.
        """

    # ---- writes

    @abstractmethod
    async def insert_order(self, doc: dict) -> ObjectId: ...

    @abstractmethod
    async def insert_order_item(self, doc: dict) -> ObjectId: ...

    @abstractmethod
    async def decrement_stock(self, product_id: ObjectId, quantity: int) -> bool:
        """Decrement iff stock >= quantity."""

    @abstractmethod
    async def set_order_status(self, order_id: ObjectId, status: str, fields: dict | None = None) -> bool: ...

    @abstractmethod
    async def credit_wallet(self, user_id: ObjectId, amount: int) -> bool: ...

    @abstractmethod
    async def debit_wallet(self, user_id: ObjectId, amount: int) -> bool:
        """Debit iff wallet_balance >= amount, as one conditional update."""

    @abstractmethod
    async def add_loyalty_points(self, user_id: ObjectId, points: int) -> bool: ...

    @abstractmethod
    async def insert_payout(self, doc: dict) -> ObjectId: ...

    @abstractmethod
    async def set_payout_status(
        self,
        payout_id: ObjectId,
        expected_status: str,
        status: str,
        fields: dict | None = None,
    ) -> bool:
        """Move a payout to `status` iff it is currently `expected_status`."""

    @abstractmethod
    async def insert_notification(self, doc: dict) -> ObjectId: ...

    @abstractmethod
    async def mark_notification_read(self, notification_id: ObjectId) -> bool: ...

    @abstractmethod
    async def insert_order_event(self, doc: dict) -> ObjectId: ...


class LedgerStore(ABC):
    @abstractmethod
    def transaction(self):
        """
        Async context manager yielding a LedgerSession whose writes commit
        together on normal exit and roll back on any exception.

        LedgerError subclasses propagate unchanged; any other failure is
        re-raised as TransactionError.
        """

    @abstractmethod
    def session(self):
        """Async context manager yielding a non-transactional LedgerSession."""

    async def ensure_indexes(self):
        return None


# ==============================
# In-memory backend
# ==============================

class MemoryLedgerSession(LedgerSession):
    def __init__(self, data: dict):
        self._data = data

    def _insert(self, collection: str, doc: dict) -> ObjectId:
        doc = dict(doc)
        doc.setdefault("_id", ObjectId())
        self._data[collection][doc["_id"]] = doc
        return doc["_id"]

    def _get(self, collection: str, doc_id) -> dict | None:
        doc = self._data[collection].get(doc_id)
        return dict(doc) if doc else None

    def _newest_first(self, collection: str, predicate, limit: int | None = None) -> list[dict]:
        rows = [dict(d) for d in reversed(list(self._data[collection].values())) if predicate(d)]
        return rows[:limit] if limit else rows

    async def get_product(self, product_id):
        return self._get("products", product_id)

    async def get_user(self, user_id):
        return self._get("users", user_id)

    async def get_seller_by_user(self, user_id):
        for seller in self._data["sellers"].values():
            if seller.get("user_id") == user_id:
                return dict(seller)
        return None

    async def get_order(self, order_id):
        return self._get("orders", order_id)

    async def get_order_items(self, order_id):
        rows = []
        for item in self._data["order_items"].values():
            if item["order_id"] != order_id:
                continue
            product = self._data["products"].get(item["product_id"]) or {}
            row = dict(item)
            row["product_name"] = product.get("name")
            row["seller_id"] = product.get("seller_id")
            rows.append(row)
        return rows

    async def list_orders(self, limit):
        return self._newest_first("orders", lambda d: True, limit)

    async def list_seller_orders(self, seller_id, limit):
        order_ids = set()
        for item in self._data["order_items"].values():
            product = self._data["products"].get(item["product_id"]) or {}
            if product.get("seller_id") == seller_id:
                order_ids.add(item["order_id"])
        return self._newest_first("orders", lambda d: d["_id"] in order_ids, limit)

    async def get_payout(self, payout_id):
        return self._get("payout_requests", payout_id)

    async def list_payouts(self, seller_id=None, status=None, limit=None):
        def matches(doc):
            if seller_id is not None and doc["seller_id"] != seller_id:
                return False
            if status is not None and doc["status"] != status:
                return False
            return True

        return self._newest_first("payout_requests", matches, limit)

    async def get_notification(self, notification_id):
        return self._get("notifications", notification_id)

    async def list_notifications(self, user_id, limit):
        return self._newest_first("notifications", lambda d: d["user_id"] == user_id, limit)

    async def seller_analytics(self, seller_id, since, top):
        daily = {}
        units = {}
        for item in self._data["order_items"].values():
            product = self._data["products"].get(item["product_id"]) or {}
            if product.get("seller_id") != seller_id:
                continue

            entry = units.setdefault(item["product_id"], {
                "product_id": item["product_id"],
                "name": product.get("name"),
                "count": 0,
            })
            entry["count"] += item["quantity"]

            order = self._data["orders"].get(item["order_id"]) or {}
            created_at = order.get("created_at")
            if order.get("status") != STATUS_DELIVERED or not created_at or created_at < since:
                continue
            day = created_at.strftime("%Y-%m-%d")
            daily[day] = daily.get(day, 0) + item["price"] * item["quantity"]

        ranked = sorted(units.values(), key=lambda e: (-e["count"], str(e["product_id"])))
        return {
            "sales": [{"date": day, "total": daily[day]} for day in sorted(daily)],
            "top_products": ranked[:top],
        }

    async def insert_order(self, doc):
        return self._insert("orders", doc)

    async def insert_order_item(self, doc):
        return self._insert("order_items", doc)

    async def decrement_stock(self, product_id, quantity):
        product = self._data["products"].get(product_id)
        if not product or product.get("stock", 0) < quantity:
            return False
        product["stock"] = product.get("stock", 0) - quantity
        return True

    async def set_order_status(self, order_id, status, fields=None):
        order = self._data["orders"].get(order_id)
        if not order:
            return False
        order.update(fields or {})
        order["status"] = status
        return True

    async def credit_wallet(self, user_id, amount):
        user = self._data["users"].get(user_id)
        if not user:
            return False
        user["wallet_balance"] = user.get("wallet_balance", 0) + amount
        return True

    async def debit_wallet(self, user_id, amount):
        user = self._data["users"].get(user_id)
        if not user or user.get("wallet_balance", 0) < amount:
            return False
        user["wallet_balance"] = user.get("wallet_balance", 0) - amount
        return True

    async def add_loyalty_points(self, user_id, points):
        user = self._data["users"].get(user_id)
        if not user:
            return False
        user["loyalty_points"] = user.get("loyalty_points", 0) + points
        return True

    async def insert_payout(self, doc):
        return self._insert("payout_requests", doc)

    async def set_payout_status(self, payout_id, expected_status, status, fields=None):
        payout = self._data["payout_requests"].get(payout_id)
        if not payout or payout.get("status") != expected_status:
            return False
        payout.update(fields or {})
        payout["status"] = status
        return True

    async def insert_notification(self, doc):
        return self._insert("notifications", doc)

    async def mark_notification_read(self, notification_id):
        notification = self._data["notifications"].get(notification_id)
        if not notification:
            return False
        notification["is_read"] = True
        return True

    async def insert_order_event(self, doc):
        return self._insert("order_timeline", doc)


class MemoryLedgerStore(LedgerStore):
    """
    Single-process store. One lock serialises every transaction, which
    gives the per-row isolation the wallet and stock updates need.
    """

    def __init__(self):
        self._data = {name: {} for name in COLLECTIONS}
        self._lock = asyncio.Lock()

    def seed(self, collection: str, docs: list[dict]) -> list[ObjectId]:
        if collection not in self._data:
            raise KeyError(f"Unknown collection: {collection}")
        now = datetime.utcnow()
        ids = []
        for doc in docs:
            doc = dict(doc)
            doc.setdefault("_id", ObjectId())
            doc.setdefault("created_at", now)
            if collection == "users":
                doc.setdefault("wallet_balance", 0)
                doc.setdefault("loyalty_points", 0)
            self._data[collection][doc["_id"]] = doc
            ids.append(doc["_id"])
        return ids

    def snapshot(self, collection: str) -> dict:
        return copy.deepcopy(self._data[collection])

    @asynccontextmanager
    async def transaction(self):
        async with self._lock:
            backup = copy.deepcopy(self._data)
            try:
                yield MemoryLedgerSession(self._data)
            except LedgerError:
                self._restore(backup)
                raise
            except Exception as e:
                self._restore(backup)
                logger.exception("TRANSACTION_ABORTED backend=memory")
                raise TransactionError("Transaction failed") from e
            except BaseException:
                self._restore(backup)
                raise

    @asynccontextmanager
    async def session(self):
        yield MemoryLedgerSession(self._data)

    def _restore(self, backup: dict):
        # keep the same dict object so live sessions see the rollback
        self._data.clear()
        self._data.update(backup)
