"""Pytest fixtures for the marketplace ledger tests."""

import os

os.environ["STORE_BACKEND"] = "memory"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ENV"] = "test"

from types import SimpleNamespace

import pytest
from bson import ObjectId

from utils.broadcast import EventBroadcaster
from utils.store import MemoryLedgerStore


@pytest.fixture
def store():
    """Empty in-memory ledger store."""
    return MemoryLedgerStore()


@pytest.fixture
def broadcaster():
    return EventBroadcaster()


@pytest.fixture
def market(store):
    """
    Seeded marketplace (money in minor units):

    - seller_a: commission 0.10, sells `phone` at 1000.00
    - seller_b: commission 0.15, sells `case` at 25.50
    - seller_c: no seller record (default commission), sells `charger` at 50.00
    - `rice` is house inventory at 1250.00
    """
    admin, seller_a, seller_b, seller_c, buyer = store.seed("users", [
        {"name": "Admin", "role": "admin"},
        {"name": "Loja A", "role": "seller"},
        {"name": "Loja B", "role": "seller"},
        {"name": "Loja C", "role": "seller"},
        {"name": "Buyer", "role": "buyer"},
    ])
    store.seed("sellers", [
        {"user_id": seller_a, "business_name": "Loja A", "status": "approved", "commission_rate": 0.10},
        {"user_id": seller_b, "business_name": "Loja B", "status": "approved", "commission_rate": 0.15},
    ])
    phone, case, charger, rice = store.seed("products", [
        {"seller_id": seller_a, "name": "Smartphone Android X1", "price": 100000, "stock": 10},
        {"seller_id": seller_b, "name": "Phone case", "price": 2550, "stock": 5},
        {"seller_id": seller_c, "name": "Charger", "price": 5000, "stock": 20},
        {"seller_id": None, "name": "Saco de Arroz 25kg", "price": 125000, "stock": 50},
    ])
    return SimpleNamespace(
        admin=admin,
        seller_a=seller_a,
        seller_b=seller_b,
        seller_c=seller_c,
        buyer=buyer,
        phone=phone,
        case=case,
        charger=charger,
        rice=rice,
        missing=ObjectId(),
    )

