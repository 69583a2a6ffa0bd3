from fastapi import APIRouter, Depends

from database import get_store
from models.user import UserRole
from models.wallet import PayoutCreate
from utils.analytics import get_seller_analytics
from utils.money import to_minor_units
from utils.order_service import list_seller_orders
from utils.payouts import get_wallet, list_payouts, request_payout
from utils.security import assert_self_or_admin, require_role
from utils.serializers import serialize_doc, serialize_docs

router = APIRouter(
    prefix="/seller",
    tags=["Seller"]
)

seller_or_admin = require_role(UserRole.SELLER.value, UserRole.ADMIN.value)


# ======================================================
# PAYOUTS
# ======================================================

@router.post("/payouts")
async def create_payout_request(
    data: PayoutCreate,
    user=Depends(seller_or_admin),
    store=Depends(get_store),
):
    assert_self_or_admin(user, data.seller_id)
    payout_id = await request_payout(
        store,
        data.seller_id,
        to_minor_units(data.amount),
        data.method,
    )
    return {"success": True, "payoutId": str(payout_id)}


@router.get("/payouts/{seller_id}")
async def get_payout_requests(
    seller_id: str,
    user=Depends(seller_or_admin),
    store=Depends(get_store),
):
    assert_self_or_admin(user, seller_id)
    rows = await list_payouts(store, seller_id)
    return {"success": True, "count": len(rows), "payouts": serialize_docs(rows)}


# ======================================================
# WALLET, ORDERS & ANALYTICS
# ======================================================

@router.get("/wallet/{seller_id}")
async def get_seller_wallet(
    seller_id: str,
    user=Depends(seller_or_admin),
    store=Depends(get_store),
):
    assert_self_or_admin(user, seller_id)
    wallet = await get_wallet(store, seller_id)
    return {"success": True, **serialize_doc(wallet)}


@router.get("/orders/{seller_id}")
async def get_seller_orders(
    seller_id: str,
    user=Depends(seller_or_admin),
    store=Depends(get_store),
):
    assert_self_or_admin(user, seller_id)
    orders = await list_seller_orders(store, seller_id)
    return {"success": True, "count": len(orders), "orders": serialize_docs(orders)}


@router.get("/analytics/{seller_id}")
async def get_seller_analytics_route(
    seller_id: str,
    user=Depends(seller_or_admin),
    store=Depends(get_store),
):
    assert_self_or_admin(user, seller_id)
    report = await get_seller_analytics(store, seller_id)
    return {"success": True, **serialize_doc(report)}
