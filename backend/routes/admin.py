from fastapi import APIRouter, Depends
from typing import Optional

from database import get_store, get_broadcaster
from models.order import StatusUpdate
from models.user import UserRole
from models.wallet import PayoutDecision
from utils.order_service import list_orders
from utils.payouts import decide_payout, list_admin_payouts
from utils.security import require_role
from utils.serializers import serialize_docs
from utils.settlement import update_order_status

router = APIRouter(prefix="/admin", tags=["Admin"])


# =====================================================
# ORDERS
# =====================================================

@router.get("/orders")
async def admin_list_orders(
    admin=Depends(require_role(UserRole.ADMIN.value)),
    store=Depends(get_store),
):
    orders = await list_orders(store)
    return {"success": True, "count": len(orders), "orders": serialize_docs(orders)}


@router.patch("/orders/{order_id}/status")
async def admin_update_order_status(
    order_id: str,
    data: StatusUpdate,
    admin=Depends(require_role(UserRole.ADMIN.value)),
    store=Depends(get_store),
    broadcaster=Depends(get_broadcaster),
):
    result = await update_order_status(
        store,
        broadcaster,
        order_id,
        data.status,
        actor_id=admin["_id"],
    )
    return {
        "success": True,
        "status": result["status"],
        "previous_status": result["previous_status"],
        "settlements": serialize_docs(result["settlements"]),
    }


# =====================================================
# PAYOUT REQUESTS
# =====================================================

@router.get("/payout-requests")
async def admin_list_payout_requests(
    status: Optional[str] = None,
    admin=Depends(require_role(UserRole.ADMIN.value)),
    store=Depends(get_store),
):
    rows = await list_admin_payouts(store, status)
    return {"success": True, "count": len(rows), "requests": serialize_docs(rows)}


@router.post("/payout-requests/{request_id}/decision")
async def admin_payout_decision(
    request_id: str,
    data: PayoutDecision,
    admin=Depends(require_role(UserRole.ADMIN.value)),
    store=Depends(get_store),
):
    status = await decide_payout(store, request_id, data.action, reason=data.reason)
    return {"success": True, "request_id": request_id, "status": status}
