from fastapi import APIRouter, Depends, HTTPException, status

from database import get_store, get_broadcaster
from models.order import OrderCreate
from utils.money import to_minor_units
from utils.order_service import create_order, get_order_details
from utils.security import get_optional_user
from utils.serializers import serialize_doc

router = APIRouter(
    prefix="/orders",
    tags=["Orders"]
)


def resolve_buyer_id(data: OrderCreate, user):
    """The buyer is the authenticated caller; guest checkouts carry none."""
    if user is None:
        if data.buyer_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication required to order as a buyer",
            )
        return None

    if data.buyer_id and data.buyer_id != str(user["_id"]):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="buyer_id does not match the authenticated user",
        )
    return user["_id"]


# ======================================================
# CREATE ORDER (BUYER)
# ======================================================

@router.post("")
async def create_order_route(
    data: OrderCreate,
    user=Depends(get_optional_user),
    store=Depends(get_store),
    broadcaster=Depends(get_broadcaster),
):
    order_id = await create_order(
        store,
        broadcaster,
        customer_name=data.customer_name,
        customer_phone=data.customer_phone,
        region_id=data.region_id,
        address=data.address,
        items=[
            {"id": item.id, "quantity": item.quantity, "price": to_minor_units(item.price)}
            for item in data.items
        ],
        total_amount=to_minor_units(data.total_amount),
        buyer_id=resolve_buyer_id(data, user),
    )
    return {"success": True, "orderId": str(order_id)}


# ======================================================
# ORDER DETAILS (PUBLIC TRACKING)
# ======================================================

@router.get("/{order_id}")
async def get_order(
    order_id: str,
    store=Depends(get_store),
):
    order = await get_order_details(store, order_id)
    return {"success": True, "order": serialize_doc(order)}
