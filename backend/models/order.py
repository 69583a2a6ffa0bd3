from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from config.constants import (
    STATUS_PENDING,
    STATUS_PROCESSING,
    STATUS_SHIPPED,
    STATUS_DELIVERED,
    STATUS_CANCELLED,
)


class OrderStatus(str, Enum):
    PENDING = STATUS_PENDING
    PROCESSING = STATUS_PROCESSING
    SHIPPED = STATUS_SHIPPED
    DELIVERED = STATUS_DELIVERED
    CANCELLED = STATUS_CANCELLED


class OrderItemIn(BaseModel):
    id: str
    quantity: int = Field(..., gt=0)
    price: Decimal = Field(..., ge=0)


class OrderCreate(BaseModel):
    customer_name: str = Field(..., min_length=1)
    customer_phone: str = Field(..., min_length=1)
    region_id: Optional[int] = None
    address: str = Field(..., min_length=1)
    items: List[OrderItemIn] = Field(..., min_length=1)
    total_amount: Decimal = Field(..., ge=0)
    buyer_id: Optional[str] = None


class StatusUpdate(BaseModel):
    status: OrderStatus
