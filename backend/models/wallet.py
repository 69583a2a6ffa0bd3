from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class PayoutCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    seller_id: str = Field(..., alias="sellerId")
    amount: Decimal = Field(..., gt=0)
    method: str


class PayoutDecision(BaseModel):
    action: Literal["approve", "reject"]
    reason: Optional[str] = None
