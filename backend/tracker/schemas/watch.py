from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..models.watch import WatchStatus
from .money import Money


class WatchBase(BaseModel):
    brand: str = Field(min_length=1)
    model: str = Field(min_length=1)
    reference_number: Optional[str] = None
    serial_number: Optional[str] = None
    year: Optional[int] = Field(default=None, ge=1700, le=2100)
    condition: Optional[str] = None
    purchase_price: Optional[Money] = Field(default=None, ge=0)
    sale_price: Optional[Money] = Field(default=None, ge=0)
    status: WatchStatus = WatchStatus.IN_STOCK
    notes: Optional[str] = None


class WatchCreate(WatchBase):
    pass


class WatchUpdate(BaseModel):
    brand: Optional[str] = None
    model: Optional[str] = None
    reference_number: Optional[str] = None
    serial_number: Optional[str] = None
    year: Optional[int] = Field(default=None, ge=1700, le=2100)
    condition: Optional[str] = None
    purchase_price: Optional[Money] = Field(default=None, ge=0)
    sale_price: Optional[Money] = Field(default=None, ge=0)
    status: Optional[WatchStatus] = None
    notes: Optional[str] = None


class WatchRead(WatchBase):
    id: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
