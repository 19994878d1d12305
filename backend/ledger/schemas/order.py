# ledger/schemas/order.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import BaseModel, Field


# Request bodies keep unknown keys (the browser front end sends extra form fields)
class _Base(BaseModel):
    class Config:
        extra = "allow"


# (Input) one shipment reference; carrier falls back to the default carrier
class TrackingIn(_Base):
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None


# (Input) POST /api/orders
class OrderCreate(_Base):
    purchase_date: Optional[date] = None
    original_amount: Optional[Decimal] = None
    currency: Optional[str] = None
    trackings: Optional[List[TrackingIn]] = None
    # str or number; parsed by the rate resolver so a bad value is an InvalidRate
    custom_rate: Optional[Union[str, float]] = None


# (Input) PUT /api/orders/{id}/financials
class FinancialsUpdate(_Base):
    original_amount: Optional[Decimal] = None
    freight_cost_hnl: Optional[Decimal] = None
    selling_price_hnl: Optional[Decimal] = None


# (Output) trackings embedded in the order list, keyed the way the front end reads them
class TrackingOut(BaseModel):
    n_guia: str
    carrier: str


class OrderOut(BaseModel):
    id: int
    purchase_date: date
    original_amount: Decimal
    currency: str
    exchange_rate: Decimal
    freight_cost_hnl: Decimal
    selling_price_hnl: Decimal
    created_at: Optional[datetime] = None
    trackings: List[TrackingOut] = Field(default_factory=list)


class OrderCreatedOut(BaseModel):
    success: bool = True
    message: str = "Order saved"
    order_id: int
    tasa_usada: float
    total_en_lempiras: str   # 2 decimals, e.g. "2500.00"


class SuccessOut(BaseModel):
    success: bool = True
    message: Optional[str] = None


class RateOut(BaseModel):
    rate: float
