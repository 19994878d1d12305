from datetime import date, datetime
from decimal import Decimal
from typing import List

from sqlalchemy import Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from ledger.core.constants import AMOUNT_SCALE, DEFAULT_CARRIER, LOCAL_CURRENCY, RATE_SCALE
from ledger.database import Base  # SQLAlchemy Base declarative base


class Order(Base):
    __tablename__ = "orders"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    purchase_date: Mapped[date] = mapped_column(Date, nullable=False)
    original_amount: Mapped[Decimal] = mapped_column(Numeric(12, AMOUNT_SCALE), nullable=False)   # in `currency`
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default=LOCAL_CURRENCY)
    exchange_rate: Mapped[Decimal] = mapped_column(Numeric(14, RATE_SCALE), nullable=False, default=Decimal("1"))  # 1 currency = rate HNL
    freight_cost_hnl: Mapped[Decimal] = mapped_column(Numeric(12, AMOUNT_SCALE), nullable=False, default=Decimal("0"))
    selling_price_hnl: Mapped[Decimal] = mapped_column(Numeric(12, AMOUNT_SCALE), nullable=False, default=Decimal("0"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # No ORM cascade: services.orders.delete_order removes trackings before the order
    trackings: Mapped[List["Tracking"]] = relationship(back_populates="order")


class Tracking(Base):
    __tablename__ = "trackings"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), nullable=False, index=True)
    tracking_number: Mapped[str] = mapped_column(String(128), nullable=False)   # carrier-assigned
    carrier: Mapped[str] = mapped_column(String(64), nullable=False, default=DEFAULT_CARRIER)

    order: Mapped[Order] = relationship(back_populates="trackings")
