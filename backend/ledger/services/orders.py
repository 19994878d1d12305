# ledger/services/orders.py
"""
Order ledger operations. Every function takes the request's Session explicitly and
returns plain data; HTTP shaping lives in `ledger.routers.orders`.

- create_order: order row + trackings in ONE transaction (all or nothing)
- list_orders: newest first, trackings embedded ([] when there are none)
- update_financials / delete_order: return the affected order row count (0 is not an error)
- add_tracking: single insert; the FK on trackings.order_id is the only existence check
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger.core.constants import AMOUNT_SCALE
from ledger.core.errors import (
    UnsupportedCurrency,
    ValidationError,
    storage_error_from,
)
from ledger.model.order import Order, Tracking
from ledger.schemas.order import FinancialsUpdate, OrderCreate
from ledger.services.rates import RateResolver, decimal_places

logger = logging.getLogger("ledger.orders")

_CENTS = Decimal("0.01")


@dataclass
class CreatedOrder:
    order_id: int
    rate: Decimal
    total_local: Decimal


def local_total(amount: Decimal, rate: Decimal) -> Decimal:
    """amount x rate rounded to 2 decimals (half up)."""
    return (Decimal(amount) * Decimal(rate)).quantize(_CENTS, rounding=ROUND_HALF_UP)


def _check_amount(name: str, value: Optional[Decimal]) -> None:
    # the orders table keeps AMOUNT_SCALE places; more would be rounded silently
    if value is not None and value.is_finite() and decimal_places(value) > AMOUNT_SCALE:
        raise ValidationError(f"{name} must have at most {AMOUNT_SCALE} decimal places")


def _carrier_or_default(carrier: Optional[str], default_carrier: str) -> str:
    carrier = (carrier or "").strip()
    return carrier or default_carrier


def normalize_currency(currency: Optional[str], resolver: RateResolver, supported: List[str]) -> str:
    code = (currency or "").strip().upper() or resolver.local_currency
    if supported and code not in supported:
        raise UnsupportedCurrency(f"Unsupported currency: {code}")
    return code


def create_order(
    session: Session,
    payload: OrderCreate,
    resolver: RateResolver,
    *,
    supported_currencies: List[str],
    default_carrier: str,
) -> CreatedOrder:
    if payload.purchase_date is None or payload.original_amount is None:
        raise ValidationError("Missing required fields (purchase_date or original_amount)")
    _check_amount("original_amount", payload.original_amount)

    currency = normalize_currency(payload.currency, resolver, supported_currencies)
    # Resolved before the transaction opens: a slow oracle must not hold a pooled connection
    rate = resolver.resolve(currency, payload.custom_rate)
    trackings = payload.trackings or []

    try:
        with session.begin():
            order = Order(
                purchase_date=payload.purchase_date,
                original_amount=payload.original_amount,
                currency=currency,
                exchange_rate=rate,
            )
            session.add(order)
            session.flush()  # assigns order.id

            for track in trackings:
                session.add(Tracking(
                    order_id=order.id,
                    tracking_number=track.tracking_number,
                    carrier=_carrier_or_default(track.carrier, default_carrier),
                ))
                # one statement per tracking, in input order
                session.flush()
            order_id = order.id
            stored_amount, stored_rate = order.original_amount, order.exchange_rate
    except SQLAlchemyError as e:
        logger.exception("Order creation rolled back")
        raise storage_error_from(e, "Internal server error") from e

    logger.info("Order %s created: %s %s @ %s, %d tracking(s)",
                order_id, payload.original_amount, currency, rate, len(trackings))
    # total from the values written, as the listing will show them
    return CreatedOrder(order_id=order_id, rate=stored_rate, total_local=local_total(stored_amount, stored_rate))


def list_orders(session: Session) -> List[Dict[str, Any]]:
    """
    All orders, newest id first, each with a `trackings` list of {n_guia, carrier}.

    One LEFT OUTER JOIN; an order without trackings yields a single row whose
    tracking side is NULL, which must become [] and not [None].
    """
    stmt = (
        select(Order, Tracking)
        .outerjoin(Tracking, Tracking.order_id == Order.id)
        .order_by(Order.id.desc(), Tracking.id)
    )
    try:
        rows = session.execute(stmt).all()
    except SQLAlchemyError as e:
        raise storage_error_from(e) from e

    out: Dict[int, Dict[str, Any]] = {}
    for order, tracking in rows:
        item = out.get(order.id)
        if item is None:
            item = {
                "id": order.id,
                "purchase_date": order.purchase_date,
                "original_amount": order.original_amount,
                "currency": order.currency,
                "exchange_rate": order.exchange_rate,
                "freight_cost_hnl": order.freight_cost_hnl,
                "selling_price_hnl": order.selling_price_hnl,
                "created_at": order.created_at,
                "trackings": [],
            }
            out[order.id] = item
        if tracking is not None:
            item["trackings"].append({"n_guia": tracking.tracking_number, "carrier": tracking.carrier})
    # dicts keep insertion order, which is already id DESC
    return list(out.values())


def update_financials(session: Session, order_id: int, payload: FinancialsUpdate) -> int:
    """Overwrites amount, freight and selling price; currency and exchange_rate stay as they are."""
    if payload.original_amount is None:
        raise ValidationError("Missing required fields (original_amount)")
    for name in ("original_amount", "freight_cost_hnl", "selling_price_hnl"):
        _check_amount(name, getattr(payload, name))

    stmt = (
        update(Order)
        .where(Order.id == order_id)
        .values(
            original_amount=payload.original_amount,
            freight_cost_hnl=payload.freight_cost_hnl or Decimal("0"),
            selling_price_hnl=payload.selling_price_hnl or Decimal("0"),
        )
    )
    try:
        with session.begin():
            affected = session.execute(stmt).rowcount
    except SQLAlchemyError as e:
        raise storage_error_from(e) from e

    if not affected:
        logger.info("Financials update for order %s touched no rows", order_id)
    return affected


def add_tracking(
    session: Session,
    order_id: int,
    tracking_number: Optional[str],
    carrier: Optional[str],
    *,
    default_carrier: str,
) -> None:
    if not (tracking_number or "").strip():
        raise ValidationError("Missing required fields (tracking_number)")

    try:
        with session.begin():
            session.add(Tracking(
                order_id=order_id,
                tracking_number=tracking_number,
                carrier=_carrier_or_default(carrier, default_carrier),
            ))
    except SQLAlchemyError as e:
        raise storage_error_from(e) from e
    logger.info("Tracking %s added to order %s", tracking_number, order_id)


def delete_order(session: Session, order_id: int) -> int:
    """Trackings first, then the order, so no tracking is ever left pointing at nothing."""
    try:
        with session.begin():
            session.execute(delete(Tracking).where(Tracking.order_id == order_id))
            affected = session.execute(delete(Order).where(Order.id == order_id)).rowcount
    except SQLAlchemyError as e:
        raise storage_error_from(e) from e

    if not affected:
        logger.info("Delete for order %s touched no rows", order_id)
    return affected
