from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from ledger.database import get_session
from ledger.schemas.order import (
    FinancialsUpdate,
    OrderCreate,
    OrderCreatedOut,
    OrderOut,
    RateOut,
    SuccessOut,
    TrackingIn,
)
from ledger.services import orders as order_service
from ledger.services.rates import RateResolver

router = APIRouter(prefix="/api", tags=["Orders"])


def get_rate_resolver(request: Request) -> RateResolver:
    return request.app.state.rate_resolver


@router.get("/rate", response_model=RateOut)
def get_rate(
    request: Request,
    currency: Optional[str] = Query(None, description="Currency to quote against the local currency (default: the foreign currency)."),
    resolver: RateResolver = Depends(get_rate_resolver),
):
    """Rate preview for the order form; no side effects."""
    settings = request.app.state.settings
    code = order_service.normalize_currency(currency or settings.foreign_currency, resolver, settings.currency_codes)
    return {"rate": float(resolver.quote(code))}


@router.post("/orders", response_model=OrderCreatedOut, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreate,
    request: Request,
    session: Session = Depends(get_session),
    resolver: RateResolver = Depends(get_rate_resolver),
):
    settings = request.app.state.settings
    created = order_service.create_order(
        session,
        payload,
        resolver,
        supported_currencies=settings.currency_codes,
        default_carrier=settings.default_carrier,
    )
    return {
        "success": True,
        "message": "Order saved",
        "order_id": created.order_id,
        "tasa_usada": float(created.rate),
        "total_en_lempiras": f"{created.total_local:.2f}",
    }


@router.get("/orders", response_model=List[OrderOut])
def list_orders(session: Session = Depends(get_session)):
    return order_service.list_orders(session)


@router.put("/orders/{order_id}/financials", response_model=SuccessOut)
def update_financials(order_id: int, payload: FinancialsUpdate, session: Session = Depends(get_session)):
    """Amount, freight and selling price only. An unknown id still answers success."""
    order_service.update_financials(session, order_id, payload)
    return {"success": True, "message": "Order updated"}


@router.post("/orders/{order_id}/tracking", response_model=SuccessOut)
def add_tracking(
    order_id: int,
    payload: TrackingIn,
    request: Request,
    session: Session = Depends(get_session),
):
    order_service.add_tracking(
        session,
        order_id,
        payload.tracking_number,
        payload.carrier,
        default_carrier=request.app.state.settings.default_carrier,
    )
    return {"success": True, "message": "Tracking added"}


@router.delete("/orders/{order_id}", response_model=SuccessOut)
def delete_order(order_id: int, session: Session = Depends(get_session)):
    # Idempotent: deleting an id that is not there is still a success
    order_service.delete_order(session, order_id)
    return {"success": True, "message": "Order deleted"}
