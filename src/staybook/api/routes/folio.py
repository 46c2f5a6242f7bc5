"""Folio endpoints - payments, refunds, charges and reconciliation."""

from __future__ import annotations

from fastapi import APIRouter, Header, Path

from staybook.domain.folio import ChargeCreate, PaymentCreate
from staybook.domain.stays import StayValidationError
from staybook.observability.logging import get_logger
from staybook.observability.redaction import safe_log_context

from .errors import not_found, validation_http_error
from .stays import STAFF_HEADER

router = APIRouter(prefix="/stays", tags=["folio"])

logger = get_logger(__name__)


@router.post("/{booking_number}/payments")
def record_payment(
    body: PaymentCreate,
    booking_number: str = Path(..., description="Booking number"),
    staff_id: int | None = Header(default=None, alias=STAFF_HEADER),
) -> dict:
    """Record a payment or refund and return the new balance."""
    from staybook.infra.db import txn
    from staybook.services.folio_service import record_payment as svc_record_payment

    with txn() as cur:
        try:
            state = svc_record_payment(
                cur,
                booking_number,
                body.amount,
                body.method,
                discount=body.discount_amount,
                round_off=body.round_off_amount,
                round_off_applied=body.is_round_off_applied,
                is_refund=body.is_refund,
                reference=body.reference,
                notes=body.notes,
                recorded_by=staff_id,
            )
        except StayValidationError as exc:
            raise validation_http_error(exc)
        if state is None:
            raise not_found()

    logger.info(
        "folio payment accepted",
        extra={
            "extra_fields": safe_log_context(
                booking_number=booking_number,
                method=body.method.value,
                is_refund=body.is_refund,
            )
        },
    )
    return state.as_dict()


@router.post("/{booking_number}/charges", status_code=201)
def add_charge(
    body: ChargeCreate,
    booking_number: str = Path(..., description="Booking number"),
    staff_id: int | None = Header(default=None, alias=STAFF_HEADER),
) -> dict:
    from staybook.infra.db import txn
    from staybook.services.folio_service import add_ancillary_charge

    with txn() as cur:
        try:
            state = add_ancillary_charge(
                cur,
                booking_number,
                body.description,
                body.amount,
                body.tax_amount,
                created_by=staff_id,
            )
        except StayValidationError as exc:
            raise validation_http_error(exc)
        if state is None:
            raise not_found()

    return state.as_dict()


@router.get("/{booking_number}/folio")
def get_folio(booking_number: str = Path(..., description="Booking number")) -> dict:
    from staybook.infra.db import txn
    from staybook.services.folio_service import get_stay_folio

    with txn() as cur:
        folio = get_stay_folio(cur, booking_number)
        if folio is None:
            raise not_found()

    return folio


@router.post("/by-id/{stay_id}/actions/reconcile")
def reconcile_stay(
    stay_id: int = Path(..., description="Stay id"),
    staff_id: int | None = Header(default=None, alias=STAFF_HEADER),
) -> dict:
    """Recompute the stay balance from its payment history."""
    from staybook.infra.db import txn
    from staybook.services.folio_service import reconcile

    with txn() as cur:
        state = reconcile(cur, stay_id, performed_by=staff_id)
        if state is None:
            raise not_found()

    return state.as_dict()
