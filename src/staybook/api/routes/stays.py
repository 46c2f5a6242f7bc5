"""Stay endpoints - quote, create, room assignment and date changes."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Header, HTTPException, Path
from pydantic import BaseModel, ConfigDict, Field

from staybook.domain.folio import PaymentMethod
from staybook.domain.stays import StayStatus, StayValidationError
from staybook.observability.logging import get_logger
from staybook.observability.redaction import safe_log_context

from .errors import not_found, validation_http_error

router = APIRouter(prefix="/stays", tags=["stays"])

logger = get_logger(__name__)

STAFF_HEADER = "X-Staff-Id"


# ── Request schemas ──────────────────────────────────────


class QuoteRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    room_type_id: int
    check_in: date
    check_out: date
    customer_type: str = ""
    source: str = ""
    adults: int = Field(default=1, ge=0)
    children: int = Field(default=0, ge=0)
    required_rooms: int = 1


class CreateStayRequest(QuoteRequest):
    channel: str = "FrontDesk"
    status: StayStatus = StayStatus.CONFIRMED
    initial_deposit: Decimal = Field(default=Decimal("0"), ge=0)
    payment_method: PaymentMethod = PaymentMethod.CASH
    primary_guest_name: str | None = None
    primary_guest_phone: str | None = None
    primary_guest_email: str | None = None
    special_requests: str | None = None


class AssignRoomRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    room_id: int


class AssignRoomsRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    room_ids: list[int]


class TotalsOverride(BaseModel):
    model_config = ConfigDict(extra="forbid")

    base_amount: Decimal = Field(..., ge=0)
    cgst_amount: Decimal = Field(default=Decimal("0"), ge=0)
    sgst_amount: Decimal = Field(default=Decimal("0"), ge=0)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)


class ChangeDatesRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    check_in: date
    check_out: date
    override_totals: TotalsOverride | None = None


# ── Endpoints ────────────────────────────────────────────


@router.post("/quote")
def quote_stay(body: QuoteRequest) -> dict:
    """Price a stay. Unpriceable requests answer 200 with available=false."""
    from staybook.domain.quote import QuoteUnavailable
    from staybook.infra.db import txn
    from staybook.services.booking_service import quote

    with txn() as cur:
        try:
            result = quote(
                cur,
                room_type_id=body.room_type_id,
                check_in=body.check_in,
                check_out=body.check_out,
                customer_type=body.customer_type,
                source=body.source,
                adults=body.adults,
                children=body.children,
                required_rooms=body.required_rooms,
            )
        except QuoteUnavailable as exc:
            logger.info(
                "quote unavailable",
                extra={
                    "extra_fields": safe_log_context(
                        room_type_id=body.room_type_id, reason_code=exc.reason_code
                    )
                },
            )
            return {"available": False, "reason_code": exc.reason_code}

    return result.as_dict()


@router.post("", status_code=201)
def create_stay(
    body: CreateStayRequest,
    staff_id: int | None = Header(default=None, alias=STAFF_HEADER),
) -> dict:
    from staybook.infra.db import txn
    from staybook.services.booking_service import StayCreateRequest
    from staybook.services.booking_service import create_stay as svc_create_stay

    request = StayCreateRequest(
        room_type_id=body.room_type_id,
        check_in=body.check_in,
        check_out=body.check_out,
        customer_type=body.customer_type,
        source=body.source,
        channel=body.channel,
        adults=body.adults,
        children=body.children,
        required_rooms=body.required_rooms,
        status=body.status,
        initial_deposit=body.initial_deposit,
        payment_method=body.payment_method,
        primary_guest_name=body.primary_guest_name,
        primary_guest_phone=body.primary_guest_phone,
        primary_guest_email=body.primary_guest_email,
        special_requests=body.special_requests,
    )

    with txn() as cur:
        try:
            created = svc_create_stay(cur, request, created_by=staff_id)
        except StayValidationError as exc:
            raise validation_http_error(exc)

    return {"stay_id": created.stay_id, "booking_number": created.booking_number}


@router.post("/{booking_number}/actions/assign-room")
def assign_room(
    body: AssignRoomRequest,
    booking_number: str = Path(..., description="Booking number"),
    staff_id: int | None = Header(default=None, alias=STAFF_HEADER),
) -> dict:
    from staybook.infra.db import txn
    from staybook.services.booking_service import assign_room as svc_assign_room

    with txn() as cur:
        try:
            assigned = svc_assign_room(cur, booking_number, body.room_id, staff_id)
        except StayValidationError as exc:
            raise validation_http_error(exc)
        if not assigned:
            raise not_found("Stay or room")

    return {"booking_number": booking_number, "room_ids": [body.room_id]}


@router.post("/{booking_number}/actions/assign-rooms")
def assign_rooms(
    body: AssignRoomsRequest,
    booking_number: str = Path(..., description="Booking number"),
    staff_id: int | None = Header(default=None, alias=STAFF_HEADER),
) -> dict:
    from staybook.infra.db import txn
    from staybook.services.booking_service import assign_rooms as svc_assign_rooms

    with txn() as cur:
        try:
            assigned = svc_assign_rooms(cur, booking_number, body.room_ids, staff_id)
        except StayValidationError as exc:
            raise validation_http_error(exc)
        if not assigned:
            raise not_found("Stay or room")

    return {"booking_number": booking_number, "room_ids": body.room_ids}


@router.post("/{booking_number}/actions/change-dates")
def change_dates(
    body: ChangeDatesRequest,
    booking_number: str = Path(..., description="Booking number"),
    staff_id: int | None = Header(default=None, alias=STAFF_HEADER),
) -> dict:
    """Move a stay; with override_totals the nights are prorated, not repriced."""
    from staybook.domain.totals import BookingTotals
    from staybook.infra.db import txn
    from staybook.services.booking_service import change_dates as svc_change_dates

    override = None
    if body.override_totals is not None:
        o = body.override_totals
        tax = o.cgst_amount + o.sgst_amount
        override = BookingTotals(
            base_amount=o.base_amount,
            tax_amount=tax,
            cgst_amount=o.cgst_amount,
            sgst_amount=o.sgst_amount,
            discount_amount=o.discount_amount,
            total_amount=o.base_amount + tax,
        )

    with txn() as cur:
        try:
            totals = svc_change_dates(
                cur,
                booking_number,
                body.check_in,
                body.check_out,
                staff_id,
                override_totals=override,
            )
        except StayValidationError as exc:
            raise validation_http_error(exc)
        if totals is None:
            raise not_found()

    return {"booking_number": booking_number, "totals": totals.as_dict()}


@router.get("/{booking_number}/audit")
def list_audit(booking_number: str = Path(..., description="Booking number")) -> list[dict]:
    """Audit trail of a stay, newest first."""
    from staybook.infra.db import txn
    from staybook.services.booking_service import list_audit_records

    with txn() as cur:
        records = list_audit_records(cur, booking_number)
        if records is None:
            raise not_found()

    return [r.as_dict() for r in records]


@router.get("/available-room")
def available_room(room_type_id: int, check_in: date, check_out: date) -> dict:
    from staybook.infra.db import txn
    from staybook.services.booking_service import find_available_room

    if check_in >= check_out:
        raise HTTPException(status_code=422, detail="check_out must be after check_in")

    with txn() as cur:
        room = find_available_room(
            cur, room_type_id=room_type_id, check_in=check_in, check_out=check_out
        )

    if room is None:
        return {"available": False}
    return {"available": True, "room_id": room.id, "room_number": room.room_number}
