"""
Bill Router.
What each diner owes, what the table owes, payment requests and their completion.
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.infrastructure.events import EventPublisher, get_event_publisher
from shared.utils.schemas import (
    BillLineOutput,
    BillTotalsOutput,
    DinerBillOutput,
    DinerPaymentOutput,
    MyShareOutput,
    PaymentCompleteBody,
    PaymentCompleteResponse,
    PaymentRequestBody,
    PaymentRequestOutput,
    PaymentStatusOutput,
    PerDinerOutput,
    TableTotalOutput,
)
from rest_api.services.domain import BillLine, BillService, DinerBill


router = APIRouter(prefix="/api/bill", tags=["bill"])


def _bill_line_output(line: BillLine) -> BillLineOutput:
    return BillLineOutput(
        order_id=line.order_id,
        menu_item_name=line.menu_item_name,
        quantity=line.quantity,
        amount=line.amount,
        is_split=line.is_split,
        split_count=line.split_count,
    )


def _diner_bill_output(bill: DinerBill) -> DinerBillOutput:
    totals = bill.totals
    return DinerBillOutput(
        diner_name=bill.diner_name,
        personal_items=[_bill_line_output(line) for line in bill.personal_items],
        shared_items=[_bill_line_output(line) for line in bill.shared_items],
        personal_subtotal=bill.personal_subtotal,
        shared_subtotal=bill.shared_subtotal,
        subtotal=totals.subtotal,
        vat=totals.vat,
        total=totals.total,
    )


@router.get("/my-share", response_model=MyShareOutput)
def get_my_share(session_id: int, diner_name: str, db: Session = Depends(get_db)) -> MyShareOutput:
    """
    What one diner owes: their personal orders plus their portion of
    each split they take part in, with VAT.
    """
    totals = BillService(db).my_share(session_id, diner_name)
    return MyShareOutput(
        session_id=session_id,
        diner_name=diner_name.strip(),
        subtotal=totals.subtotal,
        vat=totals.vat,
        total=totals.total,
    )


@router.get("/table-total", response_model=TableTotalOutput)
def get_table_total(session_id: int, db: Session = Depends(get_db)) -> TableTotalOutput:
    totals, order_count = BillService(db).table_total(session_id)
    return TableTotalOutput(
        session_id=session_id,
        order_count=order_count,
        subtotal=totals.subtotal,
        vat=totals.vat,
        total=totals.total,
    )


@router.get("/per-diner", response_model=PerDinerOutput)
def get_per_diner(session_id: int, db: Session = Depends(get_db)) -> PerDinerOutput:
    """Itemised bill for every diner. Orders nobody owns are grouped under a null name."""
    bills, table = BillService(db).per_diner(session_id)
    return PerDinerOutput(
        session_id=session_id,
        diners=[_diner_bill_output(bill) for bill in bills],
        table=BillTotalsOutput(subtotal=table.subtotal, vat=table.vat, total=table.total),
    )


@router.post("/payment-request", response_model=PaymentRequestOutput, status_code=201)
def request_payment(
    body: PaymentRequestBody,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> PaymentRequestOutput:
    """
    Ask to pay. Refused with 400 while any confirmed order is not yet served.

    The request is typed "table" when the diner's share already covers the
    whole table, "individual" otherwise.
    """
    payment_request = BillService(db).request_payment(body.session_id, body.diner_name, body.tip_amount)
    output = PaymentRequestOutput.model_validate(payment_request)

    background_tasks.add_task(
        publisher.payment_requested,
        body.session_id,
        output.model_dump(mode="json"),
    )
    return output


@router.post("/payment-complete", response_model=PaymentCompleteResponse)
def complete_payment(
    body: PaymentCompleteBody,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> PaymentCompleteResponse:
    """
    Staff confirm a payment request was collected.

    Repeating the call is harmless: already_completed is true and nothing
    is published. The session ends with the table payment or the last
    outstanding individual one.
    """
    completion = BillService(db).complete_payment(
        body.payment_request_id, body.payment_method, body.completed_by
    )
    payment_request = PaymentRequestOutput.model_validate(completion.payment_request)

    if not completion.already_completed:
        background_tasks.add_task(
            publisher.payment_completed,
            payment_request.session_id,
            payment_request.model_dump(mode="json"),
            completion.session_ended,
        )
    return PaymentCompleteResponse(
        payment_request=payment_request,
        already_completed=completion.already_completed,
        session_ended=completion.session_ended,
    )


@router.get("/payment-status", response_model=PaymentStatusOutput)
def get_payment_status(session_id: int, db: Session = Depends(get_db)) -> PaymentStatusOutput:
    status = BillService(db).payment_status(session_id)
    latest = status.latest_request
    return PaymentStatusOutput(
        session_id=status.session_id,
        session_status=status.session_status,
        diners=[
            DinerPaymentOutput(diner_name=d.diner_name, amount_due=d.amount_due, paid=d.paid)
            for d in status.diners
        ],
        paid_diners=status.paid_diners,
        remaining_diners=status.remaining_diners,
        all_paid=status.all_paid,
        latest_request=PaymentRequestOutput.model_validate(latest) if latest is not None else None,
    )
