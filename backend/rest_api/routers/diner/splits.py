"""
Split Bill Router.
Agreements to divide a shared dish among some of the diners at the table.
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.infrastructure.events import EventPublisher, get_event_publisher
from shared.utils.schemas import (
    SplitBillOutput,
    SplitCreateRequest,
    SplitResolutionOutput,
)
from rest_api.services.domain import SplitService


router = APIRouter(prefix="/api/splits", tags=["splits"])


@router.post("/create-or-reuse", response_model=SplitResolutionOutput)
def create_or_reuse_split(
    body: SplitCreateRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> SplitResolutionOutput:
    """
    Resolve the current split agreement for a menu item in a session.

    Sending the same terms again returns the same agreement (created=false).
    Different terms replace it; orders already in the kitchen keep the
    agreement they were confirmed with. Shared cart lines for the item are
    linked to the resulting agreement.

    Returns 503 if the agreement was stored but the lines could not be
    linked; resending the same request links them.
    """
    resolution = SplitService(db).create_or_reuse(
        session_id=body.session_id,
        menu_item_id=body.menu_item_id,
        original_price=body.original_price,
        split_count=body.split_count,
        participants=body.participants,
    )
    split_bill = SplitBillOutput.model_validate(resolution.split_bill)

    background_tasks.add_task(
        publisher.split_resolved,
        session_id=body.session_id,
        split_bill=split_bill.model_dump(mode="json"),
        created=resolution.created,
        linked_count=resolution.linked_count,
    )
    return SplitResolutionOutput(
        split_bill=split_bill,
        created=resolution.created,
        linked_count=resolution.linked_count,
    )


@router.get("/{split_bill_id}", response_model=SplitBillOutput)
def get_split(split_bill_id: int, db: Session = Depends(get_db)) -> SplitBillOutput:
    return SplitBillOutput.model_validate(SplitService(db).get(split_bill_id))


@router.get("", response_model=list[SplitBillOutput])
def list_splits(session_id: int, db: Session = Depends(get_db)) -> list[SplitBillOutput]:
    """Every agreement of a session, retired ones included."""
    return [SplitBillOutput.model_validate(s) for s in SplitService(db).list_for_session(session_id)]
