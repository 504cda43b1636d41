"""
Tables router.
Opens and closes table sessions and registers the diners sitting at them.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.utils.schemas import (
    AddDinerRequest,
    CreateSessionRequest,
    DinerOutput,
    SessionOutput,
)
from rest_api.services.domain import SessionService


router = APIRouter(prefix="/api/sessions", tags=["tables"])


@router.post("", response_model=SessionOutput, status_code=status.HTTP_201_CREATED)
def open_session(body: CreateSessionRequest, db: Session = Depends(get_db)) -> SessionOutput:
    """Open a session at a table, optionally with the diners already seated."""
    session = SessionService(db).create(body.table_code, body.diners)
    return SessionOutput.model_validate(session)


@router.get("/{session_id}", response_model=SessionOutput)
def get_session(session_id: int, db: Session = Depends(get_db)) -> SessionOutput:
    return SessionOutput.model_validate(SessionService(db).get_with_diners(session_id))


@router.post("/{session_id}/diners", response_model=DinerOutput)
def join_session(
    session_id: int,
    body: AddDinerRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> DinerOutput:
    """
    Register a diner by name. Joining again with the same name is a no-op
    and answers 200 instead of 201.
    """
    diner, created = SessionService(db).add_diner(session_id, body.name)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return DinerOutput.model_validate(diner)


@router.post("/{session_id}/end", response_model=SessionOutput)
def end_session(session_id: int, db: Session = Depends(get_db)) -> SessionOutput:
    """Close the session. Orders and bills stay readable afterwards."""
    return SessionOutput.model_validate(SessionService(db).end(session_id))
