"""
Session Domain Service.

Minimal table session store: open a session, register diners, end it.
Other services use it to load (and lock) the session row they work on.
"""

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from shared.config.constants import SessionStatus
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import InvalidStateError, SessionNotFoundError
from shared.utils.validators import normalize_name
from rest_api.models import Diner, TableSession

logger = get_logger(__name__)


class SessionService:
    """Domain service for TableSession and Diner operations."""

    def __init__(self, db: Session):
        self._db = db

    def get(self, session_id: int, lock: bool = False) -> TableSession:
        """
        Load a session by id.

        With lock=True the row is selected FOR UPDATE, which serializes
        cart additions against confirmation of the same session, and the
        locked values replace any copy already loaded in this session.
        """
        stmt = select(TableSession).where(TableSession.id == session_id)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        session = self._db.scalar(stmt)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def get_active(self, session_id: int, lock: bool = False) -> TableSession:
        """Load a session and require it to be active."""
        session = self.get(session_id, lock=lock)
        if session.status != SessionStatus.ACTIVE:
            raise InvalidStateError(
                "Session",
                session.status,
                [SessionStatus.ACTIVE],
                session_id=session_id,
            )
        return session

    def get_with_diners(self, session_id: int) -> TableSession:
        session = self._db.scalar(
            select(TableSession)
            .options(selectinload(TableSession.diners))
            .where(TableSession.id == session_id)
        )
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def create(self, table_code: str, diner_names: list[str] | None = None) -> TableSession:
        """Open a session at a table, registering any diners given."""
        session = TableSession(table_code=table_code.strip(), status=SessionStatus.ACTIVE, cart_version=0)
        self._db.add(session)

        seen: set[str] = set()
        for raw_name in diner_names or []:
            name = normalize_name(raw_name, field="diners")
            if name in seen:
                continue
            seen.add(name)
            session.diners.append(Diner(name=name))

        safe_commit(self._db, "opening table session")
        self._db.refresh(session)

        logger.info(
            "Table session opened",
            session_id=session.id,
            table_code=session.table_code,
            diners=sorted(seen),
        )
        return session

    def add_diner(self, session_id: int, name: str) -> tuple[Diner, bool]:
        """
        Register a diner at an active session.

        Joining twice with the same name returns the existing diner.
        Returns (diner, created).
        """
        name = normalize_name(name, field="name")
        self.get_active(session_id)

        existing = self._find_diner(session_id, name)
        if existing is not None:
            return existing, False

        diner = Diner(session_id=session_id, name=name)
        self._db.add(diner)
        try:
            safe_commit(self._db, "registering diner")
        except IntegrityError:
            # Same name registered concurrently
            existing = self._find_diner(session_id, name)
            if existing is None:
                raise
            return existing, False

        self._db.refresh(diner)
        logger.info("Diner joined", session_id=session_id, diner_name=name)
        return diner, True

    def end(self, session_id: int) -> TableSession:
        """Close the session. Its orders and bills remain readable."""
        session = self.get_active(session_id, lock=True)
        session.status = SessionStatus.ENDED
        session.ended_at = datetime.now(timezone.utc)
        safe_commit(self._db, "ending table session")

        logger.info("Table session ended", session_id=session_id)
        return self.get_with_diners(session_id)

    def _find_diner(self, session_id: int, name: str) -> Diner | None:
        return self._db.scalar(
            select(Diner).where(Diner.session_id == session_id, Diner.name == name)
        )
