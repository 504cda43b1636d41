"""
Split Bill Domain Service.

Resolves a split request to exactly one current SplitBill per
(session, menu item), then links the session's shared pending lines
for that item to it.

Resolution and linkage are separate commits. Orders already in the
kitchen keep whatever agreement they were confirmed with, so changing the
terms never reprices food that has been sent.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import exists, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shared.config.constants import OrderStatus, SplitStatus
from shared.config.logging import split_logger as logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import (
    ConflictError,
    PersistenceError,
    SplitBillNotFoundError,
    SplitLinkageError,
)
from shared.utils.validators import normalize_participants, validate_positive_amount, validate_split_count
from rest_api.models import OrderItem, SplitBill
from .menu_service import MenuService
from .session_service import SessionService


@dataclass
class SplitResolution:
    split_bill: SplitBill
    created: bool  # False when the current agreement already had these terms
    linked_count: int


class SplitService:
    """Domain service for SplitBill operations."""

    def __init__(self, db: Session):
        self._db = db
        self._sessions = SessionService(db)
        self._menu = MenuService(db)

    def create_or_reuse(
        self,
        session_id: int,
        menu_item_id: int,
        original_price: Decimal,
        split_count: int,
        participants: list[str],
    ) -> SplitResolution:
        """
        Find or create the current split agreement and link pending shared lines to it.

        Identical terms return the current agreement untouched. Different
        terms retire it (it is never edited) and create a new current one.

        Raises:
            ValidationError: non-positive price or count, no participants
            SessionNotFoundError, MenuItemNotFoundError: unknown ids
            ConflictError: lost the creation race twice
            SplitLinkageError: agreement stored but linking the lines failed
        """
        price = validate_positive_amount(original_price, "original_price")
        split_count = validate_split_count(split_count)
        names = normalize_participants(participants)

        self._sessions.get(session_id)
        self._menu.get(menu_item_id)

        split_bill, created = self._resolve_with_retry(session_id, menu_item_id, price, split_count, names)
        linked_count = self._link_pending_lines(split_bill)

        logger.info(
            "Split bill resolved",
            session_id=session_id,
            menu_item_id=menu_item_id,
            split_bill_id=split_bill.id,
            created=created,
            split_count=split_count,
            participants=names,
            linked_count=linked_count,
        )
        return SplitResolution(split_bill=split_bill, created=created, linked_count=linked_count)

    def get(self, split_bill_id: int) -> SplitBill:
        split_bill = self._db.get(SplitBill, split_bill_id)
        if split_bill is None:
            raise SplitBillNotFoundError(split_bill_id)
        return split_bill

    def list_for_session(self, session_id: int) -> list[SplitBill]:
        """All agreements of a session, including retired ones, oldest first."""
        self._sessions.get(session_id)
        return list(
            self._db.scalars(
                select(SplitBill)
                .where(SplitBill.session_id == session_id)
                .order_by(SplitBill.id)
            ).all()
        )

    # =========================================================================
    # Resolution
    # =========================================================================

    def _resolve_with_retry(
        self,
        session_id: int,
        menu_item_id: int,
        price: Decimal,
        split_count: int,
        names: list[str],
    ) -> tuple[SplitBill, bool]:
        try:
            return self._resolve(session_id, menu_item_id, price, split_count, names)
        except IntegrityError:
            self._db.rollback()
            logger.warning(
                "Split bill created concurrently, re-resolving",
                session_id=session_id,
                menu_item_id=menu_item_id,
            )

        try:
            return self._resolve(session_id, menu_item_id, price, split_count, names)
        except IntegrityError:
            self._db.rollback()
            raise ConflictError(
                "Split bill is being updated concurrently, please retry",
                session_id=session_id,
                menu_item_id=menu_item_id,
            )

    def _resolve(
        self,
        session_id: int,
        menu_item_id: int,
        price: Decimal,
        split_count: int,
        names: list[str],
    ) -> tuple[SplitBill, bool]:
        current = self._db.scalar(
            select(SplitBill).where(
                SplitBill.session_id == session_id,
                SplitBill.menu_item_id == menu_item_id,
                SplitBill.is_current.is_(True),
            )
        )

        if current is not None and current.matches(price, split_count, names):
            return current, False

        if current is not None:
            # Stays active while lines point at it; linkage supersedes it
            current.is_current = False
            # Free the current slot before the replacement is inserted
            self._db.flush()
            logger.info("Split bill retired", split_bill_id=current.id)

        split_bill = SplitBill(
            session_id=session_id,
            menu_item_id=menu_item_id,
            original_price=price,
            split_count=split_count,
            participants=names,
            status=SplitStatus.ACTIVE,
            is_current=True,
        )
        self._db.add(split_bill)
        safe_commit(self._db, "resolving split bill")
        return split_bill, True

    # =========================================================================
    # Linkage
    # =========================================================================

    def _link_pending_lines(self, split_bill: SplitBill) -> int:
        """
        Point every shared pending line for the item at this agreement, and
        supersede retired agreements that nothing references any more.

        Both happen in one commit. Kitchen orders are excluded by the status
        filter, so a retired agreement that still prices one stays active.
        After a failure, resending the same request takes the reuse path and
        runs this again.
        """
        split_bill_id = split_bill.id
        session_id = split_bill.session_id
        menu_item_id = split_bill.menu_item_id
        try:
            result = self._db.execute(
                update(OrderItem)
                .where(
                    OrderItem.session_id == session_id,
                    OrderItem.menu_item_id == menu_item_id,
                    OrderItem.is_shared.is_(True),
                    OrderItem.status.in_(OrderStatus.PENDING),
                )
                .values(split_bill_id=split_bill_id)
                .execution_options(synchronize_session="fetch")
            )
            linked_count = result.rowcount or 0

            superseded = self._db.execute(
                update(SplitBill)
                .where(
                    SplitBill.session_id == session_id,
                    SplitBill.menu_item_id == menu_item_id,
                    SplitBill.is_current.is_(False),
                    SplitBill.status == SplitStatus.ACTIVE,
                    ~exists().where(OrderItem.split_bill_id == SplitBill.id),
                )
                .values(status=SplitStatus.SUPERSEDED)
                .execution_options(synchronize_session="fetch")
            )
            safe_commit(self._db, "linking split bill")
        except (SQLAlchemyError, PersistenceError) as e:
            self._db.rollback()
            raise SplitLinkageError(split_bill_id, error=str(e)) from e

        if superseded.rowcount:
            logger.info(
                "Split bills superseded",
                session_id=session_id,
                menu_item_id=menu_item_id,
                count=superseded.rowcount,
            )
        return linked_count
