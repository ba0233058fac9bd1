"""SQLAlchemy implementation of the break store.

One ``scheduled_breaks`` table holds three kinds of row, told apart by
which columns are null:

- assignment: ``user_id`` set
- custom slot definition: ``user_id`` and ``std_slot_id`` null
- template capacity override: ``user_id`` null, ``std_slot_id`` set

The roster comes from ``availability`` (status "available", any case) joined
with ``staff_profiles`` whose shift preference matches the shift exactly.
"""

from __future__ import annotations

import datetime
import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Union

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    create_engine,
    delete,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from breakplanner.domain.models import (
    Assignment,
    SchedulingScope,
    ShiftType,
    SlotDefinition,
    SlotOrigin,
    StaffMember,
)
from breakplanner.domain.templates import CUSTOM_LABEL
from breakplanner.errors import StoreError
from breakplanner.scheduling.time_normalizer import normalize_start_time
from breakplanner.storage.interfaces import BreakStore

logger = logging.getLogger(__name__)

AVAILABLE_STATUS = "available"


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _stored_time(value: Optional[str]) -> Optional[str]:
    """Stored times may carry seconds; unparseable values pass through."""
    if value is None:
        return None
    try:
        return normalize_start_time(value)
    except ValueError:
        return value


class Base(DeclarativeBase):
    """Metadata for the break planner tables."""

    pass


class StaffProfile(Base):
    __tablename__ = "staff_profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    first_name: Mapped[str] = mapped_column(String(80), default="", nullable=False)
    last_name: Mapped[str] = mapped_column(String(80), default="", nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    shift_preference: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.id


class AvailabilityRecord(Base):
    __tablename__ = "availability"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("staff_profiles.id"), nullable=False)
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)


class ScheduledBreak(Base):
    __tablename__ = "scheduled_breaks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("staff_profiles.id"), nullable=True
    )
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False, index=True)
    shift_type: Mapped[str] = mapped_column(String(20), nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    break_start_time: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    break_duration_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    break_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    break_label: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    capacity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    std_slot_id: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )


def _row_id(value: str) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class SqlBreakStore(BreakStore):
    """BreakStore backed by a SQLAlchemy engine.

    Example:
        >>> store = SqlBreakStore("sqlite:///breakplanner.db")
        >>> store.create_all()
        >>> roster = store.fetch_staff_roster(date(2024, 6, 1), ShiftType.DAY)
    """

    def __init__(self, database_url_or_engine: Union[str, Engine], **engine_options):
        if isinstance(database_url_or_engine, Engine):
            self.engine = database_url_or_engine
        else:
            self.engine = create_engine(database_url_or_engine, future=True, **engine_options)
        self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False, future=True)

    def create_all(self) -> None:
        """Create the tables if they do not exist."""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not create tables: {exc}") from exc

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._sessions()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StoreError(str(exc)) from exc
        finally:
            session.close()

    @staticmethod
    def _in_scope(stmt, scope: SchedulingScope):
        stmt = stmt.where(
            ScheduledBreak.date == scope.date,
            ScheduledBreak.shift_type == scope.shift_type.value,
        )
        if scope.has_concrete_location:
            stmt = stmt.where(ScheduledBreak.location == scope.location)
        return stmt

    # Roster seeding ------------------------------------------------------

    def add_staff_profile(
        self,
        user_id: str,
        first_name: str,
        last_name: str = "",
        location: Optional[str] = None,
        shift_preference: Optional[str] = None,
    ) -> None:
        with self._session() as session:
            profile = session.get(StaffProfile, user_id)
            if profile is None:
                profile = StaffProfile(id=user_id)
                session.add(profile)
            profile.first_name = first_name
            profile.last_name = last_name
            profile.location = location
            profile.shift_preference = shift_preference

    def set_availability(self, user_id: str, day: datetime.date, status: str) -> None:
        with self._session() as session:
            session.execute(
                delete(AvailabilityRecord).where(
                    AvailabilityRecord.user_id == user_id,
                    AvailabilityRecord.date == day,
                )
            )
            session.add(AvailabilityRecord(user_id=user_id, date=day, status=status))

    # BreakStore ------------------------------------------------------------

    def fetch_staff_roster(self, schedule_date: datetime.date, shift_type: ShiftType) -> list[StaffMember]:
        stmt = (
            select(AvailabilityRecord.status, StaffProfile)
            .select_from(AvailabilityRecord)
            .join(StaffProfile, StaffProfile.id == AvailabilityRecord.user_id)
            .where(AvailabilityRecord.date == schedule_date)
            .order_by(StaffProfile.first_name, StaffProfile.last_name)
        )
        roster: dict[str, StaffMember] = {}
        with self._session() as session:
            for status, profile in session.execute(stmt):
                if (status or "").lower() != AVAILABLE_STATUS:
                    continue
                if (profile.shift_preference or "").lower() != shift_type.value:
                    continue
                roster.setdefault(
                    profile.id,
                    StaffMember(
                        user_id=profile.id,
                        name=profile.full_name,
                        location=profile.location,
                        shift_preference=shift_type,
                    ),
                )
        return list(roster.values())

    def fetch_persisted_slot_overrides(self, scope: SchedulingScope) -> dict[str, int]:
        stmt = self._in_scope(
            select(ScheduledBreak).where(
                ScheduledBreak.user_id.is_(None),
                ScheduledBreak.std_slot_id.is_not(None),
            ),
            scope,
        ).order_by(ScheduledBreak.id)
        with self._session() as session:
            return {
                row.std_slot_id: row.capacity
                for row in session.scalars(stmt)
                if row.capacity is not None
            }

    def fetch_persisted_custom_slots(self, scope: SchedulingScope) -> list[SlotDefinition]:
        stmt = self._in_scope(
            select(ScheduledBreak).where(
                ScheduledBreak.user_id.is_(None),
                ScheduledBreak.std_slot_id.is_(None),
            ),
            scope,
        ).order_by(ScheduledBreak.id)
        with self._session() as session:
            return [
                SlotDefinition(
                    id=str(row.id),
                    start_time=_stored_time(row.break_start_time) or "",
                    duration_minutes=row.break_duration_minutes or 0,
                    capacity=row.capacity or 2,
                    break_label=row.break_label or CUSTOM_LABEL,
                    origin=SlotOrigin.PERSISTED_CUSTOM,
                    break_code=row.break_type or "custom",
                    location=row.location,
                )
                for row in session.scalars(stmt)
            ]

    def fetch_persisted_assignments(self, scope: SchedulingScope) -> list[Assignment]:
        stmt = self._in_scope(
            select(ScheduledBreak, StaffProfile)
            .outerjoin(StaffProfile, StaffProfile.id == ScheduledBreak.user_id)
            .where(ScheduledBreak.user_id.is_not(None)),
            scope,
        ).order_by(ScheduledBreak.id)
        with self._session() as session:
            return [
                Assignment(
                    id=str(row.id),
                    slot_id=None,
                    user_id=row.user_id,
                    user_name=profile.full_name if profile else row.user_id,
                    shift_type=scope.shift_type,
                    date=row.date,
                    location=row.location,
                    start_time=_stored_time(row.break_start_time),
                    duration_minutes=row.break_duration_minutes,
                    break_code=row.break_type,
                )
                for row, profile in session.execute(stmt)
            ]

    def delete_assignments(self, scope: SchedulingScope) -> int:
        stmt = self._in_scope(
            delete(ScheduledBreak).where(ScheduledBreak.user_id.is_not(None)), scope
        )
        with self._session() as session:
            result = session.execute(stmt)
            return result.rowcount or 0

    def insert_assignments(self, assignments: list[Assignment]) -> list[Assignment]:
        with self._session() as session:
            rows = [
                ScheduledBreak(
                    user_id=a.user_id,
                    date=a.date,
                    shift_type=a.shift_type.value,
                    location=a.location,
                    break_start_time=a.start_time,
                    break_duration_minutes=a.duration_minutes,
                    break_type=a.break_code,
                )
                for a in assignments
            ]
            session.add_all(rows)
            session.flush()
            return [
                Assignment(
                    id=str(row.id),
                    slot_id=a.slot_id,
                    user_id=a.user_id,
                    user_name=a.user_name,
                    shift_type=a.shift_type,
                    date=a.date,
                    location=a.location,
                    start_time=a.start_time,
                    duration_minutes=a.duration_minutes,
                    break_code=a.break_code,
                )
                for row, a in zip(rows, assignments)
            ]

    def insert_custom_slots(
        self, scope: SchedulingScope, slots: list[SlotDefinition]
    ) -> list[SlotDefinition]:
        with self._session() as session:
            rows = [
                ScheduledBreak(
                    user_id=None,
                    std_slot_id=None,
                    date=scope.date,
                    shift_type=scope.shift_type.value,
                    location=slot.location or scope.location,
                    break_start_time=slot.start_time,
                    break_duration_minutes=slot.duration_minutes,
                    break_type=slot.break_code,
                    break_label=slot.break_label,
                    capacity=slot.capacity,
                )
                for slot in slots
            ]
            session.add_all(rows)
            session.flush()
            return [
                slot.with_changes(
                    id=str(row.id),
                    origin=SlotOrigin.PERSISTED_CUSTOM,
                    location=row.location,
                )
                for row, slot in zip(rows, slots)
            ]

    def update_custom_slots(self, scope: SchedulingScope, slots: list[SlotDefinition]) -> None:
        with self._session() as session:
            for slot in slots:
                row_id = _row_id(slot.id)
                row = session.get(ScheduledBreak, row_id) if row_id is not None else None
                if row is None or row.user_id is not None or row.std_slot_id is not None:
                    logger.warning("Custom slot %s not found for update", slot.id)
                    continue
                row.break_start_time = slot.start_time
                row.break_duration_minutes = slot.duration_minutes
                row.break_type = slot.break_code
                row.break_label = slot.break_label
                row.capacity = slot.capacity

    def delete_custom_slot(self, slot_id: str) -> bool:
        row_id = _row_id(slot_id)
        if row_id is None:
            return False
        with self._session() as session:
            row = session.get(ScheduledBreak, row_id)
            if row is None or row.user_id is not None or row.std_slot_id is not None:
                return False
            session.delete(row)
            return True

    def upsert_slot_overrides(self, scope: SchedulingScope, overrides: dict[str, int]) -> None:
        with self._session() as session:
            for std_slot_id, capacity in overrides.items():
                stmt = self._in_scope(
                    select(ScheduledBreak).where(
                        ScheduledBreak.user_id.is_(None),
                        ScheduledBreak.std_slot_id == std_slot_id,
                    ),
                    scope,
                )
                row = session.scalars(stmt).first()
                if row is None:
                    row = ScheduledBreak(
                        user_id=None,
                        std_slot_id=std_slot_id,
                        date=scope.date,
                        shift_type=scope.shift_type.value,
                        location=scope.location,
                    )
                    session.add(row)
                row.capacity = capacity
