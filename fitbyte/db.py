"""
Database abstraction for Postgres and an in-memory test implementation.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
    create_engine,
    delete,
    event,
    select,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from fitbyte.errors import DuplicateEmailError, UnknownUserError

USER_PROFILE_FIELDS = frozenset(
    {
        "preference",
        "weight_unit",
        "height_unit",
        "weight",
        "height",
        "name",
        "image_uri",
    }
)
ACTIVITY_MUTABLE_FIELDS = frozenset(
    {"activity_type", "done_at", "duration_in_minutes", "calories_burned"}
)

DEFAULT_ACTIVITY_LIMIT = 5


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back out.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DbClient(Protocol):
    """Interface for database access."""

    def create_user(self, email: str, password_hash: str) -> "UserRecord":
        ...

    def get_user_by_email(self, email: str) -> Optional["UserRecord"]:
        ...

    def update_user(
        self, user_id: uuid.UUID, changes: Dict[str, Any]
    ) -> Optional["UserRecord"]:
        ...

    def create_activity(
        self,
        user_id: uuid.UUID,
        *,
        activity_type: str,
        done_at: datetime,
        duration_in_minutes: int,
        calories_burned: int,
    ) -> "ActivityRecord":
        ...

    def get_activity(
        self, user_id: uuid.UUID, activity_id: uuid.UUID
    ) -> Optional["ActivityRecord"]:
        ...

    def list_activities(
        self, user_id: uuid.UUID, filters: "ActivityFilter"
    ) -> list["ActivityRecord"]:
        ...

    def update_activity(
        self, user_id: uuid.UUID, activity_id: uuid.UUID, changes: Dict[str, Any]
    ) -> Optional["ActivityRecord"]:
        ...

    def delete_activity(self, user_id: uuid.UUID, activity_id: uuid.UUID) -> bool:
        ...


@dataclass
class UserRecord:
    user_id: uuid.UUID
    email: str
    password: str
    preference: Optional[str] = None
    weight_unit: Optional[str] = None
    height_unit: Optional[str] = None
    weight: Optional[float] = None
    height: Optional[float] = None
    name: Optional[str] = None
    image_uri: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class ActivityRecord:
    activity_id: uuid.UUID
    user_id: uuid.UUID
    activity_type: str
    done_at: datetime
    duration_in_minutes: int
    calories_burned: int
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class ActivityFilter:
    """Query options for listing a user's activities."""

    limit: int = DEFAULT_ACTIVITY_LIMIT
    offset: int = 0
    activity_type: Optional[str] = None
    done_at_from: Optional[datetime] = None
    done_at_to: Optional[datetime] = None
    calories_burned_min: Optional[int] = None
    calories_burned_max: Optional[int] = None

    def __post_init__(self):
        self.done_at_from = _as_utc(self.done_at_from)
        self.done_at_to = _as_utc(self.done_at_to)

    def matches(self, activity: ActivityRecord) -> bool:
        if self.activity_type and activity.activity_type != self.activity_type:
            return False
        if self.done_at_from and activity.done_at < self.done_at_from:
            return False
        if self.done_at_to and activity.done_at > self.done_at_to:
            return False
        if (
            self.calories_burned_min is not None
            and activity.calories_burned < self.calories_burned_min
        ):
            return False
        if (
            self.calories_burned_max is not None
            and activity.calories_burned > self.calories_burned_max
        ):
            return False
        return True


def _check_fields(changes: Dict[str, Any], allowed: frozenset) -> None:
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Unsupported fields: {', '.join(sorted(unknown))}")


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[uuid.UUID, UserRecord] = {}
        self.activities: Dict[uuid.UUID, ActivityRecord] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.users.clear()
        self.activities.clear()

    def create_user(self, email: str, password_hash: str) -> UserRecord:
        if self.get_user_by_email(email) is not None:
            raise DuplicateEmailError(email)
        now = utcnow()
        record = UserRecord(
            user_id=uuid.uuid4(),
            email=email,
            password=password_hash,
            created_at=now,
            updated_at=now,
        )
        self.users[record.user_id] = record
        return replace(record)

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        for user in self.users.values():
            if user.email == email:
                return replace(user)
        return None

    def update_user(
        self, user_id: uuid.UUID, changes: Dict[str, Any]
    ) -> Optional[UserRecord]:
        _check_fields(changes, USER_PROFILE_FIELDS)
        user = self.users.get(user_id)
        if not user:
            return None
        for key, value in changes.items():
            setattr(user, key, value)
        user.updated_at = utcnow()
        return replace(user)

    def create_activity(
        self,
        user_id: uuid.UUID,
        *,
        activity_type: str,
        done_at: datetime,
        duration_in_minutes: int,
        calories_burned: int,
    ) -> ActivityRecord:
        if user_id not in self.users:
            raise UnknownUserError(user_id)
        now = utcnow()
        record = ActivityRecord(
            activity_id=uuid.uuid4(),
            user_id=user_id,
            activity_type=activity_type,
            done_at=_as_utc(done_at),
            duration_in_minutes=duration_in_minutes,
            calories_burned=calories_burned,
            created_at=now,
            updated_at=now,
        )
        self.activities[record.activity_id] = record
        return replace(record)

    def get_activity(
        self, user_id: uuid.UUID, activity_id: uuid.UUID
    ) -> Optional[ActivityRecord]:
        activity = self.activities.get(activity_id)
        if not activity or activity.user_id != user_id:
            return None
        return replace(activity)

    def list_activities(
        self, user_id: uuid.UUID, filters: ActivityFilter
    ) -> list[ActivityRecord]:
        items = [
            activity
            for activity in self.activities.values()
            if activity.user_id == user_id and filters.matches(activity)
        ]
        items.sort(key=lambda a: a.done_at, reverse=True)
        page = items[filters.offset : filters.offset + filters.limit]
        return [replace(activity) for activity in page]

    def update_activity(
        self, user_id: uuid.UUID, activity_id: uuid.UUID, changes: Dict[str, Any]
    ) -> Optional[ActivityRecord]:
        _check_fields(changes, ACTIVITY_MUTABLE_FIELDS)
        activity = self.activities.get(activity_id)
        if not activity or activity.user_id != user_id:
            return None
        for key, value in changes.items():
            if key == "done_at":
                value = _as_utc(value)
            setattr(activity, key, value)
        activity.updated_at = utcnow()
        return replace(activity)

    def delete_activity(self, user_id: uuid.UUID, activity_id: uuid.UUID) -> bool:
        activity = self.activities.get(activity_id)
        if not activity or activity.user_id != user_id:
            return False
        del self.activities[activity_id]
        return True


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str, *, create_schema: bool = False):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        if create_schema:
            Base.metadata.create_all(self.engine)

    def _to_user_record(self, row: "UserRow") -> UserRecord:
        return UserRecord(
            user_id=row.user_id,
            email=row.email,
            password=row.password,
            preference=row.preference,
            weight_unit=row.weight_unit,
            height_unit=row.height_unit,
            weight=row.weight,
            height=row.height,
            name=row.name,
            image_uri=row.image_uri,
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )

    def _to_activity_record(self, row: "ActivityRow") -> ActivityRecord:
        return ActivityRecord(
            activity_id=row.activity_id,
            user_id=row.user_id,
            activity_type=row.activity_type,
            done_at=_as_utc(row.done_at),
            duration_in_minutes=row.duration_in_minutes,
            calories_burned=row.calories_burned,
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )

    def create_user(self, email: str, password_hash: str) -> UserRecord:
        now = utcnow()
        with self.Session() as session:
            row = UserRow(
                user_id=uuid.uuid4(),
                email=email,
                password=password_hash,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateEmailError(email) from exc
            session.refresh(row)
            return self._to_user_record(row)

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow).where(UserRow.email == email)
            row = session.execute(stmt).scalar_one_or_none()
            if not row:
                return None
            return self._to_user_record(row)

    def update_user(
        self, user_id: uuid.UUID, changes: Dict[str, Any]
    ) -> Optional[UserRecord]:
        _check_fields(changes, USER_PROFILE_FIELDS)
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            if not row:
                return None
            for key, value in changes.items():
                setattr(row, key, value)
            row.updated_at = utcnow()
            session.commit()
            session.refresh(row)
            return self._to_user_record(row)

    def create_activity(
        self,
        user_id: uuid.UUID,
        *,
        activity_type: str,
        done_at: datetime,
        duration_in_minutes: int,
        calories_burned: int,
    ) -> ActivityRecord:
        now = utcnow()
        with self.Session() as session:
            row = ActivityRow(
                activity_id=uuid.uuid4(),
                user_id=user_id,
                activity_type=activity_type,
                done_at=_as_utc(done_at),
                duration_in_minutes=duration_in_minutes,
                calories_burned=calories_burned,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise UnknownUserError(user_id) from exc
            session.refresh(row)
            return self._to_activity_record(row)

    def _owned_activity(
        self, session: Session, user_id: uuid.UUID, activity_id: uuid.UUID
    ) -> Optional["ActivityRow"]:
        stmt = select(ActivityRow).where(
            ActivityRow.activity_id == activity_id,
            ActivityRow.user_id == user_id,
        )
        return session.execute(stmt).scalar_one_or_none()

    def get_activity(
        self, user_id: uuid.UUID, activity_id: uuid.UUID
    ) -> Optional[ActivityRecord]:
        with self.Session() as session:
            row = self._owned_activity(session, user_id, activity_id)
            if not row:
                return None
            return self._to_activity_record(row)

    def list_activities(
        self, user_id: uuid.UUID, filters: ActivityFilter
    ) -> list[ActivityRecord]:
        stmt = select(ActivityRow).where(ActivityRow.user_id == user_id)
        if filters.activity_type:
            stmt = stmt.where(ActivityRow.activity_type == filters.activity_type)
        if filters.done_at_from:
            stmt = stmt.where(ActivityRow.done_at >= filters.done_at_from)
        if filters.done_at_to:
            stmt = stmt.where(ActivityRow.done_at <= filters.done_at_to)
        if filters.calories_burned_min is not None:
            stmt = stmt.where(
                ActivityRow.calories_burned >= filters.calories_burned_min
            )
        if filters.calories_burned_max is not None:
            stmt = stmt.where(
                ActivityRow.calories_burned <= filters.calories_burned_max
            )
        stmt = (
            stmt.order_by(ActivityRow.done_at.desc())
            .limit(filters.limit)
            .offset(filters.offset)
        )
        with self.Session() as session:
            rows = session.execute(stmt).scalars().all()
            return [self._to_activity_record(row) for row in rows]

    def update_activity(
        self, user_id: uuid.UUID, activity_id: uuid.UUID, changes: Dict[str, Any]
    ) -> Optional[ActivityRecord]:
        _check_fields(changes, ACTIVITY_MUTABLE_FIELDS)
        with self.Session() as session:
            row = self._owned_activity(session, user_id, activity_id)
            if not row:
                return None
            for key, value in changes.items():
                if key == "done_at":
                    value = _as_utc(value)
                setattr(row, key, value)
            row.updated_at = utcnow()
            session.commit()
            session.refresh(row)
            return self._to_activity_record(row)

    def delete_activity(self, user_id: uuid.UUID, activity_id: uuid.UUID) -> bool:
        with self.Session() as session:
            result = session.execute(
                delete(ActivityRow).where(
                    ActivityRow.activity_id == activity_id,
                    ActivityRow.user_id == user_id,
                )
            )
            session.commit()
            return bool(result.rowcount)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    user_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String, nullable=False, unique=True)
    password = Column(String, nullable=False)
    preference = Column(String, nullable=True)
    weight_unit = Column(String, nullable=True)
    height_unit = Column(String, nullable=True)
    weight = Column(Float, nullable=True)
    height = Column(Float, nullable=True)
    name = Column(String, nullable=True)
    image_uri = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("idx_users_email", "email"),)


class ActivityRow(Base):
    __tablename__ = "activities"

    activity_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.user_id"), nullable=False)
    activity_type = Column(String, nullable=False)
    done_at = Column(DateTime(timezone=True), nullable=False)
    duration_in_minutes = Column(Integer, nullable=False)
    calories_burned = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_activities_user_id", "user_id"),
        Index("idx_activities_done_at", "done_at"),
        Index("idx_activities_activity_type", "activity_type"),
        Index("idx_activities_calories_burned", "calories_burned"),
        Index("idx_activities_user_done", "user_id", "done_at"),
    )
