# clinic_api/models/base.py
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import DateTime, Enum, TypeDecorator, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from clinic_api.utils.datetime_utils import as_utc, utc_now


class Base(DeclarativeBase):
    """
    Base class for all ORM models.
    """

    pass


class UTCDateTime(TypeDecorator):
    """
    Stores datetimes as UTC and always hands back tz-aware UTC values,
    including on backends that drop the offset (SQLite).
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return as_utc(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return as_utc(value)


class RecordState(str, PyEnum):
    ACTIVE = "ACTIVE"
    DEACTIVATED = "DEACTIVATED"


class LifecycleMixin:
    """
    Soft delete as an explicit lifecycle state. Lookups in
    services/lookups.py filter DEACTIVATED rows out.
    """

    state: Mapped[RecordState] = mapped_column(
        Enum(RecordState, name="record_state_enum"),
        nullable=False,
        default=RecordState.ACTIVE,
        server_default=text("'ACTIVE'"),
    )

    @property
    def is_active(self) -> bool:
        return self.state == RecordState.ACTIVE


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utc_now,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
        server_default=text("CURRENT_TIMESTAMP"),
    )
