from sqlalchemy import Column, DateTime, event
from datetime import datetime, timezone


class AuditMixin:
    """
    Mixin class that provides automatic timestamp fields for database models.

    Automatically tracks:
    - created_at: Timestamp when the record was created
    - updated_at: Timestamp when the record was last updated

    Usage:
        class MyModel(AuditMixin, Base):
            __tablename__ = "my_table"
            id = Column(Integer, primary_key=True)
            # ... other fields
    """
    __tablename__ = None

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        comment="Timestamp when this record was created"
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=True,
        comment="Timestamp when this record was last updated"
    )


@event.listens_for(AuditMixin, "before_insert", propagate=True)
def receive_before_insert(mapper, connection, target):
    """
    Set created_at before inserting a new record, unless already set.
    """
    if not target.created_at:
        target.created_at = datetime.now(timezone.utc)


@event.listens_for(AuditMixin, "before_update", propagate=True)
def receive_before_update(mapper, connection, target):
    """
    Set updated_at on every ORM-level update.

    Bulk UPDATE statements (such as the conditional alert-marker write)
    bypass this listener and set updated_at themselves.
    """
    target.updated_at = datetime.now(timezone.utc)
