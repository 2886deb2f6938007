"""Append-only conversation log, scoped to tenants."""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from relay.errors import PersistenceError
from relay.models import INCOMING, OUTGOING, Message, Tenant, utcnow


class ConversationLog:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def append(
        self,
        tenant_id: int,
        from_number: str,
        to_number: str,
        body: str,
        direction: str,
        timestamp: datetime | None = None,
        metadata: dict | None = None,
    ) -> Message:
        """Insert one message row. Never updates an existing row."""
        if direction not in (INCOMING, OUTGOING):
            raise ValueError(f"unknown direction {direction!r}")

        msg = Message(
            tenant_id=tenant_id,
            from_number=from_number,
            to_number=to_number,
            body=body,
            direction=direction,
            timestamp=timestamp or utcnow(),
            meta=dict(metadata or {}),
        )
        with self._session_factory() as db:
            try:
                db.add(msg)
                db.commit()
                db.refresh(msg)
            except SQLAlchemyError as e:
                db.rollback()
                raise PersistenceError(
                    f"could not store {direction} message for project {tenant_id}: {e}"
                ) from e
        return msg

    def list_by_tenant(self, tenant_id: int) -> list[Message]:
        """Messages of one tenant, newest first."""
        try:
            with self._session_factory() as db:
                return list(
                    db.execute(
                        select(Message)
                        .where(Message.tenant_id == tenant_id)
                        .order_by(Message.timestamp.desc(), Message.id.desc())
                    ).scalars()
                )
        except SQLAlchemyError as e:
            raise PersistenceError(f"conversation read failed: {e}") from e

    def list_all(self) -> list[tuple[Message, str]]:
        """Every message paired with its tenant's name, newest first."""
        try:
            with self._session_factory() as db:
                rows = db.execute(
                    select(Message, Tenant.name)
                    .join(Tenant, Message.tenant_id == Tenant.id)
                    .order_by(Message.timestamp.desc(), Message.id.desc())
                ).all()
        except SQLAlchemyError as e:
            raise PersistenceError(f"conversation read failed: {e}") from e
        return [(m, name) for m, name in rows]

    def count_by_tenant(self) -> list[tuple[int, str, int]]:
        """(tenant id, tenant name, message count), tenants without messages included."""
        try:
            with self._session_factory() as db:
                rows = db.execute(
                    select(Tenant.id, Tenant.name, func.count(Message.id))
                    .outerjoin(Message, Message.tenant_id == Tenant.id)
                    .group_by(Tenant.id, Tenant.name, Tenant.created_at)
                    .order_by(Tenant.created_at.desc(), Tenant.id.desc())
                ).all()
        except SQLAlchemyError as e:
            raise PersistenceError(f"analytics query failed: {e}") from e
        return [(tid, name, count) for tid, name, count in rows]
