"""Tenant directory: routing-key lookup plus record management for tenants."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from relay.errors import PersistenceError, RoutingKeyConflict, TenantNotFound
from relay.models import Tenant

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "routing_key", "delivery_credential", "system_prompt")


class TenantDirectory:
    """
    Every call opens its own short-lived session, so one directory can be
    shared by concurrent requests and background tasks.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def resolve(self, routing_key: str) -> Tenant | None:
        """Tenant bound to a WhatsApp phone_number_id, or None."""
        try:
            with self._session_factory() as db:
                return db.execute(
                    select(Tenant).where(Tenant.routing_key == routing_key)
                ).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError(f"tenant lookup failed: {e}") from e

    def get_by_id(self, tenant_id: int) -> Tenant:
        try:
            with self._session_factory() as db:
                tenant = db.get(Tenant, tenant_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"tenant lookup failed: {e}") from e
        if tenant is None:
            raise TenantNotFound(f"Project {tenant_id} not found")
        return tenant

    def list(self) -> list[Tenant]:
        try:
            with self._session_factory() as db:
                return list(
                    db.execute(
                        select(Tenant).order_by(Tenant.created_at.desc(), Tenant.id.desc())
                    ).scalars()
                )
        except SQLAlchemyError as e:
            raise PersistenceError(f"tenant listing failed: {e}") from e

    def create(
        self,
        name: str,
        routing_key: str,
        delivery_credential: str | None = None,
        system_prompt: str | None = None,
    ) -> Tenant:
        try:
            with self._session_factory() as db:
                self._ensure_routing_key_free(db, routing_key)
                tenant = Tenant(
                    name=name,
                    routing_key=routing_key,
                    delivery_credential=delivery_credential or None,
                    system_prompt=system_prompt or None,
                )
                db.add(tenant)
                db.commit()
                db.refresh(tenant)
        except SQLAlchemyError as e:
            raise self._write_error(e, routing_key) from e
        logger.info("Created project %s for routing key %s", tenant.id, routing_key)
        return tenant

    def update(self, tenant_id: int, **fields) -> Tenant:
        """Apply the given fields; unknown field names are a programming error."""
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise TypeError(f"cannot update {sorted(unknown)}")
        for required in ("name", "routing_key"):
            if required in fields and not fields[required]:
                raise ValueError(f"{required} cannot be empty")

        new_key = fields.get("routing_key")
        try:
            with self._session_factory() as db:
                tenant = db.get(Tenant, tenant_id)
                if tenant is None:
                    raise TenantNotFound(f"Project {tenant_id} not found")

                if new_key is not None and new_key != tenant.routing_key:
                    self._ensure_routing_key_free(db, new_key)
                    logger.warning(
                        "Project %s routing key %s -> %s; inbound traffic moves with it",
                        tenant_id, tenant.routing_key, new_key,
                    )

                for field, value in fields.items():
                    if field in ("delivery_credential", "system_prompt"):
                        value = value or None
                    setattr(tenant, field, value)
                db.commit()
                db.refresh(tenant)
        except SQLAlchemyError as e:
            raise self._write_error(e, new_key) from e
        return tenant

    def delete(self, tenant_id: int) -> None:
        """Delete a tenant; its conversation log goes with it."""
        try:
            with self._session_factory() as db:
                tenant = db.get(Tenant, tenant_id)
                if tenant is None:
                    raise TenantNotFound(f"Project {tenant_id} not found")
                db.delete(tenant)
                db.commit()
        except SQLAlchemyError as e:
            raise self._write_error(e) from e
        logger.info("Deleted project %s", tenant_id)

    @staticmethod
    def _ensure_routing_key_free(db: Session, routing_key: str):
        taken = db.execute(
            select(Tenant.id).where(Tenant.routing_key == routing_key)
        ).first()
        if taken:
            raise RoutingKeyConflict(
                f"Routing key {routing_key} already belongs to project {taken.id}"
            )

    @staticmethod
    def _write_error(e: SQLAlchemyError, routing_key: str | None = None) -> Exception:
        # the session context rolls back on exit
        if isinstance(e, IntegrityError) and routing_key and "routing_key" in str(e.orig):
            # lost a race against a concurrent create/update
            return RoutingKeyConflict(f"Routing key {routing_key} already in use")
        return PersistenceError(f"tenant write failed: {e}")
