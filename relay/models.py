from datetime import datetime, timezone

from sqlalchemy import (
    JSON, Column, DateTime, Enum, ForeignKey, Integer, String, Text
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

INCOMING = "incoming"
OUTGOING = "outgoing"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Tenant(Base):
    __tablename__ = "tenants"
    id                  = Column(Integer, primary_key=True, autoincrement=True)
    name                = Column(String(255), nullable=False)
    routing_key         = Column(String(50), unique=True, nullable=False, index=True)
    delivery_credential = Column(Text, nullable=True)
    system_prompt       = Column(Text, nullable=True)
    created_at          = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at          = Column(DateTime(timezone=True), default=utcnow,
                                 onupdate=utcnow, nullable=False)

    messages = relationship(
        "Message",
        back_populates="tenant",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def has_delivery_credential(self) -> bool:
        return bool(self.delivery_credential)


class Message(Base):
    __tablename__ = "messages"
    id          = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id   = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"),
                         nullable=False, index=True)
    from_number = Column(String(50), nullable=False)
    to_number   = Column(String(50), nullable=False)
    body        = Column(Text, nullable=False)
    direction   = Column(Enum(INCOMING, OUTGOING, name="message_direction"),
                         nullable=False)
    timestamp   = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    # "metadata" is reserved on declarative classes
    meta        = Column("metadata", JSON, default=dict, nullable=False)

    tenant = relationship("Tenant", back_populates="messages")
