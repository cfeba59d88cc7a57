from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from support_desk.domain.enums import MessageStatus, UrgencyLevel


class Base(DeclarativeBase):
    pass


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class Customer(Base):
    __tablename__ = "customers"

    # Supplied by the upstream channel, never generated here.
    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    # Conversation owner; claims compare-and-set this column.
    current_agent_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("agents.id"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class Agent(Base):
    __tablename__ = "agents"
    __table_args__ = (UniqueConstraint("name", name="uq_agent_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class Message(Base):
    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("customers.user_id"), index=True, nullable=False
    )
    message_body: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True, nullable=False)
    is_from_customer: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    agent_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("agents.id"), nullable=True)
    current_agent_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("agents.id"), nullable=True, index=True
    )
    urgency_level: Mapped[UrgencyLevel] = mapped_column(
        Enum(
            UrgencyLevel,
            name="urgency_level",
            values_callable=_enum_values,
            native_enum=False,
            create_constraint=True,
        ),
        nullable=False,
        default=UrgencyLevel.NORMAL,
        index=True,
    )
    status: Mapped[MessageStatus] = mapped_column(
        Enum(
            MessageStatus,
            name="message_status",
            values_callable=_enum_values,
            native_enum=False,
            create_constraint=True,
        ),
        nullable=False,
        default=MessageStatus.PENDING,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
