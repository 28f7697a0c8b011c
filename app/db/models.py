"""Database models."""
from datetime import datetime
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Company(Base):
    """Tenant model. All call and chat data is scoped by company."""

    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    whatsapp_number = Column(String, nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    calls = relationship("Call", back_populates="company")
    chats = relationship("WhatsAppChat", back_populates="company")


class Call(Base):
    """Phone call model."""

    __tablename__ = "calls"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)  # Operator id from the identity provider
    phone_number = Column(String, nullable=True)
    direction = Column(String, default="outbound", nullable=False)  # inbound, outbound
    call_sid = Column(String, unique=True, index=True, nullable=True)  # Twilio call SID
    status = Column(String, default="initiated", nullable=False)
    duration = Column(Integer, default=0, nullable=False)
    transcript = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    ended_at = Column(DateTime, nullable=True)

    # Relationships
    company = relationship("Company", back_populates="calls")
    suggestions = relationship("Suggestion", back_populates="call")


class WhatsAppChat(Base):
    """WhatsApp conversation with one customer."""

    __tablename__ = "whatsapp_chats"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    user_id = Column(String, nullable=True)  # Assigned operator, None when unassigned
    customer_phone = Column(String, nullable=False, index=True)
    customer_name = Column(String, nullable=True)
    unread_count = Column(Integer, default=0, nullable=False)
    last_message_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_message_preview = Column(String, default="", nullable=False)

    # Relationships
    company = relationship("Company", back_populates="chats")
    messages = relationship(
        "WhatsAppMessage", back_populates="chat", cascade="all, delete-orphan"
    )
    suggestions = relationship("Suggestion", back_populates="chat")


class WhatsAppMessage(Base):
    """Single WhatsApp message."""

    __tablename__ = "whatsapp_messages"

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(Integer, ForeignKey("whatsapp_chats.id"), nullable=False, index=True)
    wa_message_id = Column(String, nullable=True, index=True)  # Twilio MessageSid
    direction = Column(String, nullable=False)  # incoming, outgoing
    status = Column(String, default="delivered", nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    chat = relationship("WhatsAppChat", back_populates="messages")


class Suggestion(Base):
    """AI suggestion generated for a call or chat."""

    __tablename__ = "suggestions"

    id = Column(Integer, primary_key=True, index=True)
    call_id = Column(Integer, ForeignKey("calls.id"), nullable=True, index=True)
    chat_id = Column(Integer, ForeignKey("whatsapp_chats.id"), nullable=True, index=True)
    user_id = Column(String, nullable=False)
    type = Column(String, default="general", nullable=False)
    content = Column(Text, nullable=False)
    confidence = Column(Float, nullable=False)
    trigger_text = Column(Text, nullable=True)
    provider = Column(String, nullable=True)
    latency_ms = Column(Integer, nullable=True)
    used = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    used_at = Column(DateTime, nullable=True)

    # Relationships
    call = relationship("Call", back_populates="suggestions")
    chat = relationship("WhatsAppChat", back_populates="suggestions")
