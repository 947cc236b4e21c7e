"""
Database models for PaperChat persistence.

SCHEMA OVERVIEW
===============================================================================

TABLE: preferences - Durable key-value blobs
-------------------------------------------------------------------------------
key               VARCHAR       PRIMARY KEY        "paperchat.apiKey", "paperchat.history.12_34"
value             TEXT          NOT NULL           Plain string, JSON-encoded when structured
updated_at        TIMESTAMP     DEFAULT NOW()

Conversation logs are stored as JSON arrays of {role, content, timestamp}
under "paperchat.history.<conversation_id>".
"""
from sqlalchemy import Column, String, Text, DateTime, func
from .database import Base


class Preference(Base):
    """One key-value entry (settings and conversation logs)."""
    __tablename__ = "preferences"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
