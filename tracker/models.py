# tracker/models.py
from sqlalchemy import Column, String, DateTime, Text
import datetime

from tracker.db import Base


class KeyValueEntry(Base):
    """One storage key of the client cache (the browser local-storage equivalent)."""
    __tablename__ = "kv_entries"

    key = Column(String(128), primary_key=True)
    value_json = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=datetime.datetime.utcnow, onupdate=datetime.datetime.utcnow)
