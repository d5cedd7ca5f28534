from __future__ import annotations
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text
from .db import Base


class DocumentRow(Base):
	__tablename__ = "documents"
	# Every entity lives in one table, keyed by (collection, doc_id)
	collection = Column(String(64), primary_key=True)
	doc_id = Column(String(64), primary_key=True, index=True)
	data = Column(Text, nullable=False)  # JSON string snapshot
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
