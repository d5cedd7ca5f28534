from __future__ import annotations
import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .db import Base, SessionLocal, engine
from .errors import NotFoundError, PersistenceError
from .models import DocumentRow


logger = logging.getLogger(__name__)

Snapshot = List[Dict[str, Any]]
Listener = Callable[[Snapshot], None]

CLASSES = "classes"
USERS = "users"
FOLDERS = "assignmentGroups"
ASSIGNMENTS = "assignments"
SUBMISSIONS = "submissions"


@dataclass
class WriteOp:
	kind: str  # "set" | "update" | "delete"
	collection: str
	doc_id: str
	data: Dict[str, Any] = field(default_factory=dict)


def _matches(doc: Dict[str, Any], filters: Dict[str, Any]) -> bool:
	return all(doc.get(k) == v for k, v in filters.items())


class DocumentStore:
	"""Keyed JSON documents grouped into collections.

	Partial updates merge into the stored document. Listeners registered with
	``subscribe`` receive the full (filtered) collection after every commit
	that touched it.
	"""

	def __init__(self, session_factory=SessionLocal) -> None:
		self._session_factory = session_factory
		self._listeners: Dict[str, List[Tuple[Dict[str, Any], Listener]]] = {}

	# ---- reads ----

	def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
		with self._session_factory() as db:
			row = db.get(DocumentRow, (collection, doc_id))
			return json.loads(row.data) if row else None

	def list(self, collection: str, **filters: Any) -> Snapshot:
		with self._session_factory() as db:
			rows = db.execute(
				select(DocumentRow).where(DocumentRow.collection == collection).order_by(DocumentRow.created_at)
			).scalars().all()
			docs = [json.loads(r.data) for r in rows]
		return [d for d in docs if _matches(d, filters)]

	# ---- writes ----

	def create(self, collection: str, data: Dict[str, Any]) -> str:
		doc_id = uuid.uuid4().hex
		self.set(collection, doc_id, data)
		return doc_id

	def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
		self.batch([WriteOp("set", collection, doc_id, data)])

	def update(self, collection: str, doc_id: str, partial: Dict[str, Any]) -> None:
		self.batch([WriteOp("update", collection, doc_id, partial)])

	def delete(self, collection: str, doc_id: str) -> None:
		self.batch([WriteOp("delete", collection, doc_id)])

	def batch(self, operations: Iterable[WriteOp]) -> None:
		"""Apply every operation in one transaction, or none of them."""
		ops = list(operations)
		if not ops:
			return
		db: Session = self._session_factory()
		try:
			for op in ops:
				self._apply(db, op)
			db.commit()
		except NotFoundError:
			db.rollback()
			raise
		except (SQLAlchemyError, TypeError, ValueError) as e:
			db.rollback()
			logger.exception("Batch of %d writes failed and was rolled back", len(ops))
			raise PersistenceError(f"Failed to save changes: {e.__class__.__name__}") from e
		finally:
			db.close()
		self._notify({op.collection for op in ops})

	def _apply(self, db: Session, op: WriteOp) -> None:
		row = db.get(DocumentRow, (op.collection, op.doc_id))
		if op.kind == "delete":
			if row is not None:
				db.delete(row)
			return
		if op.kind == "set":
			data = {**op.data, "id": op.doc_id}
		elif op.kind == "update":
			if row is None:
				raise NotFoundError(f"{op.collection}/{op.doc_id} does not exist")
			data = {**json.loads(row.data), **op.data, "id": op.doc_id}
		else:
			raise ValueError(f"Unknown write kind: {op.kind}")
		payload = json.dumps(data, default=str)
		if row is None:
			db.add(DocumentRow(collection=op.collection, doc_id=op.doc_id, data=payload))
		else:
			row.data = payload
		db.flush()

	# ---- subscriptions ----

	def subscribe(self, collection: str, callback: Listener, **filters: Any) -> Callable[[], None]:
		entry = (filters, callback)
		self._listeners.setdefault(collection, []).append(entry)
		callback(self.list(collection, **filters))

		def unsubscribe() -> None:
			listeners = self._listeners.get(collection, [])
			if entry in listeners:
				listeners.remove(entry)

		return unsubscribe

	def _notify(self, collections: Iterable[str]) -> None:
		for collection in collections:
			for filters, callback in list(self._listeners.get(collection, [])):
				try:
					callback(self.list(collection, **filters))
				except Exception:
					logger.exception("Subscriber on %s failed", collection)


_store: Optional[DocumentStore] = None


def init_store() -> DocumentStore:
	global _store
	Base.metadata.create_all(bind=engine)
	_store = DocumentStore(SessionLocal)
	return _store


def get_store() -> DocumentStore:
	if _store is None:
		return init_store()
	return _store
