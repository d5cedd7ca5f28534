"""Typed loading and saving of classroom entities on top of the document store."""

from __future__ import annotations

import logging
from typing import List, Type, TypeVar

from pydantic import ValidationError

from ..core.entities import Assignment, AssignmentGroup, ClassGroup, Submission, User, UserRole
from ..errors import NotFoundError
from ..store import ASSIGNMENTS, CLASSES, FOLDERS, SUBMISSIONS, USERS, DocumentStore


logger = logging.getLogger(__name__)

T = TypeVar("T")

_LABELS = {
	CLASSES: "Class",
	USERS: "User",
	FOLDERS: "Folder",
	ASSIGNMENTS: "Assignment",
	SUBMISSIONS: "Submission",
}


def load(store: DocumentStore, collection: str, doc_id: str, model: Type[T]) -> T:
	doc = store.get(collection, doc_id)
	if doc is None:
		raise NotFoundError(f"{_LABELS.get(collection, collection)} {doc_id} not found")
	return model.model_validate(doc)


def load_all(store: DocumentStore, collection: str, model: Type[T], **filters) -> List[T]:
	items = []
	for doc in store.list(collection, **filters):
		try:
			items.append(model.model_validate(doc))
		except ValidationError as e:
			# One corrupt document must not hide the rest of the collection
			logger.warning("Skipping unreadable %s document %s: %s", collection, doc.get("id"), e)
	return items


def class_exists(store: DocumentStore, class_id: str) -> bool:
	return store.get(CLASSES, class_id) is not None


def load_class(store: DocumentStore, class_id: str) -> ClassGroup:
	return load(store, CLASSES, class_id, ClassGroup)


def load_assignment(store: DocumentStore, assignment_id: str) -> Assignment:
	return load(store, ASSIGNMENTS, assignment_id, Assignment)


def load_submission(store: DocumentStore, submission_id: str) -> Submission:
	return load(store, SUBMISSIONS, submission_id, Submission)


def load_folder(store: DocumentStore, folder_id: str) -> AssignmentGroup:
	return load(store, FOLDERS, folder_id, AssignmentGroup)


def class_roster(store: DocumentStore, class_id: str) -> List[User]:
	return [
		u
		for u in load_all(store, USERS, User, role=UserRole.STUDENT.value)
		if class_id in u.enrolled_class_ids
	]
