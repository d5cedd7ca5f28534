from __future__ import annotations
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from ..core.entities import Assignment, ClassGroup, User, UserRole
from ..core.questions import CamelModel
from ..services.records import class_roster, load_all, load_class
from ..store import ASSIGNMENTS, CLASSES, FOLDERS, SUBMISSIONS, USERS, DocumentStore, WriteOp, get_store

router = APIRouter(prefix="/classes", tags=["classes"])

logger = logging.getLogger(__name__)


class CreateClassRequest(CamelModel):
	name: str
	schedule: str = ""
	description: Optional[str] = None


class AddStudentRequest(CamelModel):
	# Either enrol an existing student or create a new one
	student_id: Optional[str] = None
	name: Optional[str] = None
	access_code: Optional[str] = None


@router.post("", response_model=ClassGroup, status_code=201)
def create_class(req: CreateClassRequest, store: DocumentStore = Depends(get_store)):
	if not req.name.strip():
		raise HTTPException(status_code=400, detail="Class name is required")
	cls = ClassGroup(name=req.name.strip(), schedule=req.schedule, description=req.description)
	store.set(CLASSES, cls.id, cls.to_doc())
	return cls


@router.get("", response_model=List[ClassGroup])
def list_classes(store: DocumentStore = Depends(get_store)):
	return load_all(store, CLASSES, ClassGroup)


@router.delete("/{class_id}", status_code=204)
def delete_class(class_id: str, store: DocumentStore = Depends(get_store)):
	"""Remove a class together with everything it owns, in one batch."""
	load_class(store, class_id)
	ops = [WriteOp("delete", CLASSES, class_id)]
	assignment_ids = [a["id"] for a in store.list(ASSIGNMENTS, classId=class_id)]
	ops += [WriteOp("delete", ASSIGNMENTS, aid) for aid in assignment_ids]
	ops += [WriteOp("delete", FOLDERS, f["id"]) for f in store.list(FOLDERS, classId=class_id)]
	for aid in assignment_ids:
		ops += [WriteOp("delete", SUBMISSIONS, s["id"]) for s in store.list(SUBMISSIONS, assignmentId=aid)]
	for student in class_roster(store, class_id):
		remaining = [c for c in student.enrolled_class_ids if c != class_id]
		ops.append(WriteOp("update", USERS, student.id, {"enrolledClassIds": remaining}))
	store.batch(ops)
	logger.info("Deleted class %s (%d writes)", class_id, len(ops))


@router.post("/{class_id}/students", response_model=User, status_code=201)
def add_student(class_id: str, req: AddStudentRequest, store: DocumentStore = Depends(get_store)):
	load_class(store, class_id)
	if req.student_id:
		doc = store.get(USERS, req.student_id)
		if doc is None:
			raise HTTPException(status_code=404, detail=f"User {req.student_id} not found")
		student = User.model_validate(doc)
		if class_id not in student.enrolled_class_ids:
			store.update(USERS, student.id, {"enrolledClassIds": [*student.enrolled_class_ids, class_id]})
		return User.model_validate(store.get(USERS, student.id))
	if not (req.name or "").strip() or not (req.access_code or "").strip():
		raise HTTPException(status_code=400, detail="Required fields missing")
	student = User(
		role=UserRole.STUDENT,
		name=req.name.strip(),
		access_code=req.access_code.strip(),
		enrolled_class_ids=[class_id],
	)
	store.set(USERS, student.id, student.to_doc())
	return student


@router.delete("/{class_id}/students/{student_id}", status_code=204)
def remove_student(class_id: str, student_id: str, store: DocumentStore = Depends(get_store)):
	doc = store.get(USERS, student_id)
	if doc is None:
		raise HTTPException(status_code=404, detail=f"User {student_id} not found")
	student = User.model_validate(doc)
	store.update(USERS, student.id, {"enrolledClassIds": [c for c in student.enrolled_class_ids if c != class_id]})


@router.get("/{class_id}/students", response_model=List[User])
def list_students(class_id: str, store: DocumentStore = Depends(get_store)):
	load_class(store, class_id)
	return class_roster(store, class_id)


@router.get("/{class_id}/assignments", response_model=List[Assignment])
def list_class_assignments(class_id: str, store: DocumentStore = Depends(get_store)):
	load_class(store, class_id)
	return load_all(store, ASSIGNMENTS, Assignment, classId=class_id)
