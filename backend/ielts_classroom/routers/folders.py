from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from ..core.entities import Assignment, AssignmentGroup
from ..core.folders import new_folder_order, organize_assignments, reorder_positions, sort_folders
from ..core.questions import CamelModel
from ..services.records import load_all, load_class, load_folder
from ..store import ASSIGNMENTS, FOLDERS, DocumentStore, WriteOp, get_store

router = APIRouter(tags=["folders"])

logger = logging.getLogger(__name__)


class FolderRequest(CamelModel):
	title: str
	description: Optional[str] = None


class ReorderRequest(CamelModel):
	folder_ids: List[str]


class LooseAssignmentOut(CamelModel):
	assignment: Assignment
	folder_missing: bool = False


class FolderOut(CamelModel):
	folder: AssignmentGroup
	assignments: List[Assignment]


class OrganizedOut(CamelModel):
	folders: List[FolderOut]
	loose: List[LooseAssignmentOut]


def _class_folders(store: DocumentStore, class_id: str) -> List[AssignmentGroup]:
	return sort_folders(load_all(store, FOLDERS, AssignmentGroup, classId=class_id))


@router.post("/classes/{class_id}/folders", response_model=AssignmentGroup, status_code=201)
def create_folder(class_id: str, req: FolderRequest, store: DocumentStore = Depends(get_store)):
	load_class(store, class_id)
	if not req.title.strip():
		raise HTTPException(status_code=400, detail="Folder title is required")
	folder = AssignmentGroup(
		class_id=class_id,
		title=req.title.strip(),
		description=req.description,
		created_at=datetime.now(timezone.utc).isoformat(),
		order=new_folder_order(_class_folders(store, class_id)),
	)
	store.set(FOLDERS, folder.id, folder.to_doc())
	return folder


@router.get("/classes/{class_id}/folders", response_model=List[AssignmentGroup])
def list_folders(class_id: str, store: DocumentStore = Depends(get_store)):
	return _class_folders(store, class_id)


@router.patch("/folders/{folder_id}", response_model=AssignmentGroup)
def rename_folder(folder_id: str, req: FolderRequest, store: DocumentStore = Depends(get_store)):
	load_folder(store, folder_id)
	if not req.title.strip():
		raise HTTPException(status_code=400, detail="Folder title is required")
	update = {"title": req.title.strip()}
	if req.description is not None:
		update["description"] = req.description
	store.update(FOLDERS, folder_id, update)
	return load_folder(store, folder_id)


@router.delete("/folders/{folder_id}", status_code=204)
def delete_folder(folder_id: str, store: DocumentStore = Depends(get_store)):
	# Assignments keep their groupId and show up as orphaned
	store.delete(FOLDERS, folder_id)


@router.post("/classes/{class_id}/folders/reorder", response_model=List[AssignmentGroup])
def reorder_folders(class_id: str, req: ReorderRequest, store: DocumentStore = Depends(get_store)):
	positions = reorder_positions(_class_folders(store, class_id), req.folder_ids)
	store.batch([WriteOp("update", FOLDERS, fid, {"order": order}) for fid, order in positions.items()])
	logger.info("Reordered %d folders in class %s", len(positions), class_id)
	return _class_folders(store, class_id)


@router.get("/classes/{class_id}/assignments/organized", response_model=OrganizedOut)
def organized_assignments(class_id: str, store: DocumentStore = Depends(get_store)):
	organized = organize_assignments(
		_class_folders(store, class_id),
		load_all(store, ASSIGNMENTS, Assignment, classId=class_id),
	)
	return OrganizedOut(
		folders=[FolderOut(folder=v.folder, assignments=v.assignments) for v in organized.folders],
		loose=[LooseAssignmentOut(assignment=l.assignment, folder_missing=l.folder_missing) for l in organized.loose],
	)
