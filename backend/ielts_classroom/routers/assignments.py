from __future__ import annotations
import base64
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from ..core.builder import AssignmentDraft, parse_quiz_document
from ..core.entities import Assignment, AssignmentType, WritingTaskType
from ..core.questions import CamelModel, QuestionGroup
from ..services.ai import AIService, get_ai_service
from ..services.records import class_exists, load_assignment, load_folder
from ..store import ASSIGNMENTS, DocumentStore, get_store

router = APIRouter(prefix="/assignments", tags=["assignments"])

logger = logging.getLogger(__name__)

# Scanned tests arrive as images or PDFs
_EXTRACT_MIME_TYPES = ("image/png", "image/jpeg", "image/webp", "application/pdf")


class AssignmentPayload(CamelModel):
	type: AssignmentType = AssignmentType.READING
	class_id: Optional[str] = None
	title: Optional[str] = None
	description: str = ""
	due_date: Optional[str] = None
	time_limit: Optional[int] = None
	passage_content: Optional[str] = None
	question_groups: List[QuestionGroup] = []
	video_url: Optional[str] = None
	writing_task_type: Optional[WritingTaskType] = None
	writing_prompt: Optional[str] = None
	writing_image: Optional[str] = None
	# Folder that was open when the assignment was created
	folder_id: Optional[str] = None


class JsonImportRequest(CamelModel):
	json_text: str


class ImportedQuiz(CamelModel):
	passage_content: str
	question_groups: List[QuestionGroup]


def _draft(payload: AssignmentPayload, group_id: Optional[str]) -> AssignmentDraft:
	return AssignmentDraft(
		payload.type,
		class_id=payload.class_id,
		group_id=group_id,
		question_groups=payload.question_groups,
		writing_task_type=payload.writing_task_type,
		title=payload.title,
		description=payload.description,
		due_date=payload.due_date,
		time_limit=payload.time_limit,
		passage_content=payload.passage_content,
		video_url=payload.video_url,
		writing_prompt=payload.writing_prompt,
		writing_image=payload.writing_image,
	)


@router.post("", response_model=Assignment, status_code=201)
def create_assignment(payload: AssignmentPayload, store: DocumentStore = Depends(get_store)):
	if payload.folder_id:
		load_folder(store, payload.folder_id)
	assignment = _draft(payload, payload.folder_id).commit(lambda cid: class_exists(store, cid))
	store.set(ASSIGNMENTS, assignment.id, assignment.to_doc())
	logger.info("Created %s assignment %s in class %s", assignment.type.value, assignment.id, assignment.class_id)
	return assignment


@router.put("/{assignment_id}", response_model=Assignment)
def update_assignment(assignment_id: str, payload: AssignmentPayload, store: DocumentStore = Depends(get_store)):
	existing = load_assignment(store, assignment_id)
	# Editing never moves an assignment between folders
	draft = _draft(payload, existing.group_id)
	if draft.class_id is None:
		draft.class_id = existing.class_id
	assignment = draft.commit(lambda cid: class_exists(store, cid), assignment_id=assignment_id)
	store.set(ASSIGNMENTS, assignment.id, assignment.to_doc())
	return assignment


@router.get("/{assignment_id}", response_model=Assignment)
def get_assignment(assignment_id: str, store: DocumentStore = Depends(get_store)):
	return load_assignment(store, assignment_id)


@router.get("/{assignment_id}/draft", response_model=AssignmentPayload)
def edit_assignment(assignment_id: str, store: DocumentStore = Depends(get_store)):
	"""The stored assignment as an editable payload (legacy writing tasks default to TASK_1)."""
	draft = AssignmentDraft.from_assignment(load_assignment(store, assignment_id))
	return AssignmentPayload(
		type=draft.type,
		class_id=draft.class_id,
		title=draft.title,
		description=draft.description,
		due_date=draft.due_date,
		time_limit=draft.time_limit,
		passage_content=draft.passage_content,
		question_groups=draft.groups,
		video_url=draft.video_url,
		writing_task_type=draft.writing_task_type,
		writing_prompt=draft.writing_prompt,
		writing_image=draft.writing_image,
		folder_id=draft.group_id,
	)


@router.delete("/{assignment_id}", status_code=204)
def delete_assignment(assignment_id: str, store: DocumentStore = Depends(get_store)):
	store.delete(ASSIGNMENTS, assignment_id)


@router.post("/preview", response_model=Assignment)
def preview_assignment(payload: AssignmentPayload):
	"""What students would see, with notes-completion blanks compiled exactly as on save."""
	return _draft(payload, payload.folder_id).preview()


@router.post("/import-json", response_model=ImportedQuiz)
def import_json(req: JsonImportRequest):
	passage, groups = parse_quiz_document(req.json_text)
	return ImportedQuiz(passage_content=passage, question_groups=groups)


@router.post("/extract", response_model=ImportedQuiz)
async def extract_quiz(file: UploadFile = File(...), ai: AIService = Depends(get_ai_service)):
	mime_type = file.content_type or "image/png"
	if mime_type not in _EXTRACT_MIME_TYPES:
		raise HTTPException(status_code=400, detail=f"Unsupported file type {mime_type}; upload an image or a PDF")
	content = await file.read()
	if not content:
		raise HTTPException(status_code=400, detail="Uploaded file is empty")
	passage, groups = await ai.extract_quiz(base64.b64encode(content).decode("ascii"), mime_type)
	return ImportedQuiz(passage_content=passage, question_groups=groups)
