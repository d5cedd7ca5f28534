from __future__ import annotations
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends

from ..core.entities import Submission, SubmissionMetadata, WritingFeedback
from ..core.questions import CamelModel
from ..services.ai import AIService, get_ai_service
from ..services.records import load_all, load_assignment
from ..services.submissions import SubmissionService
from ..store import SUBMISSIONS, DocumentStore, get_store

router = APIRouter(tags=["submissions"])


class SubmitRequest(CamelModel):
	student_id: str
	student_name: str = ""
	answers: Dict[str, str] = {}
	metadata: Optional[SubmissionMetadata] = None


class GradeRequest(CamelModel):
	grade: str
	feedback: str = ""
	ai_writing_feedback: Optional[WritingFeedback] = None


class TranscribeRequest(CamelModel):
	question_id: str


class TranscriptionOut(CamelModel):
	question_id: str
	text: str


def get_submission_service(
	store: DocumentStore = Depends(get_store),
	ai: AIService = Depends(get_ai_service),
) -> SubmissionService:
	return SubmissionService(store, ai)


@router.post("/assignments/{assignment_id}/submissions", response_model=Submission, status_code=201)
def submit(assignment_id: str, req: SubmitRequest, service: SubmissionService = Depends(get_submission_service)):
	return service.submit(
		assignment_id,
		req.student_id,
		req.answers,
		student_name=req.student_name,
		metadata=req.metadata,
	)


@router.get("/assignments/{assignment_id}/submissions", response_model=List[Submission])
def list_submissions(assignment_id: str, store: DocumentStore = Depends(get_store)):
	load_assignment(store, assignment_id)
	return load_all(store, SUBMISSIONS, Submission, assignmentId=assignment_id)


@router.post("/submissions/{submission_id}/grade", response_model=Submission)
def grade(submission_id: str, req: GradeRequest, service: SubmissionService = Depends(get_submission_service)):
	return service.grade(submission_id, req.grade, req.feedback, req.ai_writing_feedback)


@router.post("/submissions/{submission_id}/ai-grade-writing", response_model=WritingFeedback)
async def ai_grade_writing(submission_id: str, service: SubmissionService = Depends(get_submission_service)):
	return await service.ai_grade_writing(submission_id)


@router.post("/submissions/{submission_id}/transcribe", response_model=TranscriptionOut)
async def transcribe(submission_id: str, req: TranscribeRequest, service: SubmissionService = Depends(get_submission_service)):
	text = await service.transcribe(submission_id, req.question_id)
	return TranscriptionOut(question_id=req.question_id, text=text)
