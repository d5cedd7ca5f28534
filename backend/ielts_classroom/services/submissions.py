from __future__ import annotations

import logging
from typing import Dict, Optional

from ..core.entities import (
	ESSAY_ANSWER_KEY,
	AssignmentType,
	Submission,
	SubmissionMetadata,
	SubmissionStatus,
	WritingFeedback,
	WritingTaskType,
)
from ..core.grading import grade_submission
from ..errors import ConflictError, DraftValidationError
from ..store import SUBMISSIONS, DocumentStore
from .ai import AIService, parse_data_uri
from .records import load_assignment, load_submission


logger = logging.getLogger(__name__)


class SubmissionService:
	def __init__(self, store: DocumentStore, ai: Optional[AIService] = None) -> None:
		self.store = store
		self.ai = ai

	def submit(
		self,
		assignment_id: str,
		student_id: str,
		answers: Dict[str, str],
		*,
		student_name: str = "",
		metadata: Optional[SubmissionMetadata] = None,
	) -> Submission:
		"""Grade (when the skill allows it) and store a student's only attempt."""
		assignment = load_assignment(self.store, assignment_id)
		if self.store.list(SUBMISSIONS, assignmentId=assignment_id, studentId=student_id):
			raise ConflictError("You have already submitted this assignment.")
		outcome = grade_submission(assignment, answers)
		submission = Submission(
			assignment_id=assignment_id,
			student_id=student_id,
			student_name=student_name,
			answers=dict(answers),
			status=outcome.status,
			grade=outcome.grade,
			report=outcome.report,
			metadata=metadata,
		)
		self.store.set(SUBMISSIONS, submission.id, submission.to_doc())
		logger.info(
			"Submission %s for %s by %s stored as %s%s",
			submission.id,
			assignment_id,
			student_id,
			outcome.status.value,
			f" ({outcome.grade})" if outcome.grade else "",
		)
		return submission

	def grade(
		self,
		submission_id: str,
		grade: str,
		feedback: str = "",
		ai_feedback: Optional[WritingFeedback] = None,
	) -> Submission:
		submission = load_submission(self.store, submission_id)
		if not (grade or "").strip():
			raise DraftValidationError("A grade is required.")
		update = {
			"status": SubmissionStatus.GRADED.value,
			"grade": grade.strip(),
			"feedback": feedback,
		}
		if ai_feedback is not None:
			update["aiWritingFeedback"] = ai_feedback.to_doc()
		self.store.update(SUBMISSIONS, submission.id, update)
		return load_submission(self.store, submission.id)

	def _require_ai(self) -> AIService:
		if self.ai is None:
			raise RuntimeError("SubmissionService was created without an AI service")
		return self.ai

	async def ai_grade_writing(self, submission_id: str) -> WritingFeedback:
		"""Ask the AI grader for band feedback. Nothing is saved; the teacher reviews it first."""
		submission = load_submission(self.store, submission_id)
		assignment = load_assignment(self.store, submission.assignment_id)
		if assignment.type != AssignmentType.WRITING or not assignment.writing_prompt:
			raise DraftValidationError("Only writing assignments with a prompt can be AI graded.")
		essay = (submission.answers.get(ESSAY_ANSWER_KEY) or "").strip()
		if not essay:
			raise DraftValidationError("No essay found in submission")
		return await self._require_ai().grade_writing_task(
			assignment.writing_task_type or WritingTaskType.TASK_1,
			assignment.writing_prompt,
			essay,
			assignment.writing_image,
		)

	async def transcribe(self, submission_id: str, question_id: str) -> str:
		submission = load_submission(self.store, submission_id)
		recording = submission.answers.get(question_id)
		if not recording:
			raise DraftValidationError(f"No recording for question {question_id}.")
		mime, data = parse_data_uri(recording)
		return await self._require_ai().transcribe_audio(data, mime)
