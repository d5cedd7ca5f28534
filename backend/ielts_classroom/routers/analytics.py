from __future__ import annotations
from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..core.analytics import analyze_assignment, class_gradebook
from ..core.entities import Assignment, Submission
from ..core.grading import flatten_questions
from ..services.records import class_roster, load_all, load_assignment, load_class
from ..store import ASSIGNMENTS, SUBMISSIONS, DocumentStore, get_store

router = APIRouter(tags=["analytics"])


@router.get("/assignments/{assignment_id}/analytics")
def assignment_analytics(assignment_id: str, store: DocumentStore = Depends(get_store)) -> Dict[str, Any]:
	assignment = load_assignment(store, assignment_id)
	roster = class_roster(store, assignment.class_id)
	submissions = load_all(store, SUBMISSIONS, Submission, assignmentId=assignment_id)
	result = analyze_assignment(roster, submissions, flatten_questions(assignment))
	hardest = result.hardest_question
	return {
		"assignmentId": assignment.id,
		"title": assignment.title,
		"averageScore": result.average_score,
		"completionRate": result.completion_rate,
		"gradedCount": result.graded_count,
		"submittedCount": result.submitted_count,
		"rosterSize": result.roster_size,
		"scores": result.scores,
		"hardestQuestion": (
			{"number": hardest.number, "questionId": hardest.question.id, "accuracy": hardest.accuracy}
			if hardest
			else None
		),
		"questionStats": [
			{
				"number": s.number,
				"questionId": s.question.id,
				"text": s.question.text,
				"type": s.question.type.value,
				"accuracy": s.accuracy,
				"correctCount": s.correct_count,
				"attemptCount": s.attempt_count,
			}
			for s in result.question_stats
		],
	}


@router.get("/classes/{class_id}/gradebook")
def gradebook(class_id: str, store: DocumentStore = Depends(get_store)) -> Dict[str, Any]:
	load_class(store, class_id)
	assignments = load_all(store, ASSIGNMENTS, Assignment, classId=class_id)
	assignment_ids = {a.id for a in assignments}
	submissions = [s for s in load_all(store, SUBMISSIONS, Submission) if s.assignment_id in assignment_ids]
	book = class_gradebook(class_roster(store, class_id), assignments, submissions)
	return {
		"assignments": [{"id": a.id, "title": a.title, "dueDate": a.due_date, "average": book.averages[a.id]} for a in book.assignments],
		"rows": {
			student_id: {
				aid: {"status": cell.status, "label": cell.label, "submissionId": cell.submission_id}
				for aid, cell in cells.items()
			}
			for student_id, cells in book.rows.items()
		},
	}
