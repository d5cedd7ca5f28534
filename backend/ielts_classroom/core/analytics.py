from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence

from .entities import Assignment, Submission, SubmissionStatus, User
from .questions import Question


def round_half_up(value: float) -> int:
	"""12.5 -> 13. Built-in round() would give 12."""
	return int(math.floor(value + 0.5))


@dataclass
class QuestionStat:
	question: Question
	number: int  # 1-based position in the flattened question list
	correct_count: int
	attempt_count: int

	@property
	def accuracy(self) -> int:
		"""Percent correct among attempts, 0 when nobody attempted."""
		if self.attempt_count == 0:
			return 0
		return round_half_up(self.correct_count / self.attempt_count * 100)


@dataclass
class AssignmentAnalytics:
	question_stats: List[QuestionStat]
	average_score: int
	completion_rate: int
	scores: List[float] = field(default_factory=list)
	submitted_count: int = 0
	graded_count: int = 0
	roster_size: int = 0

	@property
	def hardest_question(self) -> Optional[QuestionStat]:
		return self.question_stats[0] if self.question_stats else None


def parse_fraction_grade(grade: Optional[str]) -> Optional[float]:
	"""``"8/10"`` -> 80.0. Band scores and junk give None."""
	if not grade or "/" not in grade:
		return None
	score_text, _, max_text = grade.partition("/")
	try:
		score, max_score = float(score_text), float(max_text)
	except ValueError:
		return None
	if not (math.isfinite(score) and math.isfinite(max_score)) or max_score <= 0:
		return None
	percent = score / max_score * 100
	return percent if math.isfinite(percent) else None


def _mean(values: Sequence[float]) -> float:
	# divide first so huge finite percents cannot overflow the running sum
	return sum(v / len(values) for v in values)


def _is_auto_graded(sub: Submission) -> bool:
	return sub.status == SubmissionStatus.GRADED and sub.report is not None


def analyze_assignment(
	roster: Sequence[User],
	submissions: Sequence[Submission],
	questions: Sequence[Question],
) -> AssignmentAnalytics:
	"""Per-question accuracy (hardest first), average score and completion rate."""
	graded = [s for s in submissions if _is_auto_graded(s)]

	stats = []
	for number, q in enumerate(questions, start=1):
		correct = attempts = 0
		for sub in graded:
			result = sub.report.get(q.id)
			if result is None:
				continue
			attempts += 1
			if result.is_correct:
				correct += 1
		stats.append(QuestionStat(question=q, number=number, correct_count=correct, attempt_count=attempts))
	# sort is stable, so ties keep question order
	stats.sort(key=lambda s: s.accuracy)

	scores = [parse_fraction_grade(s.grade) or 0.0 for s in graded]
	average = round_half_up(min(100.0, max(0.0, _mean(scores)))) if scores else 0
	completion = round_half_up(min(100.0, len(submissions) / len(roster) * 100)) if roster else 0

	return AssignmentAnalytics(
		question_stats=stats,
		average_score=average,
		completion_rate=completion,
		scores=scores,
		submitted_count=len(submissions),
		graded_count=len(graded),
		roster_size=len(roster),
	)


# ---- gradebook ----

def assignment_average(submissions: Sequence[Submission]) -> str:
	"""Class average over fraction grades, e.g. ``"73%"``; ``"-"`` when there are none."""
	percents = [p for p in (parse_fraction_grade(s.grade) for s in submissions if s.grade) if p is not None]
	if not percents:
		return "-"
	return f"{round_half_up(_mean(percents))}%"


@dataclass
class GradebookCell:
	status: str  # GRADED | SUBMITTED | MISSING | ASSIGNED
	label: str
	submission_id: Optional[str] = None


def _due_date(value: str) -> Optional[date]:
	try:
		return datetime.fromisoformat(value).date()
	except (TypeError, ValueError):
		return None


def student_status(submission: Optional[Submission], assignment: Assignment, today: Optional[date] = None) -> GradebookCell:
	if submission is not None:
		if submission.status == SubmissionStatus.GRADED:
			return GradebookCell("GRADED", submission.grade or "Graded", submission.id)
		return GradebookCell("SUBMITTED", "Turned In", submission.id)
	due = _due_date(assignment.due_date)
	if due is not None and due < (today or date.today()):
		return GradebookCell("MISSING", "Missing")
	return GradebookCell("ASSIGNED", "-")


@dataclass
class Gradebook:
	assignments: List[Assignment]
	averages: Dict[str, str]
	rows: Dict[str, Dict[str, GradebookCell]]  # student id -> assignment id -> cell


def class_gradebook(
	roster: Sequence[User],
	assignments: Sequence[Assignment],
	submissions: Sequence[Submission],
	today: Optional[date] = None,
) -> Gradebook:
	ordered = sorted(assignments, key=lambda a: a.due_date, reverse=True)
	by_student: Dict[str, Dict[str, Submission]] = {}
	for sub in submissions:
		by_student.setdefault(sub.student_id, {})[sub.assignment_id] = sub
	rows = {
		student.id: {
			a.id: student_status(by_student.get(student.id, {}).get(a.id), a, today)
			for a in ordered
		}
		for student in roster
	}
	averages = {
		a.id: assignment_average([s for s in submissions if s.assignment_id == a.id])
		for a in ordered
	}
	return Gradebook(assignments=ordered, averages=averages, rows=rows)
