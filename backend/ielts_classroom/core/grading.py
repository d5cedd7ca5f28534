"""Rule-based auto-grading for reading and listening assignments.

Deterministic and total: any question/answer pair yields a QuestionResult,
malformed answer keys grade against the empty string instead of raising.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional

from .entities import AUTO_GRADED_TYPES, Assignment, QuestionResult, SubmissionStatus
from .questions import Question, QuestionType


logger = logging.getLogger(__name__)


class AnswerRule(str, Enum):
	LETTER_SET = "letter_set"  # multi-select MCQ, order-insensitive
	TEXT = "text"  # case-insensitive
	EXACT = "exact"  # case-sensitive


ANSWER_RULES: Dict[QuestionType, AnswerRule] = {
	QuestionType.MCQ: AnswerRule.EXACT,
	QuestionType.FILL_IN_BLANKS: AnswerRule.TEXT,
	QuestionType.NOTES_COMPLETION: AnswerRule.TEXT,
	QuestionType.TRUE_FALSE_NG: AnswerRule.EXACT,
	QuestionType.YES_NO_NG: AnswerRule.EXACT,
	QuestionType.MATCHING_HEADINGS: AnswerRule.EXACT,
	QuestionType.MATCHING_FEATURES: AnswerRule.EXACT,
	QuestionType.MATCHING_INFORMATION: AnswerRule.EXACT,
	QuestionType.MATCHING_SENTENCE_ENDINGS: AnswerRule.EXACT,
}

_unmapped = set(QuestionType) - set(ANSWER_RULES)
if _unmapped:
	raise RuntimeError(f"No answer rule for question types: {sorted(t.value for t in _unmapped)}")


@dataclass
class GradingOutcome:
	status: SubmissionStatus
	grade: Optional[str] = None
	report: Optional[Dict[str, QuestionResult]] = None
	correct_count: int = 0
	total_questions: int = 0


def flatten_questions(assignment: Assignment) -> List[Question]:
	"""All questions in grading order: group order, then order inside the group."""
	if assignment.question_groups:
		return [q for group in assignment.question_groups for q in group.questions]
	return list(assignment.questions)


def answer_rule(question: Question) -> AnswerRule:
	if question.is_multi_select:
		return AnswerRule.LETTER_SET
	return ANSWER_RULES[question.type]


def _sorted_letters(value: str) -> str:
	return ",".join(sorted(part.strip() for part in value.split(",")))


def answers_match(rule: AnswerRule, student: str, correct: str) -> bool:
	if rule is AnswerRule.LETTER_SET:
		return _sorted_letters(student) == _sorted_letters(correct)
	if rule is AnswerRule.TEXT:
		return student.lower() == correct.lower()
	return student == correct


def grade_question(question: Question, raw_answer: Optional[str]) -> QuestionResult:
	student = str(raw_answer or "").strip()
	correct = str(question.correct_answer or "").strip()
	if not correct:
		logger.warning("Question %s has no answer key; grading against an empty answer", question.id)
	return QuestionResult(
		question_id=question.id,
		is_correct=answers_match(answer_rule(question), student, correct),
		student_answer=student,
		correct_answer=correct,
	)


def grade_answers(questions: List[Question], answers: Mapping[str, str]) -> GradingOutcome:
	report: Dict[str, QuestionResult] = {}
	correct_count = 0
	for question in questions:
		result = grade_question(question, answers.get(question.id))
		report[question.id] = result
		if result.is_correct:
			correct_count += 1
	return GradingOutcome(
		status=SubmissionStatus.GRADED,
		grade=f"{correct_count}/{len(questions)}",
		report=report,
		correct_count=correct_count,
		total_questions=len(questions),
	)


def grade_submission(assignment: Assignment, answers: Mapping[str, str]) -> GradingOutcome:
	"""Auto-grade reading/listening answers; other skills stay SUBMITTED for a teacher."""
	if assignment.type not in AUTO_GRADED_TYPES:
		return GradingOutcome(status=SubmissionStatus.SUBMITTED)
	return grade_answers(flatten_questions(assignment), answers)
