"""
Assignment Builder
==================

``AssignmentDraft`` holds a teacher's in-progress assignment. Edits never touch
objects that were handed out earlier: every mutation swaps in copied groups,
so a preview or a previously committed snapshot stays exactly as it was.

``commit`` validates the draft and returns an immutable ``Assignment``. On
commit every NOTES_COMPLETION group gets its questions regenerated from its
bracketed content, so what is saved always matches what the teacher sees in
the notes text.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from ..errors import DraftValidationError
from .entities import Assignment, AssignmentType, WritingTaskType
from .notes import compile_notes, extract_bracket_answer
from .questions import (
	MATCH_OPTION_TYPES,
	QUESTION_TYPE_INSTRUCTIONS,
	Question,
	QuestionGroup,
	QuestionType,
	answer_matches_encoding,
	new_id,
)


logger = logging.getLogger(__name__)

WRITING_TIME_LIMITS = {WritingTaskType.TASK_1: 20, WritingTaskType.TASK_2: 40}

_DRAFT_FIELDS = (
	"title",
	"description",
	"due_date",
	"time_limit",
	"class_id",
	"passage_content",
	"video_url",
	"writing_prompt",
	"writing_image",
)

# "12. ", "Question 7: ", "3) " at the start of an extracted question
_QUESTION_NUMBER = re.compile(r"^\s*(?:question\s+)?\d+\s*[.):]\s+", re.IGNORECASE)
# "A. London", "(B) Paris"
_OPTION_LABEL = re.compile(r"^\s*\(?[A-Z][.)]\s+")


def _strip_question_number(text: str) -> str:
	return _QUESTION_NUMBER.sub("", text or "", count=1)


def _strip_option_label(option: str) -> str:
	return _OPTION_LABEL.sub("", str(option), count=1).strip()


def _conform_question(question: Question, group_type: QuestionType) -> Question:
	if question.type != group_type:
		logger.warning("Question %s was %s inside a %s group; retyped", question.id, question.type.value, group_type.value)
	if group_type == QuestionType.MCQ:
		return question.model_copy(update={"type": group_type})
	return question.model_copy(update={"type": group_type, "options": None, "max_selection": None})


def compile_groups(groups: List[QuestionGroup]) -> List[QuestionGroup]:
	"""Copies of ``groups`` ready to save.

	Notes-completion questions are rebuilt from content; every other question
	takes its group's type.
	"""
	compiled = []
	for group in groups:
		if group.type == QuestionType.NOTES_COMPLETION:
			questions = compile_notes(group.content)
		else:
			questions = [_conform_question(q, group.type) for q in group.questions]
		compiled.append(group.model_copy(update={"questions": questions}, deep=True))
	return compiled


def parse_question_groups(raw_groups: List[Any]) -> List[QuestionGroup]:
	"""Turn untrusted group dicts into groups with fresh ids.

	Each question takes its group's type; leading question numbers and MCQ
	letter labels are removed. Raises DraftValidationError on the first bad group.
	"""
	groups: List[QuestionGroup] = []
	for gi, raw in enumerate(raw_groups):
		if not isinstance(raw, Mapping):
			raise DraftValidationError(f"Question group {gi + 1} must be an object.")
		raw_questions = raw.get("questions") or []
		if not isinstance(raw_questions, list):
			raise DraftValidationError(f"Question group {gi + 1}: 'questions' must be an array.")
		group_type = raw.get("type")
		questions = []
		for qi, rq in enumerate(raw_questions):
			if not isinstance(rq, Mapping):
				raise DraftValidationError(f"Question {qi + 1} in group {gi + 1} must be an object.")
			q = {k: v for k, v in rq.items() if k != "id"}
			q["type"] = group_type
			q["text"] = _strip_question_number(str(rq.get("text") or ""))
			if group_type == QuestionType.MCQ.value and isinstance(rq.get("options"), list):
				q["options"] = [_strip_option_label(o) for o in rq["options"]]
			questions.append(q)
		data = {k: v for k, v in raw.items() if k not in ("id", "questions")}
		data["id"] = new_id("qg")
		data["questions"] = [{**q, "id": new_id("q")} for q in questions]
		try:
			group = QuestionGroup.model_validate(data)
		except ValidationError as e:
			first = e.errors()[0]
			where = ".".join(str(p) for p in first.get("loc", ()))
			raise DraftValidationError(f"Question group {gi + 1} is invalid ({where}: {first.get('msg')}).") from e
		if not group.instruction:
			group = group.model_copy(update={"instruction": QUESTION_TYPE_INSTRUCTIONS[group.type]})
		groups.append(group)
	return groups


def parse_quiz_document(payload: Union[str, bytes, Mapping[str, Any]]) -> Tuple[str, List[QuestionGroup]]:
	"""Validate a ``{passageContent, questionGroups}`` document."""
	data: Any = payload
	if isinstance(payload, bytes):
		payload = payload.decode("utf-8", "replace")
	if isinstance(payload, str):
		if not payload.strip():
			raise DraftValidationError("Please paste the JSON data into the text area.")
		try:
			data = json.loads(payload)
		except ValueError as e:
			raise DraftValidationError(f"Failed to import JSON: {e}") from e
	if (
		not isinstance(data, Mapping)
		or not isinstance(data.get("passageContent"), str)
		or not data.get("passageContent")
		or not isinstance(data.get("questionGroups"), list)
	):
		raise DraftValidationError(
			"Invalid JSON structure. The JSON must contain 'passageContent' (string) and 'questionGroups' (array)."
		)
	return data["passageContent"], parse_question_groups(data["questionGroups"])


class AssignmentDraft:
	def __init__(
		self,
		type: AssignmentType = AssignmentType.READING,
		*,
		class_id: Optional[str] = None,
		group_id: Optional[str] = None,
		question_groups: Optional[List[QuestionGroup]] = None,
		writing_task_type: Optional[WritingTaskType] = None,
		**fields: Any,
	) -> None:
		self.type = AssignmentType(type)
		self.class_id = class_id
		# Folder context is fixed at creation; edits keep it.
		self.group_id = group_id
		self.title: Optional[str] = None
		self.description: str = ""
		self.due_date: Optional[str] = None
		self.time_limit: Optional[int] = None
		self.passage_content: Optional[str] = None
		self.video_url: Optional[str] = None
		self.writing_prompt: Optional[str] = None
		self.writing_image: Optional[str] = None
		self.writing_task_type = WritingTaskType(writing_task_type) if writing_task_type else None
		self._groups: Tuple[QuestionGroup, ...] = tuple(g.model_copy(deep=True) for g in question_groups or [])
		self.set_fields(**fields)

	@classmethod
	def from_assignment(cls, assignment: Assignment) -> "AssignmentDraft":
		task_type = assignment.writing_task_type
		if assignment.type == AssignmentType.WRITING and task_type is None:
			task_type = WritingTaskType.TASK_1
		return cls(
			assignment.type,
			class_id=assignment.class_id,
			group_id=assignment.group_id,
			question_groups=list(assignment.question_groups),
			writing_task_type=task_type,
			title=assignment.title,
			description=assignment.description,
			due_date=assignment.due_date,
			time_limit=assignment.time_limit,
			passage_content=assignment.passage_content,
			video_url=assignment.video_url,
			writing_prompt=assignment.writing_prompt,
			writing_image=assignment.writing_image,
		)

	# ---- assignment-level fields ----

	def set_fields(self, **fields: Any) -> None:
		for name, value in fields.items():
			if name not in _DRAFT_FIELDS:
				raise TypeError(f"Unknown draft field: {name}")
			setattr(self, name, value)

	def set_type(self, assignment_type: AssignmentType) -> None:
		self.type = AssignmentType(assignment_type)
		if self.type == AssignmentType.WRITING and self.writing_task_type is None:
			self.set_writing_task_type(WritingTaskType.TASK_1)

	def set_writing_task_type(self, task_type: WritingTaskType) -> None:
		self.writing_task_type = WritingTaskType(task_type)
		self.time_limit = WRITING_TIME_LIMITS[self.writing_task_type]

	# ---- question groups ----

	@property
	def groups(self) -> List[QuestionGroup]:
		return [g.model_copy(deep=True) for g in self._groups]

	def _group(self, index: int) -> QuestionGroup:
		if not 0 <= index < len(self._groups):
			raise DraftValidationError(f"There is no question group #{index + 1}.")
		return self._groups[index]

	def _replace_group(self, index: int, **update: Any) -> QuestionGroup:
		group = self._group(index).model_copy(update=update, deep=True)
		self._groups = self._groups[:index] + (group,) + self._groups[index + 1 :]
		return group

	def add_group(self, qtype: QuestionType = QuestionType.MCQ) -> int:
		qtype = QuestionType(qtype)
		group = QuestionGroup(type=qtype, title="Questions", instruction=QUESTION_TYPE_INSTRUCTIONS[qtype])
		self._groups = self._groups + (group,)
		return len(self._groups) - 1

	def remove_group(self, index: int) -> None:
		self._group(index)
		self._groups = self._groups[:index] + self._groups[index + 1 :]

	def change_group_type(self, index: int, new_type: QuestionType) -> None:
		"""Switch a group to another kind, discarding data that belonged to the old kind.

		Headings, match options and notes content are cleared, and questions of
		the old kind are dropped.
		"""
		new_type = QuestionType(new_type)
		group = self._group(index)
		if group.type == new_type:
			return
		self._replace_group(
			index,
			type=new_type,
			instruction=QUESTION_TYPE_INSTRUCTIONS[new_type],
			heading_list=[],
			match_options=[],
			content="" if new_type == QuestionType.NOTES_COMPLETION else None,
			questions=[],
		)

	def set_group_text(self, index: int, *, title: Optional[str] = None, instruction: Optional[str] = None) -> None:
		update: Dict[str, Any] = {}
		if title is not None:
			update["title"] = title
		if instruction is not None:
			update["instruction"] = instruction
		self._replace_group(index, **update)

	def set_group_content(self, index: int, content: str) -> None:
		if self._group(index).type != QuestionType.NOTES_COMPLETION:
			raise DraftValidationError("Only notes completion groups have notes content.")
		self._replace_group(index, content=content)

	def add_question(
		self,
		index: int,
		text: str,
		correct_answer: Optional[str] = None,
		*,
		options: Optional[List[str]] = None,
		max_selection: int = 1,
	) -> str:
		group = self._group(index)
		if not (text or "").strip():
			raise DraftValidationError("Question text required")
		if group.type == QuestionType.NOTES_COMPLETION:
			raise DraftValidationError("Notes completion questions come from [bracketed] answers in the notes content.")
		if group.type == QuestionType.FILL_IN_BLANKS:
			correct_answer = extract_bracket_answer(text)
			if correct_answer is None:
				raise DraftValidationError(
					"Please format your sentence correctly: Wrap the answer in [brackets]. "
					"Example: The sun rises in the [east]."
				)
		is_mcq = group.type == QuestionType.MCQ
		question = Question(
			text=text,
			type=group.type,
			options=list(options or []) if is_mcq else None,
			correct_answer=correct_answer or None,
			max_selection=max_selection if is_mcq else None,
		)
		self._replace_group(index, questions=[*group.questions, question])
		return question.id

	def remove_question(self, index: int, question_id: str) -> None:
		group = self._group(index)
		self._replace_group(index, questions=[q for q in group.questions if q.id != question_id])

	def update_question_answer(self, index: int, question_id: str, answer: str) -> None:
		group = self._group(index)
		if not any(q.id == question_id for q in group.questions):
			raise DraftValidationError(f"Question {question_id} is not in group #{index + 1}.")
		questions = [
			q.model_copy(update={"correct_answer": answer}) if q.id == question_id else q
			for q in group.questions
		]
		self._replace_group(index, questions=questions)

	def add_heading(self, index: int, heading: str) -> None:
		group = self._group(index)
		if group.type != QuestionType.MATCHING_HEADINGS:
			raise DraftValidationError("Headings can only be added to a matching headings group.")
		if not (heading or "").strip():
			return
		self._replace_group(index, heading_list=[*group.heading_list, heading])

	def remove_heading(self, index: int, heading_index: int) -> None:
		group = self._group(index)
		if 0 <= heading_index < len(group.heading_list):
			headings = list(group.heading_list)
			del headings[heading_index]
			self._replace_group(index, heading_list=headings)

	def add_match_option(self, index: int, option: str) -> None:
		group = self._group(index)
		if group.type not in MATCH_OPTION_TYPES:
			raise DraftValidationError("Match options can only be added to matching features or sentence endings groups.")
		if not (option or "").strip():
			return
		self._replace_group(index, match_options=[*group.match_options, option])

	def remove_match_option(self, index: int, option_index: int) -> None:
		group = self._group(index)
		if 0 <= option_index < len(group.match_options):
			options = list(group.match_options)
			del options[option_index]
			self._replace_group(index, match_options=options)

	# ---- bulk import ----

	def import_json(self, payload: Union[str, bytes, Mapping[str, Any]]) -> int:
		"""Append groups from a ``{passageContent, questionGroups}`` document.

		Either the whole document is taken or the draft is left untouched.
		Returns the number of groups added.
		"""
		passage, groups = parse_quiz_document(payload)
		self.passage_content = passage
		self._groups = self._groups + tuple(groups)
		logger.info("Imported %d question groups into draft", len(groups))
		return len(groups)

	# ---- snapshots ----

	def preview(self) -> Assignment:
		return self._snapshot(
			assignment_id="preview",
			class_id=self.class_id or "",
			title=self.title or "Untitled Assignment",
			due_date=self.due_date or "",
		)

	def commit(self, class_exists: Callable[[str], bool], assignment_id: Optional[str] = None) -> Assignment:
		if not (self.title or "").strip() or not (self.due_date or "").strip() or not self.class_id:
			raise DraftValidationError("Please fill in Title, Due Date, and ensure Class is selected")
		if not class_exists(self.class_id):
			raise DraftValidationError(f"Class {self.class_id} does not exist.")
		if self.type == AssignmentType.WRITING and not (self.writing_prompt or "").strip():
			raise DraftValidationError("Please enter an essay prompt")
		assignment = self._snapshot(
			assignment_id=assignment_id or new_id("asg"),
			class_id=self.class_id,
			title=self.title,
			due_date=self.due_date,
		)
		self._log_answer_key_anomalies(assignment)
		return assignment

	def _snapshot(self, *, assignment_id: str, class_id: str, title: str, due_date: str) -> Assignment:
		kind = self.type
		task_type = self.writing_task_type
		if kind == AssignmentType.WRITING and task_type is None:
			task_type = WritingTaskType.TASK_1
		is_writing = kind == AssignmentType.WRITING
		return Assignment(
			id=assignment_id,
			class_id=class_id,
			group_id=self.group_id,
			title=title,
			type=kind,
			description=self.description or "",
			due_date=due_date,
			time_limit=self.time_limit,
			passage_content=self.passage_content if kind == AssignmentType.READING else None,
			question_groups=[] if is_writing else compile_groups(list(self._groups)),
			video_url=self.video_url if kind == AssignmentType.LISTENING else None,
			writing_task_type=task_type if is_writing else None,
			writing_prompt=self.writing_prompt if is_writing else None,
			writing_image=self.writing_image if is_writing else None,
		)

	@staticmethod
	def _log_answer_key_anomalies(assignment: Assignment) -> None:
		for group in assignment.question_groups:
			for q in group.questions:
				if not answer_matches_encoding(q, group):
					logger.warning(
						"Assignment %s: question %s (%s) has answer key %r that does not fit its type",
						assignment.id,
						q.id,
						q.type.value,
						q.correct_answer,
					)
