"""
Question Model
==============

The nine IELTS question kinds share one authoring and rendering surface. Every
kind stores its answer key in ``correct_answer`` as a string; the encoding of
that string depends on the kind:

- MCQ: one letter per option index (``"B"``), or for multi-select
  (``max_selection > 1``) the sorted letters joined by commas (``"A,C"``)
- FILL_IN_BLANKS / NOTES_COMPLETION: free text, compared case-insensitively
- TRUE_FALSE_NG: ``TRUE`` | ``FALSE`` | ``NOT GIVEN``
- YES_NO_NG: ``YES`` | ``NO`` | ``NOT GIVEN``
- MATCHING_HEADINGS: lower-case roman numeral of the heading (``"iv"``)
- MATCHING_FEATURES / MATCHING_SENTENCE_ENDINGS: letter of the match option
- MATCHING_INFORMATION: paragraph letter A-H
"""

from __future__ import annotations

import re
import string
import uuid
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
	"""Snake-case attributes, camelCase on the wire."""

	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

	def to_doc(self) -> dict:
		return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def new_id(prefix: str) -> str:
	return f"{prefix}_{uuid.uuid4().hex[:12]}"


class QuestionType(str, Enum):
	MCQ = "MCQ"
	FILL_IN_BLANKS = "FILL_IN_BLANKS"
	NOTES_COMPLETION = "NOTES_COMPLETION"
	TRUE_FALSE_NG = "TRUE_FALSE_NG"
	YES_NO_NG = "YES_NO_NG"
	MATCHING_HEADINGS = "MATCHING_HEADINGS"
	MATCHING_FEATURES = "MATCHING_FEATURES"
	MATCHING_INFORMATION = "MATCHING_INFORMATION"
	MATCHING_SENTENCE_ENDINGS = "MATCHING_SENTENCE_ENDINGS"


MATCH_OPTION_TYPES = (QuestionType.MATCHING_FEATURES, QuestionType.MATCHING_SENTENCE_ENDINGS)

QUESTION_TYPE_INSTRUCTIONS = {
	QuestionType.MCQ: "Choose the correct letter, A, B, C or D.",
	QuestionType.FILL_IN_BLANKS: "Complete the sentences below. Write NO MORE THAN TWO WORDS for each answer.",
	QuestionType.NOTES_COMPLETION: "Complete the notes below. Write ONE WORD AND/OR A NUMBER from the passage for each answer.",
	QuestionType.TRUE_FALSE_NG: "Do the following statements agree with the information given in the Reading Passage? Write TRUE, FALSE or NOT GIVEN.",
	QuestionType.YES_NO_NG: "Do the following statements agree with the views of the writer in the Reading Passage? Write YES, NO or NOT GIVEN.",
	QuestionType.MATCHING_HEADINGS: "Choose the correct heading for each paragraph from the list of headings below.",
	QuestionType.MATCHING_FEATURES: "Look at the following items and the list of options below. Match each item with the correct option.",
	QuestionType.MATCHING_INFORMATION: "Which paragraph contains the following information? NB You may use any letter more than once.",
	QuestionType.MATCHING_SENTENCE_ENDINGS: "Complete each sentence with the correct ending, A-G, below.",
}

TRUE_FALSE_NG_ANSWERS = ("TRUE", "FALSE", "NOT GIVEN")
YES_NO_NG_ANSWERS = ("YES", "NO", "NOT GIVEN")
INFORMATION_PARAGRAPHS = tuple("ABCDEFGH")

_ROMANS = ["i", "ii", "iii", "iv", "v", "vi", "vii", "viii", "ix", "x", "xi", "xii", "xiii", "xiv", "xv"]


def to_letter(index: int) -> str:
	"""0 -> "A", 1 -> "B", ..."""
	return string.ascii_uppercase[index]


def to_roman(index: int) -> str:
	"""0 -> "i". Past the table the 1-based number is used as-is ("16")."""
	if 0 <= index < len(_ROMANS):
		return _ROMANS[index]
	return str(index + 1)


class Question(CamelModel):
	id: str = Field(default_factory=lambda: new_id("q"))
	text: str = ""
	type: QuestionType
	options: Optional[List[str]] = None
	correct_answer: Optional[str] = None
	max_selection: Optional[int] = Field(default=None, ge=1)

	@property
	def is_multi_select(self) -> bool:
		return self.type == QuestionType.MCQ and (self.max_selection or 1) > 1


class QuestionGroup(CamelModel):
	id: str = Field(default_factory=lambda: new_id("qg"))
	type: QuestionType
	title: str = "Questions"
	instruction: str = ""
	content: Optional[str] = None
	heading_list: List[str] = Field(default_factory=list)
	match_options: List[str] = Field(default_factory=list)
	questions: List[Question] = Field(default_factory=list)


_BLANK_SPLIT = re.compile(r"(\[.*?\])")


def blank_segments(text: str) -> List[str]:
	"""Split text into literal runs and ``[answer]`` tokens, in reading order.

	Renderers swap each bracket token for an input box; the compiler in
	``notes`` derives questions from the same tokens.
	"""
	return [part for part in _BLANK_SPLIT.split(text or "") if part]


def _split_letters(value: str) -> List[str]:
	return [part.strip() for part in value.split(",")]


def answer_matches_encoding(question: Question, group: Optional[QuestionGroup] = None) -> bool:
	"""True when ``correct_answer`` is encoded the way ``question.type`` expects.

	Group context, when given, bounds heading and match-option references.
	"""
	answer = (question.correct_answer or "").strip()
	if not answer:
		return False
	qtype = question.type
	if qtype == QuestionType.MCQ:
		letters = _split_letters(answer) if question.is_multi_select else [answer]
		allowed = [to_letter(i) for i in range(min(len(question.options or []), 26))]
		if not all(letter in allowed for letter in letters):
			return False
		if question.is_multi_select:
			return letters == sorted(letters) and len(letters) <= (question.max_selection or 1)
		return True
	if qtype in (QuestionType.FILL_IN_BLANKS, QuestionType.NOTES_COMPLETION):
		return True
	if qtype == QuestionType.TRUE_FALSE_NG:
		return answer in TRUE_FALSE_NG_ANSWERS
	if qtype == QuestionType.YES_NO_NG:
		return answer in YES_NO_NG_ANSWERS
	if qtype == QuestionType.MATCHING_HEADINGS:
		if group is None:
			return answer == answer.lower()
		return answer in [to_roman(i) for i in range(len(group.heading_list))]
	if qtype in MATCH_OPTION_TYPES:
		if group is None:
			return len(answer) == 1 and answer in string.ascii_uppercase
		return answer in [to_letter(i) for i in range(min(len(group.match_options), 26))]
	if qtype == QuestionType.MATCHING_INFORMATION:
		return answer in INFORMATION_PARAGRAPHS
	return False
