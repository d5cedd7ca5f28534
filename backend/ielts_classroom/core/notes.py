"""Notes-completion compiler: bracketed answers in rich text become questions."""

from __future__ import annotations

import re
from typing import List, Optional

from .questions import Question, QuestionType, new_id

BRACKET_PATTERN = re.compile(r"\[(.*?)\]")


def compile_notes(content: Optional[str]) -> List[Question]:
	"""One NOTES_COMPLETION question per ``[answer]`` token, in document order.

	The question text keeps the brackets so the renderer can find the blank;
	the inner text is the answer key. Ids are fresh on every call, everything
	else is a pure function of ``content``.
	"""
	return [
		Question(
			id=new_id("q"),
			text=match.group(0),
			type=QuestionType.NOTES_COMPLETION,
			correct_answer=match.group(1),
		)
		for match in BRACKET_PATTERN.finditer(content or "")
	]


def extract_bracket_answer(text: str) -> Optional[str]:
	"""Inner text of the first non-empty ``[answer]`` in a sentence, if any."""
	for match in BRACKET_PATTERN.finditer(text or ""):
		if match.group(1):
			return match.group(1)
	return None
