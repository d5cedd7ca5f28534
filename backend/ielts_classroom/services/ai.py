"""
Generative-AI collaborator
==========================

Three remote operations the classroom relies on:

- audio transcription for speaking answers
- IELTS band grading for writing tasks
- quiz extraction from a photographed or scanned reading test

Every call is a single request with no retry. Failures surface as
``AIServiceError`` so the caller can show a message and let the teacher try
again; no draft or submission is modified by a failed call.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from ..core.builder import parse_quiz_document
from ..core.entities import WritingFeedback, WritingTaskType
from ..core.questions import QuestionGroup
from ..errors import AIServiceError, DraftValidationError
from ..gemini_client import GeminiClient
from ..settings import settings


logger = logging.getLogger(__name__)

_DATA_URI = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)(?:;[^,;]*)*?;base64,(?P<data>.*)$", re.DOTALL)


def parse_data_uri(value: str) -> Tuple[str, str]:
	"""``data:audio/webm;base64,AAAA`` -> ``("audio/webm", "AAAA")``."""
	match = _DATA_URI.match(value or "")
	if not match:
		raise DraftValidationError("Answer is not a base64 data URI.")
	return match.group("mime"), match.group("data")


def _extract_json_object(text: str) -> Dict[str, Any]:
	try:
		return json.loads(text)
	except Exception:
		pass
	code_block = re.search(r"```json\s*([\s\S]*?)\s*```", text)
	if code_block:
		candidate = code_block.group(1)
		try:
			return json.loads(candidate)
		except Exception:
			pass
	first = text.find("{")
	last = text.rfind("}")
	if first != -1 and last != -1 and last > first:
		candidate = text[first : last + 1]
		try:
			return json.loads(candidate)
		except Exception:
			pass
	raise AIServiceError("The AI service did not return valid JSON.")


def _transcription_prompt() -> str:
	return "Please transcribe this audio accurately. If it is an IELTS speaking test, organize the transcription by speaker."


def _writing_prompt(task_type: WritingTaskType, prompt_text: str, essay: str) -> str:
	first_criterion = "Task Achievement" if task_type == WritingTaskType.TASK_1 else "Task Response"
	return (
		f"You are an expert IELTS Examiner. Grade the following {task_type.value} essay.\n\n"
		f"Task prompt:\n\"{prompt_text}\"\n\n"
		f"Student essay:\n\"{essay}\"\n\n"
		"Evaluate based on the 4 IELTS criteria:\n"
		f"1. {first_criterion}\n"
		"2. Coherence & Cohesion\n"
		"3. Lexical Resource\n"
		"4. Grammatical Range & Accuracy\n\n"
		"Return ONLY a JSON object (no markdown) with this structure:\n"
		"{\n"
		'  "overallBand": number (0-9, in 0.5 increments),\n'
		'  "criteria": {\n'
		'    "taskAchievement": {"score": number, "comment": string},\n'
		'    "coherenceCohesion": {"score": number, "comment": string},\n'
		'    "lexicalResource": {"score": number, "comment": string},\n'
		'    "grammaticalRange": {"score": number, "comment": string}\n'
		"  },\n"
		'  "correctedEssay": string (the essay as HTML, errors wrapped in <span class="error">...</span> '
		'followed by <span class="correction">...</span>),\n'
		'  "generalComment": string\n'
		"}"
	)


def _extraction_prompt() -> str:
	return (
		"You are an expert IELTS data extractor. The attached document is an IELTS Reading test.\n"
		"Convert it into ONE JSON object with this shape:\n"
		"{\n"
		'  "passageContent": string (the reading text as clean HTML, <p> for paragraphs, <h2> for subheadings),\n'
		'  "questionGroups": [{\n'
		'    "type": "MCQ" | "FILL_IN_BLANKS" | "NOTES_COMPLETION" | "TRUE_FALSE_NG" | "YES_NO_NG" | '
		'"MATCHING_HEADINGS" | "MATCHING_FEATURES" | "MATCHING_INFORMATION" | "MATCHING_SENTENCE_ENDINGS",\n'
		'    "title": string, "instruction": string,\n'
		'    "headingList": [string], "matchOptions": [string], "content": string,\n'
		'    "questions": [{"text": string, "type": same as group, "options": [string], "correctAnswer": string, "maxSelection": number}]\n'
		"  }]\n"
		"}\n\n"
		"Rules:\n"
		"1. Remove question numbers (\"1.\", \"Question 7\") from question text.\n"
		"2. MCQ options go in 'options' WITHOUT their letter labels; correctAnswer is the letter (A, B, ...), "
		"several correct letters are comma-joined and sorted (\"A,C\") with maxSelection set to their count.\n"
		"3. Notes/summary completion: put the notes in 'content' with each answer in square brackets, "
		"e.g. \"The process begins when the [sun] heats the ocean.\" Leave 'questions' empty.\n"
		"4. Matching headings: headings go in 'headingList'; each question's text is the paragraph "
		"(\"Paragraph A\") and correctAnswer the lower-case roman numeral (\"iv\").\n"
		"5. Matching features / sentence endings: options go in 'matchOptions'; correctAnswer is the letter.\n"
		"6. TRUE/FALSE/NOT GIVEN and YES/NO/NOT GIVEN answers are upper case (\"NOT GIVEN\").\n"
		"7. Every question's type equals its group's type.\n\n"
		"Return ONLY the raw JSON object."
	)


class AIService:
	def __init__(self, client_factory: Callable[[], GeminiClient] = GeminiClient) -> None:
		self._client_factory = client_factory

	def _client(self) -> GeminiClient:
		try:
			return self._client_factory()
		except ValueError as e:
			# Missing API key
			raise AIServiceError(str(e)) from e

	async def transcribe_audio(self, audio_b64: str, mime_type: str) -> str:
		client = self._client()
		try:
			text = await client.generate_multimodal([
				{"inline_data": {"mime_type": mime_type, "data": audio_b64}},
				{"text": _transcription_prompt()},
			])
		except Exception as e:
			logger.exception("Transcription failed")
			raise AIServiceError("Transcription failed. Please try again.") from e
		finally:
			await client.aclose()
		return text.strip() or "No transcription generated."

	async def grade_writing_task(
		self,
		task_type: WritingTaskType,
		prompt_text: str,
		essay: str,
		chart_image_b64: Optional[str] = None,
	) -> WritingFeedback:
		task_type = WritingTaskType(task_type)
		essay = essay[: settings.max_essay_chars]
		prompt = _writing_prompt(task_type, prompt_text, essay)
		client = self._client()
		try:
			if task_type == WritingTaskType.TASK_1 and chart_image_b64:
				mime, data = parse_data_uri(chart_image_b64) if chart_image_b64.startswith("data:") else ("image/png", chart_image_b64)
				raw = await client.generate_multimodal(
					[{"inline_data": {"mime_type": mime, "data": data}}, {"text": prompt}],
					response_mime_type="application/json",
				)
			else:
				raw = await client.generate(prompt, response_mime_type="application/json")
		except Exception as e:
			logger.exception("Writing grading failed")
			raise AIServiceError("AI Grading Failed. Please try again.") from e
		finally:
			await client.aclose()
		data = _extract_json_object(raw)
		try:
			return WritingFeedback.model_validate(data)
		except ValidationError as e:
			logger.warning("Writing feedback had an unexpected shape: %s", e)
			raise AIServiceError("The AI grader returned feedback in an unexpected format.") from e

	async def extract_quiz(self, file_b64: str, mime_type: str = "image/png") -> Tuple[str, List[QuestionGroup]]:
		client = self._client()
		try:
			raw = await client.generate_multimodal(
				[{"inline_data": {"mime_type": mime_type, "data": file_b64}}, {"text": _extraction_prompt()}],
				response_mime_type="application/json",
			)
		except Exception as e:
			logger.exception("Quiz extraction failed")
			raise AIServiceError("Failed to extract data from file. Please ensure it is clear.") from e
		finally:
			await client.aclose()
		try:
			return parse_quiz_document(_extract_json_object(raw))
		except DraftValidationError as e:
			logger.warning("Extracted quiz was rejected: %s", e.message)
			raise AIServiceError(f"The extracted quiz could not be used: {e.message}") from e


def get_ai_service() -> AIService:
	return AIService()
