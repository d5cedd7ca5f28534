from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import ConfigDict, Field

from .questions import CamelModel, Question, QuestionGroup, new_id


ESSAY_ANSWER_KEY = "essay"


class AssignmentType(str, Enum):
	READING = "READING"
	LISTENING = "LISTENING"
	WRITING = "WRITING"
	SPEAKING = "SPEAKING"


AUTO_GRADED_TYPES = (AssignmentType.READING, AssignmentType.LISTENING)


class WritingTaskType(str, Enum):
	TASK_1 = "TASK_1"
	TASK_2 = "TASK_2"


class SubmissionStatus(str, Enum):
	SUBMITTED = "SUBMITTED"
	GRADED = "GRADED"


class UserRole(str, Enum):
	TEACHER = "TEACHER"
	STUDENT = "STUDENT"


class ClassGroup(CamelModel):
	id: str = Field(default_factory=lambda: new_id("cls"))
	name: str
	schedule: str = ""
	description: Optional[str] = None


class User(CamelModel):
	id: str = Field(default_factory=lambda: new_id("usr"))
	role: UserRole = UserRole.STUDENT
	name: str
	access_code: Optional[str] = None
	enrolled_class_ids: List[str] = Field(default_factory=list)


class AssignmentGroup(CamelModel):
	"""A folder. Assignments point at it; it owns nothing."""

	id: str = Field(default_factory=lambda: new_id("grp"))
	class_id: str
	title: str
	description: Optional[str] = None
	created_at: str = ""
	order: int = 0


class Assignment(CamelModel):
	model_config = ConfigDict(frozen=True)

	id: str
	class_id: str
	group_id: Optional[str] = None
	title: str
	type: AssignmentType
	description: str = ""
	due_date: str
	time_limit: Optional[int] = None

	# Reading
	passage_content: Optional[str] = None
	question_groups: List[QuestionGroup] = Field(default_factory=list)

	# Listening
	video_url: Optional[str] = None

	# Writing
	writing_task_type: Optional[WritingTaskType] = None
	writing_prompt: Optional[str] = None
	writing_image: Optional[str] = None

	# Older documents carry a flat list instead of groups
	questions: List[Question] = Field(default_factory=list)


class QuestionResult(CamelModel):
	question_id: str
	is_correct: bool
	student_answer: str
	correct_answer: str


class SubmissionMetadata(CamelModel):
	tab_switches: int = 0
	paste_attempts: int = 0


class WritingCriteria(CamelModel):
	score: float
	comment: str = ""


class WritingCriteriaSet(CamelModel):
	task_achievement: WritingCriteria
	coherence_cohesion: WritingCriteria
	lexical_resource: WritingCriteria
	grammatical_range: WritingCriteria


class WritingFeedback(CamelModel):
	overall_band: float
	criteria: WritingCriteriaSet
	corrected_essay: str = ""
	general_comment: str = ""


class Submission(CamelModel):
	id: str = Field(default_factory=lambda: new_id("sub"))
	assignment_id: str
	student_id: str
	student_name: str = ""
	answers: Dict[str, str] = Field(default_factory=dict)
	status: SubmissionStatus = SubmissionStatus.SUBMITTED
	grade: Optional[str] = None
	feedback: Optional[str] = None
	transcription: Optional[str] = None
	report: Optional[Dict[str, QuestionResult]] = None
	ai_writing_feedback: Optional[WritingFeedback] = None
	metadata: Optional[SubmissionMetadata] = None
