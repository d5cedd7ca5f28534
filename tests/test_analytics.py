"""Tests for per-assignment analytics and the class gradebook."""
from datetime import date

import pytest

from ielts_classroom.core.analytics import (
    analyze_assignment,
    assignment_average,
    class_gradebook,
    parse_fraction_grade,
    round_half_up,
    student_status,
)
from ielts_classroom.core.entities import (
    Assignment,
    AssignmentType,
    QuestionResult,
    Submission,
    SubmissionStatus,
    User,
)
from ielts_classroom.core.questions import Question, QuestionType


def students(n):
    return [User(id=f"s{i}", name=f"Student {i}", enrolled_class_ids=["c"]) for i in range(n)]


def questions(n):
    return [Question(id=f"q{i}", type=QuestionType.FILL_IN_BLANKS, correct_answer="x") for i in range(n)]


def graded(student_id, grade, correct_ids=(), attempted_ids=()):
    report = {
        qid: QuestionResult(question_id=qid, is_correct=qid in correct_ids, student_answer="", correct_answer="x")
        for qid in attempted_ids
    }
    return Submission(
        assignment_id="a", student_id=student_id, status=SubmissionStatus.GRADED, grade=grade, report=report,
    )


def assignment(aid="a", due="2030-01-01", kind=AssignmentType.READING):
    return Assignment(id=aid, class_id="c", title=aid.upper(), type=kind, due_date=due)


class TestParseFractionGrade:
    def test_values(self):
        assert parse_fraction_grade("8/10") == 80.0
        assert parse_fraction_grade("0/0") is None
        assert parse_fraction_grade("6.5") is None
        assert parse_fraction_grade("a/b") is None
        assert parse_fraction_grade(None) is None

    @pytest.mark.parametrize("grade", ["Infinity/10", "5/nan", "1e400/1", "nan/10", "5/inf", "1e308/1e-308"])
    def test_non_finite_grades_are_ignored(self, grade):
        assert parse_fraction_grade(grade) is None


class TestAnalyzeAssignment:
    def test_average_and_completion(self):
        subs = [graded(f"s{i}", "8/10") for i in range(6)]
        result = analyze_assignment(students(10), subs, questions(0))
        assert result.average_score == 80
        assert result.completion_rate == 60

    def test_hardest_question_first(self):
        qs = questions(3)
        ids = [x.id for x in qs]
        subs = [
            graded("s0", "2/3", correct_ids={"q0", "q2"}, attempted_ids=ids),
            graded("s1", "1/3", correct_ids={"q0"}, attempted_ids=ids),
        ]
        result = analyze_assignment(students(2), subs, qs)
        assert [s.question.id for s in result.question_stats] == ["q1", "q2", "q0"]
        assert [s.accuracy for s in result.question_stats] == [0, 50, 100]
        assert result.hardest_question.number == 2

    def test_ties_keep_question_order(self):
        qs = questions(3)
        subs = [graded("s0", "0/3", attempted_ids=[x.id for x in qs])]
        result = analyze_assignment(students(1), subs, qs)
        assert [s.number for s in result.question_stats] == [1, 2, 3]

    def test_only_auto_graded_submissions_count_for_accuracy(self):
        qs = questions(1)
        manual = Submission(assignment_id="a", student_id="s1", status=SubmissionStatus.GRADED, grade="7")
        pending = Submission(assignment_id="a", student_id="s2")
        subs = [graded("s0", "1/1", correct_ids={"q0"}, attempted_ids={"q0"}), manual, pending]
        result = analyze_assignment(students(3), subs, qs)
        assert result.question_stats[0].attempt_count == 1
        assert result.graded_count == 1
        assert result.average_score == 100
        assert result.completion_rate == 100

    def test_no_submissions(self):
        result = analyze_assignment(students(5), [], questions(2))
        assert result.average_score == 0
        assert result.completion_rate == 0
        assert all(s.accuracy == 0 for s in result.question_stats)

    def test_empty_roster(self):
        result = analyze_assignment([], [graded("ghost", "1/1")], questions(0))
        assert result.completion_rate == 0

    def test_rates_are_clamped(self):
        # Students who left the class still have their submissions
        subs = [graded(f"s{i}", "12/10") for i in range(4)]
        result = analyze_assignment(students(2), subs, questions(0))
        assert result.completion_rate == 100
        assert result.average_score == 100


class TestGradebook:
    def test_status_labels(self):
        today = date(2025, 6, 1)
        past, future = assignment(due="2025-05-01"), assignment(due="2025-07-01")
        turned_in = Submission(id="sub1", assignment_id="a", student_id="s0")
        marked = turned_in.model_copy(update={"status": SubmissionStatus.GRADED, "grade": "7/10"})
        band = turned_in.model_copy(update={"status": SubmissionStatus.GRADED, "grade": None})

        assert student_status(turned_in, past, today).label == "Turned In"
        assert student_status(marked, past, today).label == "7/10"
        assert student_status(band, past, today).label == "Graded"
        assert student_status(None, past, today).status == "MISSING"
        assert student_status(None, future, today).status == "ASSIGNED"
        assert student_status(None, assignment(due="someday"), today).label == "-"

    def test_average(self):
        subs = [
            Submission(assignment_id="a", student_id="s0", grade="8/10"),
            Submission(assignment_id="a", student_id="s1", grade="5/10"),
            Submission(assignment_id="a", student_id="s2", grade="Band 7"),
        ]
        assert assignment_average(subs) == "65%"
        assert assignment_average([]) == "-"

    def test_class_gradebook(self):
        older, newer = assignment("old", due="2025-01-01"), assignment("new", due="2025-03-01")
        subs = [Submission(id="sub1", assignment_id="old", student_id="s0", status=SubmissionStatus.GRADED, grade="3/4")]
        book = class_gradebook(students(2), [older, newer], subs, today=date(2025, 2, 1))
        assert [a.id for a in book.assignments] == ["new", "old"]
        assert book.rows["s0"]["old"].submission_id == "sub1"
        assert book.rows["s1"]["old"].status == "MISSING"
        assert book.rows["s1"]["new"].status == "ASSIGNED"
        assert book.averages == {"new": "-", "old": "75%"}


class TestRobustness:
    @pytest.mark.parametrize("grade", ["Infinity/10", "5/nan", "1e400/1"])
    def test_teacher_typed_grades_never_break_analytics(self, grade):
        subs = [graded("s0", grade, correct_ids={"q0"}, attempted_ids={"q0"}), graded("s1", "1/1", attempted_ids={"q0"})]
        result = analyze_assignment(students(2), subs, questions(1))
        assert result.average_score == 50
        assert 0 <= result.completion_rate <= 100
        assert assignment_average(subs) == "100%"

    def test_huge_finite_grades_stay_in_range(self):
        subs = [graded(f"s{i}", "1e300/1e-5") for i in range(3)]
        assert analyze_assignment(students(3), subs, questions(0)).average_score == 100


class TestRounding:
    def test_half_rounds_up(self):
        assert round_half_up(12.5) == 13
        assert round_half_up(62.5) == 63
        assert round_half_up(0.5) == 1
        assert round_half_up(12.49) == 12

    def test_analytics_round_halves_up(self):
        qs = questions(1)
        subs = [
            graded(f"s{i}", "5/8", correct_ids={"q0"} if i == 0 else set(), attempted_ids={"q0"})
            for i in range(8)
        ]
        result = analyze_assignment(students(16), subs, qs)
        assert result.average_score == 63
        assert result.question_stats[0].accuracy == 13
        assert result.completion_rate == 50
        assert assignment_average(subs) == "63%"

    def test_completion_rounds_half_up(self):
        subs = [graded(f"s{i}", "1/1") for i in range(5)]
        assert analyze_assignment(students(8), subs, questions(0)).completion_rate == 63
