"""Tests for the AI collaborator, run against a fake Gemini client."""
import asyncio
import json

import httpx
import pytest

from ielts_classroom.core.entities import WritingTaskType
from ielts_classroom.core.questions import QuestionType
from ielts_classroom.errors import AIServiceError, DraftValidationError
from ielts_classroom.gemini_client import GeminiClient
from ielts_classroom.services.ai import AIService, parse_data_uri


FEEDBACK = {
    "overallBand": 6.5,
    "criteria": {
        "taskAchievement": {"score": 6, "comment": "Covers the main trends."},
        "coherenceCohesion": {"score": 7, "comment": "Logical."},
        "lexicalResource": {"score": 6.5, "comment": "Some range."},
        "grammaticalRange": {"score": 6, "comment": "Errors in tense."},
    },
    "correctedEssay": "<p>The chart <span class=\"error\">show</span><span class=\"correction\">shows</span></p>",
    "generalComment": "Good effort.",
}


def run(coro):
    return asyncio.run(coro)


class TestDataUri:
    def test_parse(self):
        assert parse_data_uri("data:audio/webm;codecs=opus;base64,AAAA") == ("audio/webm", "AAAA")
        assert parse_data_uri("data:image/png;base64,iVBO") == ("image/png", "iVBO")

    def test_rejects_plain_text(self):
        with pytest.raises(DraftValidationError):
            parse_data_uri("just an answer")


class TestTranscription:
    def test_sends_audio_inline(self, ai_service, fake_client):
        fake_client.reply = "  Examiner: Hello. \n"
        text = run(ai_service.transcribe_audio("AAAA", "audio/webm"))
        assert text == "Examiner: Hello."
        kind, parts, _ = fake_client.calls[0]
        assert kind == "multimodal"
        assert parts[0] == {"inline_data": {"mime_type": "audio/webm", "data": "AAAA"}}
        assert fake_client.closed

    def test_empty_reply(self, ai_service, fake_client):
        fake_client.reply = ""
        assert run(ai_service.transcribe_audio("AAAA", "audio/webm")) == "No transcription generated."

    def test_failure(self, ai_service, fake_client):
        fake_client.error = RuntimeError("503")
        with pytest.raises(AIServiceError):
            run(ai_service.transcribe_audio("AAAA", "audio/webm"))
        assert fake_client.closed


class TestWritingGrading:
    def test_task_2_is_text_only(self, ai_service, fake_client):
        fake_client.reply = json.dumps(FEEDBACK)
        feedback = run(ai_service.grade_writing_task(WritingTaskType.TASK_2, "Discuss both views.", "Essay body", "data:image/png;base64,iVBO"))
        assert feedback.overall_band == 6.5
        assert feedback.criteria.coherence_cohesion.score == 7
        kind, prompt, mime = fake_client.calls[0]
        assert kind == "text"
        assert mime == "application/json"
        assert "Task Response" in prompt

    def test_task_1_attaches_chart(self, ai_service, fake_client):
        fake_client.reply = "```json\n" + json.dumps(FEEDBACK) + "\n```"
        run(ai_service.grade_writing_task(WritingTaskType.TASK_1, "Describe the chart.", "Essay", "data:image/jpeg;base64,/9j/"))
        kind, parts, _ = fake_client.calls[0]
        assert kind == "multimodal"
        assert parts[0]["inline_data"] == {"mime_type": "image/jpeg", "data": "/9j/"}
        assert "Task Achievement" in parts[1]["text"]

    def test_long_essays_are_clamped(self, ai_service, fake_client, monkeypatch):
        from ielts_classroom.services import ai as ai_module

        monkeypatch.setattr(ai_module.settings, "max_essay_chars", 10)
        fake_client.reply = json.dumps(FEEDBACK)
        run(ai_service.grade_writing_task(WritingTaskType.TASK_2, "Prompt", "0123456789TAIL"))
        assert "TAIL" not in fake_client.calls[0][1]

    @pytest.mark.parametrize("reply", ["I cannot grade this.", json.dumps({"overallBand": 7})])
    def test_bad_replies(self, ai_service, fake_client, reply):
        fake_client.reply = reply
        with pytest.raises(AIServiceError):
            run(ai_service.grade_writing_task(WritingTaskType.TASK_2, "Prompt", "Essay"))

    def test_missing_api_key(self):
        def no_key():
            raise ValueError("GEMINI_API_KEY is not configured")

        with pytest.raises(AIServiceError, match="GEMINI_API_KEY"):
            run(AIService(client_factory=no_key).grade_writing_task(WritingTaskType.TASK_2, "P", "E"))


class TestQuizExtraction:
    def test_extracted_quiz_is_normalized(self, ai_service, fake_client):
        fake_client.reply = "Here you go: " + json.dumps({
            "passageContent": "<p>Text</p>",
            "questionGroups": [{
                "type": "TRUE_FALSE_NG",
                "title": "Questions 1-2",
                "instruction": "",
                "questions": [{"id": "1", "text": "1. Bees sleep.", "type": "MCQ", "correctAnswer": "FALSE"}],
            }],
        })
        passage, groups = run(ai_service.extract_quiz("JVBERi0=", "application/pdf"))
        assert passage == "<p>Text</p>"
        question = groups[0].questions[0]
        assert question.type == QuestionType.TRUE_FALSE_NG
        assert question.text == "Bees sleep."
        assert question.id != "1"

    def test_unusable_extraction(self, ai_service, fake_client):
        fake_client.reply = json.dumps({"questionGroups": []})
        with pytest.raises(AIServiceError, match="could not be used"):
            run(ai_service.extract_quiz("AAAA", "image/png"))


class TestGeminiClient:
    def _client(self, handler):
        client = GeminiClient(api_key="test-key", model="gemini-test")
        run(client._client.aclose())
        client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return client

    def test_reads_candidate_text(self, monkeypatch):
        from ielts_classroom import gemini_client

        monkeypatch.setattr(gemini_client.settings, "gemini_provider", "ai_studio")
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            seen["key"] = request.url.params.get("key")
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "hi"}]}}]})

        client = self._client(handler)
        assert run(client.generate("Say hi", response_mime_type="application/json")) == "hi"
        assert seen["key"] == "test-key"
        assert seen["body"]["generationConfig"] == {"responseMimeType": "application/json"}
        assert seen["body"]["contents"][0]["parts"][0]["text"] == "Say hi"

    def test_http_errors_propagate(self):
        client = self._client(lambda request: httpx.Response(500, json={"error": "down"}))
        with pytest.raises(httpx.HTTPStatusError):
            run(client.generate_multimodal([{"text": "x"}]))

    def test_unexpected_shape(self):
        client = self._client(lambda request: httpx.Response(200, json={"candidates": []}))
        with pytest.raises(RuntimeError, match="Unexpected Gemini response"):
            run(client.generate("x"))

    def test_vertex_needs_a_project(self, monkeypatch):
        from ielts_classroom import gemini_client

        monkeypatch.setattr(gemini_client.settings, "gemini_provider", "vertex")
        monkeypatch.setattr(gemini_client.settings, "vertex_project", None)
        with pytest.raises(ValueError, match="GEMINI_VERTEX_PROJECT"):
            GeminiClient(api_key="test-key")

    def test_vertex_sends_key_as_header(self, monkeypatch):
        from ielts_classroom import gemini_client

        monkeypatch.setattr(gemini_client.settings, "gemini_provider", "vertex")
        monkeypatch.setattr(gemini_client.settings, "vertex_project", "ielts-prod")
        monkeypatch.setattr(gemini_client.settings, "vertex_region", "europe-west4")
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["header"] = request.headers.get("x-goog-api-key")
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "ok"}]}}]})

        client = self._client(handler)
        assert run(client.generate("x")) == "ok"
        assert seen["url"].startswith("https://europe-west4-aiplatform.googleapis.com/v1/projects/ielts-prod/")
        assert "key=" not in seen["url"]
        assert seen["header"] == "test-key"
