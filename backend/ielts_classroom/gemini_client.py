from __future__ import annotations
import httpx
from typing import Any, Dict, List, Optional
from .settings import settings

AI_STUDIO_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
VERTEX_URL = (
	"https://{region}-aiplatform.googleapis.com/v1/projects/{project}"
	"/locations/{region}/publishers/google/models/{model}:generateContent"
)


class GeminiClient:
	"""One ``generateContent`` request per call. No retries; callers decide what a failure means."""

	def __init__(self, api_key: Optional[str] = None, *, model: Optional[str] = None) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		if settings.gemini_provider == "vertex":
			if not settings.vertex_project:
				raise ValueError("GEMINI_VERTEX_PROJECT is required when GEMINI_PROVIDER=vertex")
			self.url = VERTEX_URL.format(region=settings.vertex_region, project=settings.vertex_project, model=self.model)
			# Vertex takes the key as a header, AI Studio as a query parameter
			self._headers = {"x-goog-api-key": self.api_key}
			self._params: Dict[str, str] = {}
		else:
			self.url = AI_STUDIO_URL.format(model=self.model)
			self._headers = {}
			self._params = {"key": self.api_key}
		self._client = httpx.AsyncClient(timeout=settings.gemini_timeout_seconds)

	async def generate(self, prompt: str, *, response_mime_type: Optional[str] = None) -> str:
		return await self.generate_multimodal([{"text": prompt}], response_mime_type=response_mime_type)

	async def generate_multimodal(
		self,
		parts: List[Dict[str, Any]],
		*,
		role: str = "user",
		response_mime_type: Optional[str] = None,
	) -> str:
		payload: Dict[str, Any] = {"contents": [{"role": role, "parts": parts}]}
		if response_mime_type:
			payload["generationConfig"] = {"responseMimeType": response_mime_type}
		r = await self._client.post(self.url, params=self._params, headers=self._headers, json=payload)
		r.raise_for_status()
		try:
			return r.json()["candidates"][0]["content"]["parts"][0]["text"]
		except (ValueError, KeyError, IndexError, TypeError):
			raise RuntimeError(f"Unexpected Gemini response: {r.text[:500]}")

	async def aclose(self) -> None:
		await self._client.aclose()
