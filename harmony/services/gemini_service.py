"""Gemini client used for text generations (artist backstories)."""

from typing import Optional

import google.generativeai as genai

BACKSTORY_PROMPT = """You are writing the backstory of a fictional AI music artist for a music platform.

Artist notes from the creator:
{prompt}

Visual style: {visual_style}
Speaking style: {speaking_style}
Genres: {genres}

Write 2-3 short paragraphs in an engaging, neutral tone.
Do NOT invent chart positions, sales, awards or real collaborations.

Write the backstory now:"""


class GeminiService:
    """Service for interacting with Google's Gemini AI."""

    def __init__(self, model_name: str = "gemini-1.5-flash", timeout: int = 30):
        self.model_name = model_name
        self.timeout = timeout
        self._api_key: Optional[str] = None
        self._model: Optional[genai.GenerativeModel] = None

    def _ensure_configured(self, api_key: str):
        """Configure Gemini API when the key changes (keys come from the key manager)."""
        if api_key != self._api_key:
            genai.configure(api_key=api_key)
            self._model = genai.GenerativeModel(self.model_name)
            self._api_key = api_key

    def refine_backstory_prompt(
        self,
        prompt: str,
        visual_style: Optional[str] = None,
        speaking_style: Optional[str] = None,
        genres: Optional[list[str]] = None,
    ) -> str:
        return BACKSTORY_PROMPT.format(
            prompt=prompt.strip(),
            visual_style=visual_style or "Unknown",
            speaking_style=speaking_style or "Unknown",
            genres=", ".join(genres or []) or "Unknown",
        )

    async def generate_text(self, api_key: str, prompt: str) -> str:
        """
        Send a prompt to Gemini and return the text.

        Raises ValueError on an empty response; transport errors propagate so
        the caller can record the failure.
        """
        self._ensure_configured(api_key)
        response = await self._model.generate_content_async(
            prompt, request_options={"timeout": self.timeout}
        )

        if not hasattr(response, "text") or not response.text:
            raise ValueError("Empty response from Gemini")

        return response.text.strip()
