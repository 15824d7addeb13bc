"""
LLM Response Handler - pull text and JSON out of Gemini responses
"""

import json
from typing import Any


class EmptyResponseError(ValueError):
    """The model returned no usable text (blocked or empty candidates)"""


class LLMResponseHandler:
    """
    Helpers for turning raw model responses into usable text
    """

    @staticmethod
    def extract_text(response: Any) -> str:
        """
        Return the response text, failing loudly when generation was blocked.

        Args:
            response: A GenerateContentResponse (or anything with ``.text``)

        Returns:
            The stripped response text
        """
        candidates = getattr(response, "candidates", None)
        if candidates is not None:
            if not candidates or not candidates[0].content.parts:
                finish_reason = candidates[0].finish_reason if candidates else "Unknown"
                raise EmptyResponseError(f"Gemini returned no content. Finish reason: {finish_reason}")

        text = response.text or ""
        if not text.strip():
            raise EmptyResponseError("Gemini returned an empty response")
        return text.strip()

    @staticmethod
    def strip_code_fences(text: str) -> str:
        """Remove a wrapping markdown code block (```json ... ``` or ``` ... ```)"""
        text = text.strip()

        if text.startswith("```json"):
            text = text[7:]
        elif text.startswith("```"):
            text = text[3:]
        if text.endswith("```"):
            text = text[:-3]

        return text.strip()

    @staticmethod
    def parse_json(text: str) -> Any:
        """Parse a JSON payload that may be wrapped in a code block"""
        return json.loads(LLMResponseHandler.strip_code_fences(text))
