"""Google Gemini Classifier - ClassifierPort 구현체.

generate_content (async) + JSON 스키마 기반 구조화 출력.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from google import genai
from google.genai import errors, types
from pydantic import BaseModel, Field, ValidationError

from insect_worker.application.identify.dto import InsectIdentification
from insect_worker.application.identify.exceptions import ClassificationError
from insect_worker.application.identify.ports.classifier import ClassifierPort
from insect_worker.infrastructure.llm.gemini.config import (
    DEFAULT_MODEL,
    MAX_OUTPUT_TOKENS,
    TEMPERATURE,
)

logger = logging.getLogger(__name__)

IDENTIFY_PROMPT = """Analyze this insect image and provide identification details as JSON:
- name: common name of the insect
- scientific_name: scientific name (genus species)
- description: physical characteristics, size, color, etc.
- confidence: 0.0 - 1.0
- additional_info: habitat, behavior, diet

Be accurate and detailed. If you're not confident, set confidence lower.
Return ONLY valid JSON, no markdown formatting."""

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$")


# ==========================================
# Pydantic 모델 (구조화 출력)
# ==========================================


class GeminiIdentification(BaseModel):
    """Gemini 응답 구조."""

    name: str = Field(min_length=1)
    scientific_name: str = Field(min_length=1)
    description: str = ""
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    additional_info: Optional[dict[str, Any]] = None


class GeminiInsectClassifier(ClassifierPort):
    """Google Gemini Vision 구현체."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        api_key: str | None = None,
        client: genai.Client | None = None,
    ):
        """초기화.

        Args:
            model: Gemini 모델명
            api_key: Google API 키 (None이면 GOOGLE_API_KEY 환경변수 사용)
            client: 미리 구성된 genai.Client
        """
        if client is not None:
            self._client = client
        elif api_key:
            self._client = genai.Client(api_key=api_key)
        else:
            self._client = genai.Client()

        self._model = model
        logger.info("GeminiInsectClassifier initialized (model=%s)", model)

    async def classify(self, image_bytes: bytes, mime_type: str) -> InsectIdentification:
        contents = [
            types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
            IDENTIFY_PROMPT,
        ]

        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=contents,
                config={
                    "response_mime_type": "application/json",
                    "response_json_schema": GeminiIdentification.model_json_schema(),
                    "max_output_tokens": MAX_OUTPUT_TOKENS,
                    "temperature": TEMPERATURE,
                },
            )
        except errors.APIError as e:
            logger.error("gemini_api_error", extra={"model": self._model, "error": str(e)})
            raise ClassificationError(str(e)) from e

        text = strip_markdown_fences(response.text or "")
        if not text:
            raise ClassificationError("empty response from Gemini API")

        try:
            parsed = GeminiIdentification.model_validate_json(text)
        except ValidationError as e:
            raise ClassificationError(
                f"Invalid response from Gemini API: {e.error_count()} validation errors"
            ) from e

        return InsectIdentification(
            name=parsed.name,
            scientific_name=parsed.scientific_name,
            description=parsed.description,
            confidence=parsed.confidence,
            additional_info=parsed.additional_info or {},
        )


def strip_markdown_fences(text: str) -> str:
    """```json ... ``` 래핑 제거."""
    return _FENCE_PATTERN.sub("", text.strip()).strip()
