"""Gemini 호출 설정."""

DEFAULT_MODEL = "gemini-2.5-flash-lite"
MAX_OUTPUT_TOKENS = 2048
TEMPERATURE = 0.2
