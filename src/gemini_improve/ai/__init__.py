"""Gemini client, request payloads and response parsing."""

from .ai_types import ApiResult, Failure, RequestPayload, Success
from .client import ClientSettings, GeminiClient

__all__ = ["ApiResult", "ClientSettings", "Failure", "GeminiClient", "RequestPayload", "Success"]
