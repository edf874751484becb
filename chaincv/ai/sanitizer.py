"""Recover the structured feedback object from free-text model output.

Models are asked for bare JSON but regularly wrap it in code fences or add
commentary around it. The recovery is an ordered chain; the first candidate
that looks like a JSON object is parsed and checked for the required keys.
"""

from __future__ import annotations

import json
import re
from typing import Any, Sequence

from chaincv.schemas.resume import REQUIRED_ANALYSIS_FIELDS

_LEADING_FENCE_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_TRAILING_FENCE_RE = re.compile(r"\s*```\Z", re.IGNORECASE)
# Greedy first "{" to last "}"; not a balanced scan.
_OBJECT_SPAN_RE = re.compile(r"\{.*\}", re.DOTALL)


class ResponseSanitizationError(RuntimeError):
    def __init__(self, message: str, *, code: str, missing_fields: Sequence[str] = ()):
        super().__init__(message)
        self.code = code
        self.missing_fields = list(missing_fields)


def _strip_fences(text: str) -> str:
    cleaned = _LEADING_FENCE_RE.sub("", text, count=1)
    return _TRAILING_FENCE_RE.sub("", cleaned, count=1)


def _trim_to_braces(text: str) -> str:
    start = text.find("{")
    if start != -1:
        text = text[start:]
    end = text.rfind("}")
    if end != -1:
        text = text[: end + 1]
    return text.strip()


def extract_json_candidate(raw: str) -> str:
    cleaned = _trim_to_braces(_strip_fences(raw or ""))
    if cleaned.startswith("{") and cleaned.endswith("}"):
        return cleaned

    match = _OBJECT_SPAN_RE.search(raw or "")
    if match is None:
        raise ResponseSanitizationError("No JSON object found in response", code="no_json")
    return match.group(0)


def sanitize_model_response(
    raw: str,
    required_fields: Sequence[str] = REQUIRED_ANALYSIS_FIELDS,
) -> dict[str, Any]:
    candidate = extract_json_candidate(raw)

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise ResponseSanitizationError(f"Invalid JSON in response: {exc.msg}", code="invalid_json") from exc

    if not isinstance(parsed, dict):
        raise ResponseSanitizationError("Response JSON is not an object", code="invalid_json")

    missing = [field for field in required_fields if field not in parsed]
    if missing:
        raise ResponseSanitizationError(
            f"Missing required fields: {', '.join(missing)}",
            code="missing_fields",
            missing_fields=missing,
        )

    return parsed
