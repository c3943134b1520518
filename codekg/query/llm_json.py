"""
LLM JSON Replies
================

Tolerant extraction of a JSON object from an LLM reply.
"""

import json
import re
from typing import Any, Dict

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def parse_json_object(text: str) -> Dict[str, Any]:
    """
    Extract the JSON object from a reply.

    Strips markdown code fences and anything outside the outermost braces.

    Raises:
        ValueError: if no JSON object can be decoded
    """
    if not text or not text.strip():
        raise ValueError("empty response")

    fenced = _FENCE.search(text)
    candidate = fenced.group(1) if fenced else text

    start = candidate.find("{")
    end = candidate.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("no JSON object in response")

    try:
        data = json.loads(candidate[start:end + 1])
    except json.JSONDecodeError as e:
        raise ValueError(f"invalid JSON: {e.msg}") from e
    if not isinstance(data, dict):
        raise ValueError("JSON response is not an object")
    return data
