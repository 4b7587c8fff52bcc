"""
Turn raw model output into question/answer pairs.

Models wrap JSON in markdown fences, prepend chatter, and occasionally put
brackets inside answer text, so the array is located by bracket matching
that skips over string literals rather than by a regex.
"""

import json
import re
from typing import Any, Dict, List, Optional

from intervai.errors import ParseError

MAX_PAIRS = 5

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def find_json_array(text: str) -> Optional[str]:
    """
    Return the first balanced top-level `[...]` in `text`, or None.

    Brackets inside JSON string literals (including escaped quotes) are
    ignored.
    """
    start = text.find("[")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue

            if ch == '"':
                in_string = True
            elif ch == "[":
                depth += 1
            elif ch == "]":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        # Unbalanced from this opening bracket; try the next one
        start = text.find("[", start + 1)
    return None


def _is_valid_pair(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    question = item.get("question")
    answer = item.get("answer")
    return (
        isinstance(question, str) and question.strip() != ""
        and isinstance(answer, str) and answer.strip() != ""
    )


def parse_question_pairs(raw: Optional[str], limit: int = MAX_PAIRS) -> List[Dict[str, str]]:
    """
    Extract up to `limit` {question, answer} pairs from model output.

    Raises:
        ParseError: Empty response, no array, undecodable array, or no
            valid pairs in it
    """
    if not raw or not raw.strip():
        raise ParseError("Empty AI response")

    text = strip_code_fences(raw)
    candidate = find_json_array(text)
    if candidate is None:
        raise ParseError("Invalid AI response format: no JSON array found")

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid AI response format: {e.msg}") from e

    pairs = [
        {"question": item["question"].strip(), "answer": item["answer"].strip()}
        for item in data
        if _is_valid_pair(item)
    ][:limit]

    if not pairs:
        raise ParseError("No valid questions generated")
    return pairs
