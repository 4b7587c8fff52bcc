"""
Text generation for INTERVAI.

- QuestionWriter: prompts Claude for interview question/answer pairs
- parse_question_pairs: extracts the pairs from the raw response
"""

from intervai.agents.question_writer import (
    QuestionWriter,
    build_prompt,
    classify_upstream_error,
)
from intervai.agents.parsing import parse_question_pairs, find_json_array

__all__ = [
    "QuestionWriter",
    "build_prompt",
    "classify_upstream_error",
    "parse_question_pairs",
    "find_json_array",
]
