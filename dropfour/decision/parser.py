"""
Reply Parser - Turns an inference response into a playable column.

The endpoint answers {"answer": str}; the answer is free text that should
contain a JSON object {"column": int, "commentary": str}. The first
balanced {...} substring is extracted, decoded and validated against
the current board. Anything short of a playable column is a ParseError.
"""

from __future__ import annotations
from typing import Any, Optional
import json

from pydantic import BaseModel, StrictInt, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..engine_core.state import Board
from ..engine_core.rules import is_valid_move
from ..errors import ParseError
from ..remote.client import InferenceResponse

DEFAULT_COMMENTARY = "Let me think about this move..."


class MoveReply(BaseModel):
    """Structured move extracted from the answer text."""
    column: StrictInt
    commentary: str = DEFAULT_COMMENTARY

    @field_validator("commentary", mode="before")
    @classmethod
    def _default_commentary(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_COMMENTARY
        return value


def extract_json_object(text: str) -> Optional[str]:
    """
    First balanced {...} substring of text, or None.

    Braces inside JSON string literals do not count toward nesting.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:index + 1]
        start = text.find("{", start + 1)
    return None


def parse_move_reply(response: Any, board: Board) -> MoveReply:
    """
    Validate a raw response against the board.

    Raises ParseError for a missing answer, no JSON object, a column
    that is not an integer, or a column that is not playable.
    """
    if not isinstance(response, dict):
        raise ParseError("Response is not a JSON object", context={"type": type(response).__name__})

    try:
        answer = InferenceResponse.model_validate(response).answer
    except PydanticValidationError as e:
        raise ParseError("Response has no answer text") from e

    raw = extract_json_object(answer)
    if raw is None:
        raise ParseError("No JSON object in answer", raw=answer)

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseError(f"Malformed JSON in answer: {e.msg}", raw=raw) from e

    if not isinstance(data, dict):
        raise ParseError("Answer JSON is not an object", raw=raw)

    try:
        reply = MoveReply.model_validate(data)
    except PydanticValidationError as e:
        raise ParseError("Invalid column in answer", raw=raw) from e

    if not is_valid_move(board, reply.column):
        raise ParseError(
            f"Column {reply.column} is not playable",
            raw=raw,
            context={"column": reply.column},
        )

    return reply
