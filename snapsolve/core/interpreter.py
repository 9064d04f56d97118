"""Turns raw LLM text into problem, solution and debug records.

Problem extraction is tagged: a response that can be read as a JSON object is
``Structured``; anything else is ``Degraded`` and keeps the raw text as the
problem description. Parsing never raises.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Union

from .models import DebugResult, Example, ProblemInfo, SolutionResult

logger = logging.getLogger(__name__)

DEGRADED_TITLE = "Extracted Problem"

_FENCED_JSON = re.compile(r"```json\s*\n(.*?)\n?\s*```", re.DOTALL | re.IGNORECASE)
_OUTER_OBJECT = re.compile(r"\{.*\}", re.DOTALL)

_TEXT_FIELDS = ("title", "description", "input_format", "output_format", "constraints", "notes")


@dataclass(frozen=True)
class Structured:
    problem: ProblemInfo


@dataclass(frozen=True)
class Degraded:
    raw_text: str

    def to_problem_info(self) -> ProblemInfo:
        return ProblemInfo(title=DEGRADED_TITLE, description=self.raw_text)


Interpretation = Union[Structured, Degraded]


def to_problem_info(interpretation: Interpretation) -> ProblemInfo:
    if isinstance(interpretation, Structured):
        return interpretation.problem
    if isinstance(interpretation, Degraded):
        return interpretation.to_problem_info()
    raise TypeError(f"Unknown interpretation: {interpretation!r}")


def _load_object(text: str) -> Optional[dict]:
    try:
        value = json.loads(text)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


def _candidates(raw_text: str):
    yield raw_text
    fenced = _FENCED_JSON.search(raw_text)
    if fenced:
        yield fenced.group(1)
    outer = _OUTER_OBJECT.search(raw_text)
    if outer:
        yield outer.group(0)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return "\n".join(_as_text(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)


def _as_examples(value: Any) -> List[Example]:
    if not isinstance(value, list):
        return []
    examples = []
    for item in value:
        if isinstance(item, dict):
            examples.append(Example(input=_as_text(item.get("input")), output=_as_text(item.get("output"))))
        elif item is not None:
            examples.append(Example(input=_as_text(item)))
    return examples


def _problem_from_object(data: dict) -> ProblemInfo:
    fields = {name: _as_text(data.get(name)) for name in _TEXT_FIELDS}
    return ProblemInfo(examples=_as_examples(data.get("examples")), **fields)


def parse_problem(raw_text: str) -> Interpretation:
    """Read an extraction response as a problem record."""
    text = (raw_text or "").strip()
    for candidate in _candidates(text):
        data = _load_object(candidate)
        if data is not None:
            return Structured(_problem_from_object(data))
    logger.warning("Problem extraction response was not valid JSON; using raw text")
    return Degraded(raw_text)


def parse_solution_response(raw_text: str, language: str) -> SolutionResult:
    return SolutionResult(solution=raw_text, language=language)


def parse_debug_response(raw_text: str, language: str) -> DebugResult:
    return DebugResult(debug_solution=raw_text, language=language)
