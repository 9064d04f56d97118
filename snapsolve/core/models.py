"""Data model shared by the processing pipeline."""
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional


class ViewState(Enum):
    """Which screen the UI is on; selects the queue used by capture and processing."""
    QUEUE = "queue"
    SOLUTIONS = "solutions"
    DEBUG = "debug"


class QueueName(Enum):
    PRIMARY = "primary"
    AUXILIARY = "auxiliary"


class RequestKind(Enum):
    SOLVE = "solve"
    DEBUG = "debug"


class PipelineStage(Enum):
    IDLE = "idle"
    EXTRACTING_PROBLEM = "extracting_problem"
    GENERATING_SOLUTION = "generating_solution"
    EXTRACTING_ERROR = "extracting_error"
    GENERATING_DEBUG = "generating_debug"


@dataclass(frozen=True)
class ScreenshotRef:
    """A captured screenshot and its position in its queue."""
    path: str
    ordinal: int


@dataclass(frozen=True)
class TextBlock:
    text: str


@dataclass(frozen=True)
class ImageBlock:
    """Base64 encoded image payload with its declared media type."""
    data: str
    media_type: str = "image/png"


@dataclass(frozen=True)
class Example:
    input: str = ""
    output: str = ""


@dataclass(frozen=True)
class ProblemInfo:
    """Structured problem statement plus any generated solutions."""
    title: str = ""
    description: str = ""
    input_format: str = ""
    output_format: str = ""
    constraints: str = ""
    examples: List[Example] = field(default_factory=list)
    notes: str = ""
    solution: Optional[str] = None
    debug_solution: Optional[str] = None
    language: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SolutionResult:
    solution: str
    language: str


@dataclass(frozen=True)
class DebugResult:
    debug_solution: str
    language: str
