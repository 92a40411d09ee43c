"""
Execution traces shared by every simulator, converter and checker.

A Trace is the complete, eagerly computed list of Steps for one call plus
its terminal Result. Replaying it (run or single-step) is up to the caller.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from types import MappingProxyType
from typing_extensions import *


@dataclass(frozen=True)
class Step:
    title: str
    description: str
    details: str = ""

    # Finite-state position
    state: Optional[str] = None
    states: Tuple[str, ...] = ()
    remaining_input: Optional[str] = None
    position: Optional[int] = None
    transitions: Tuple[Any, ...] = ()

    # Transducers
    output: Optional[str] = None

    # PDA / TM
    stack: Tuple[str, ...] = ()
    tape: Tuple[str, ...] = ()
    head: Optional[int] = None
    step_count: Optional[int] = None

    # Anything specific to one algorithm (productions, decompositions, ...)
    data: Mapping[str, Any] = field(default_factory=dict, hash=False)

    is_final: bool = False
    is_error: bool = False
    accepted: Optional[bool] = None
    timeout: bool = False

    def __post_init__(self):
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))


@dataclass(frozen=True)
class Result:
    accepted: bool
    output: Optional[str] = None
    automaton: Optional[Any] = None
    parse_tree: Optional[Any] = None
    pumped_string: Optional[str] = None
    grammar_type: Optional[Any] = None
    timeout: bool = False
    assumed: bool = False


@dataclass(frozen=True)
class Trace:
    steps: Tuple[Step, ...]
    result: Result

    def __post_init__(self):
        if not self.steps:
            raise ValueError("A trace needs at least one step")
        if not self.steps[-1].is_final:
            raise ValueError(
                f"Last step '{self.steps[-1].title}' of a trace must be final"
            )

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def __getitem__(self, index: int) -> Step:
        return self.steps[index]

    @property
    def accepted(self) -> bool:
        return self.result.accepted

    @property
    def final_step(self) -> Step:
        return self.steps[-1]

    def to_dict(self) -> Dict[str, Any]:
        """Plain, JSON-ready data for a rendering layer."""
        return _plain({"steps": list(self.steps), "result": self.result})

    def format(self) -> str:
        lines = []
        for index, step in enumerate(self.steps):
            lines.append(f"{index:>3}. {step.title}: {step.description}")
            if step.details:
                lines.append(f"       {step.details}")
        verdict = "ACCEPTED" if self.result.accepted else "REJECTED"
        if self.result.timeout:
            verdict += " (timeout)"
        lines.append(f"Result: {verdict}")
        if self.result.output is not None:
            lines.append(f"Output: {self.result.output}")
        return "\n".join(lines)


def _plain(value: Any) -> Any:
    if hasattr(value, "__dataclass_fields__"):
        return {f.name: _plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {str(_plain(k)): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted(_plain(item) for item in value)
    return value
