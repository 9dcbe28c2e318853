"""Parsing and formatting of the X-Amzn-Trace-Id header value."""

from dataclasses import dataclass, field
from enum import Enum

__all__ = [
    "ROOT_PREFIX",
    "PARENT_PREFIX",
    "SAMPLED_PREFIX",
    "SELF_PREFIX",
    "SamplingDecision",
    "Header",
    "from_string",
]

ROOT_PREFIX = "Root="
PARENT_PREFIX = "Parent="
SAMPLED_PREFIX = "Sampled="
SELF_PREFIX = "Self="


class SamplingDecision(str, Enum):
    """Whether the current segment has been sampled."""

    SAMPLED = "Sampled=1"
    NOT_SAMPLED = "Sampled=0"
    REQUESTED = "Sampled=?"
    UNKNOWN = ""

    @classmethod
    def parse(cls, value: str) -> "SamplingDecision":
        """Return the decision for a ``Sampled=...`` part, or UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass
class Header:
    """The value of the X-Amzn-Trace-Id header."""

    trace_id: str = ""
    parent_id: str = ""
    sampling_decision: SamplingDecision = SamplingDecision.UNKNOWN
    additional_data: dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        parts = []
        if self.trace_id:
            parts.append(ROOT_PREFIX + self.trace_id)
        if self.parent_id:
            parts.append(PARENT_PREFIX + self.parent_id)
        parts.append(self.sampling_decision.value)
        parts.extend(f"{key}={value}" for key, value in self.additional_data.items())
        return ";".join(parts)


def from_string(value: str) -> Header:
    """Parse a header value into a :class:`Header`."""
    result = Header()
    for raw in value.split(";"):
        part = raw.strip()
        key, sep, item = part.partition("=")
        if not sep:
            continue
        if part.startswith(ROOT_PREFIX):
            result.trace_id = item
        elif part.startswith(PARENT_PREFIX):
            result.parent_id = item
        elif part.startswith(SAMPLED_PREFIX):
            result.sampling_decision = SamplingDecision.parse(part)
        elif not part.startswith(SELF_PREFIX):
            result.additional_data[key] = item
    return result