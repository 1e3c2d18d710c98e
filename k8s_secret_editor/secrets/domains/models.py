"""Domain models for secret editing."""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, NamedTuple, Optional, Tuple

# key -> decoded value bytes, always a full snapshot of one Secret
SecretData = Dict[str, bytes]


@dataclass(frozen=True)
class SecretRef:
    """Identifies a Secret in the cluster."""
    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass
class EditSession:
    """State of one run of the edit workflow."""
    ref: SecretRef
    key: str
    original: bytes
    edited: Optional[bytes] = None

    @property
    def changed(self) -> bool:
        return self.edited is not None and self.edited != self.original


class DiffOp(str, Enum):
    EQUAL = "equal"
    INSERT = "insert"
    DELETE = "delete"


class DiffSpan(NamedTuple):
    op: DiffOp
    text: str


@dataclass(frozen=True)
class DiffResult:
    """Ordered spans covering the whole original and edited text."""
    spans: Tuple[DiffSpan, ...]

    @property
    def has_changes(self) -> bool:
        return any(span.op is not DiffOp.EQUAL for span in self.spans)

    def original_text(self) -> str:
        return "".join(s.text for s in self.spans if s.op is not DiffOp.INSERT)

    def edited_text(self) -> str:
        return "".join(s.text for s in self.spans if s.op is not DiffOp.DELETE)
