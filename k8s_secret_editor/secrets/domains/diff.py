"""Character-level diff between the original and edited secret value."""
from difflib import SequenceMatcher
from typing import List

from .models import DiffOp, DiffResult, DiffSpan

DELETE_OPEN, DELETE_CLOSE = "[-", "-]"
INSERT_OPEN, INSERT_CLOSE = "{+", "+}"


def _decode(data: bytes) -> str:
    # surrogateescape keeps undecodable bytes distinct instead of collapsing them
    return data.decode("utf-8", errors="surrogateescape")


def _printable(text: str) -> str:
    return text.encode("utf-8", errors="surrogateescape").decode("utf-8", errors="backslashreplace")


def compute(original: bytes, edited: bytes) -> DiffResult:
    """
    Diff two byte strings as text.

    Every character of both inputs lands in exactly one span: equal text once,
    removed text as DELETE, added text as INSERT. A replaced region becomes a
    DELETE followed by an INSERT.
    """
    a, b = _decode(original), _decode(edited)
    spans: List[DiffSpan] = []

    def emit(op: DiffOp, text: str) -> None:
        if not text:
            return
        if spans and spans[-1].op is op:
            spans[-1] = DiffSpan(op, spans[-1].text + text)
        else:
            spans.append(DiffSpan(op, text))

    matcher = SequenceMatcher(None, a, b, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            emit(DiffOp.EQUAL, a[i1:i2])
        elif tag == "delete":
            emit(DiffOp.DELETE, a[i1:i2])
        elif tag == "insert":
            emit(DiffOp.INSERT, b[j1:j2])
        else:
            emit(DiffOp.DELETE, a[i1:i2])
            emit(DiffOp.INSERT, b[j1:j2])

    return DiffResult(spans=tuple(spans))


def render(result: DiffResult) -> str:
    """Render a diff for the terminal, marking deletions [-...-] and insertions {+...+}."""
    parts = []
    for op, text in result.spans:
        text = _printable(text)
        if op is DiffOp.DELETE:
            parts.append(f"{DELETE_OPEN}{text}{DELETE_CLOSE}")
        elif op is DiffOp.INSERT:
            parts.append(f"{INSERT_OPEN}{text}{INSERT_CLOSE}")
        else:
            parts.append(text)
    return "".join(parts)
