from dataclasses import dataclass
from enum import Enum


class ResultKind(str, Enum):
    CREATED = "created"
    DELETED = "deleted"
    EDITED = "edited"
    STATUS_CHANGED = "status_changed"
    NOT_FOUND = "not_found"
    OTHER = "other"


@dataclass(frozen=True)
class ToolResult:
    """
    Outcome of one tool call: what kind of thing happened, and the text
    shown to the user.
    """
    kind: ResultKind
    text: str

    def __str__(self) -> str:
        return self.text


def created(text):
    return ToolResult(ResultKind.CREATED, text)


def deleted(text):
    return ToolResult(ResultKind.DELETED, text)


def edited(text):
    return ToolResult(ResultKind.EDITED, text)


def status_changed(text):
    return ToolResult(ResultKind.STATUS_CHANGED, text)


def not_found(text):
    return ToolResult(ResultKind.NOT_FOUND, text)


def other(text):
    return ToolResult(ResultKind.OTHER, text)
