"""
流式会话领域实体 - 一次流式调用的消息历史与状态机
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from domain.schema.entities import CallShape


class EntryOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class EntryDirection(str, Enum):
    SENT = "sent"
    RECEIVED = "received"


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    ENDED = "ended"
    CANCELLED = "cancelled"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.ENDED, SessionState.CANCELLED, SessionState.ERROR)


@dataclass(frozen=True)
class StreamEntry:
    """One observed item of a stream; direction is None for end/error markers."""

    outcome: EntryOutcome
    payload: Any = None
    direction: Optional[EntryDirection] = None
    terminal: bool = False
    error: Optional[str] = None

    @classmethod
    def sent(cls, payload: Any) -> "StreamEntry":
        return cls(EntryOutcome.SUCCESS, payload=payload, direction=EntryDirection.SENT)

    @classmethod
    def received(cls, payload: Any) -> "StreamEntry":
        return cls(EntryOutcome.SUCCESS, payload=payload, direction=EntryDirection.RECEIVED)

    @classmethod
    def failure(cls, error: str) -> "StreamEntry":
        return cls(EntryOutcome.FAILURE, error=error)

    @classmethod
    def end_marker(cls) -> "StreamEntry":
        return cls(EntryOutcome.SUCCESS, terminal=True)


@dataclass
class StreamSessionRecord:
    """流式会话记录

    Created empty when a streaming call starts. Once it leaves ACTIVE it is
    never resurrected; a new call gets a new record.
    """

    address: str = ""
    full_method: str = ""
    call_shape: Optional[CallShape] = None
    state: SessionState = SessionState.IDLE
    entries: List[StreamEntry] = field(default_factory=list)
    last_error: Optional[str] = None

    @property
    def active(self) -> bool:
        return self.state is SessionState.ACTIVE

    @property
    def call_key(self) -> str:
        return f"{self.address}-{self.full_method}"

    def append(self, entry: StreamEntry) -> None:
        self.entries.append(entry)

    def activate(self) -> None:
        """业务规则：仅空闲会话可以进入 ACTIVE"""
        if self.state is not SessionState.IDLE:
            raise ValueError(f"session already {self.state.value}")
        self.state = SessionState.ACTIVE

    def finish(self, state: SessionState) -> bool:
        """Move ACTIVE to a terminal state; returns False when nothing changed."""
        if not state.is_terminal:
            raise ValueError(f"{state.value} is not a terminal state")
        if self.state is not SessionState.ACTIVE:
            return False
        self.state = state
        return True

    def fail(self, error: str) -> None:
        """Initiation failed before the transport acknowledged the call."""
        self.last_error = error
        if self.state is SessionState.ACTIVE:
            self.state = SessionState.ERROR
