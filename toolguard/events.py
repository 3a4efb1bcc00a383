"""
Audit event types and the EventHandler protocol.

The engine reports every decision to an injected handler. It never writes
logs or files for auditing itself; hosts decide where events go.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

from .permissions.models import PermissionRequest, PermissionResult, UserContext


class EventType(str, Enum):
    """Kind of permission event."""

    CHECK = "check"  # decision served from the cache
    GRANT = "grant"
    DENY = "deny"
    CONFIRM = "confirm"


class PermissionEvent(BaseModel):
    """Immutable audit record of one decision."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    event_type: EventType
    request: PermissionRequest
    result: PermissionResult
    user_context: UserContext | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class EventHandler(Protocol):
    """Callable receiving permission events."""

    def __call__(self, event: PermissionEvent) -> None:
        """Handle an event."""
        ...


class NullEventHandler:
    """No-op EventHandler implementation."""

    def __call__(self, event: PermissionEvent) -> None:
        """Discard the event."""
        pass


def event_type_for(result: PermissionResult) -> EventType:
    """Map a fresh decision to its event type."""
    if not result.allowed:
        return EventType.DENY
    if result.requires_confirmation:
        return EventType.CONFIRM
    return EventType.GRANT
