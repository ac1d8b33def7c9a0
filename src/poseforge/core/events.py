"""Pose-drag notifications.

A :class:`~poseforge.pose.drag_session.DragSession` publishes one event per
gesture phase so viewers, undo stacks and diagnostics can follow a drag
without the session knowing about them.
"""

from enum import Enum, auto
from typing import Any, Callable
from collections import defaultdict


class EventType(Enum):
    # Pose drag gesture
    PULL_STARTED = auto()         # data: bone, pull_pos_rate (float)
    POSE_PULLED = auto()          # data: result (PullResult)
    PULL_FINISHED = auto()        # data: bone, increments (int)

    # Commit hand-off
    ROTATIONS_COMMITTED = auto()  # data: top_bone, rotations (tuple), command


class EventBus:
    """Routes drag events to handlers.

    Handlers are called synchronously, in subscription order, with the
    event data as keyword arguments (see the comments on :class:`EventType`).
    An exception raised by a handler propagates to the publishing session.
    """

    def __init__(self):
        self._handlers: dict[EventType, list[Callable]] = defaultdict(list)

    def subscribe(self, event_type: EventType, handler: Callable) -> None:
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: EventType, handler: Callable) -> None:
        handlers = self._handlers[event_type]
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event_type: EventType, **data: Any) -> None:
        """Deliver one event.

        A handler may unsubscribe itself, e.g. a one-shot listener waiting for
        the first committed increment; delivery continues over the handler
        list as it was when publishing started.
        """
        for handler in list(self._handlers[event_type]):
            handler(**data)

    def clear(self) -> None:
        self._handlers.clear()
