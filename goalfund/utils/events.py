# goalfund/utils/events.py
import inspect
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Union

logger = logging.getLogger(__name__)

ALLOCATION_CREATED = "allocation.created"
GOAL_COMPLETED = "goal.completed"
GOALS_REBALANCED = "goals.rebalanced"


@dataclass
class GoalFundEvent:
    type: str
    user_id: uuid.UUID
    payload: Dict[str, Any] = field(default_factory=dict)


Listener = Callable[[GoalFundEvent], Union[None, Awaitable[None]]]

# Whoever pushes updates to clients registers here; the engine only emits.
_listeners: List[Listener] = []


def add_listener(listener: Listener) -> None:
    if listener not in _listeners:
        _listeners.append(listener)


def remove_listener(listener: Listener) -> None:
    if listener in _listeners:
        _listeners.remove(listener)


async def emit(event: GoalFundEvent) -> None:
    """Deliver an event to every listener.

    Called after commit, so a failing listener is logged and skipped; it
    cannot undo the change it is being told about.
    """
    for listener in list(_listeners):
        try:
            result = listener(event)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Event listener {getattr(listener, '__name__', listener)} failed on {event.type}: {e}")
