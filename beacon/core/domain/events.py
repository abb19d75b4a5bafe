"""Observation hooks with explicit subscription handles."""

import inspect
from typing import Awaitable, Callable, Generic, TypeVar, Union
from uuid import uuid4

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")

EventHandler = Callable[[T], Union[None, Awaitable[None]]]


class EventHook(Generic[T]):
    """
    A named event that handlers subscribe to.

    Handlers may be plain callables or coroutine functions. Each subscription
    returns an id which is the only way to remove it again. A failing handler
    is logged and does not stop the other handlers from running.
    """

    def __init__(self, name: str):
        self._name = name
        self._handlers: dict[str, EventHandler[T]] = {}

    @property
    def name(self) -> str:
        return self._name

    def subscribe(self, handler: EventHandler[T]) -> str:
        """
        Register a handler.

        Args:
            handler: Callable invoked with each emitted event

        Returns:
            Subscription ID for unsubscribing
        """
        if handler is None:
            raise ValueError("handler must not be None")

        subscription_id = f"sub-{uuid4()}"
        self._handlers[subscription_id] = handler
        return subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a handler. Returns False if the id is unknown."""
        return self._handlers.pop(subscription_id, None) is not None

    def __len__(self) -> int:
        return len(self._handlers)

    async def emit(self, event: T) -> None:
        """Invoke every handler in subscription order."""
        for subscription_id, handler in list(self._handlers.items()):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    "event_handler_error",
                    hook=self._name,
                    subscription_id=subscription_id,
                    error=str(e),
                )
