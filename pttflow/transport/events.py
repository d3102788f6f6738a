from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

EventT = TypeVar("EventT", bound=dict)


EventHandler = Callable[[EventT], Awaitable[None]]

# Close code the RX side uses when it hangs up on purpose.
INTENTIONAL_CLOSE = 4158


def get_type(ev: dict) -> str:
    return ev.get("event_type", "") or ""


class Dispatcher(Generic[EventT]):
    """Minimal async event dispatcher keyed on ``event_type``.

    Handlers can be registered for event types and will be awaited when a
    matching event is dispatched. Events without a handler go to the
    fallback, if one is set, and are otherwise ignored.

    The :meth:`on` method can be used either as a decorator::

        dispatcher = Dispatcher()


        @dispatcher.on("ptt")
        async def handler(event): ...

    or called directly::

        dispatcher.on("ptt", handler)

    """

    def __init__(self, fallback: EventHandler[EventT] | None = None) -> None:
        self._handlers: dict[str, EventHandler[EventT]] = {}
        self.fallback = fallback

    def on(
        self, event_type: str, handler: EventHandler[EventT] | None = None
    ) -> EventHandler[EventT] | Callable[[EventHandler[EventT]], EventHandler[EventT]]:
        """Register ``handler`` for ``event_type``.

        If ``handler`` is ``None`` this functions as a decorator factory.
        """

        if handler is not None:
            self._handlers[event_type] = handler
            return handler

        def decorator(func: EventHandler[EventT]) -> EventHandler[EventT]:
            self._handlers[event_type] = func
            return func

        return decorator

    async def dispatch(self, event: EventT) -> None:
        handler = self._handlers.get(get_type(event), self.fallback)
        if handler:
            await handler(event)
