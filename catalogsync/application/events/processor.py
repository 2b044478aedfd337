"""Base class for components that react to catalog events."""

import inspect
from typing import TYPE_CHECKING, ClassVar

from pydantic import BaseModel

from ...routing import setup_event_handling

if TYPE_CHECKING:
    from ...routing import MessageRouter


class EventProcessor:
    """Base class for handling decoded catalog events.

    Subclass EventProcessor and use the @handles_event decorator to declare
    which events the processor is interested in. The parameter annotation of
    each handler decides the routing:
    - Handler parameter type declares which event to handle
    - A handler for a base class receives every subclass without its own
      handler
    - Routing is set up automatically during class definition

    Events without any matching handler are ignored and :meth:`handle`
    returns None.

    Attributes:
        _event_router: Class-level routing table (set by __init_subclass__)

    Example:
        >>> class TitleCounter(EventProcessor):
        ...     def __init__(self) -> None:
        ...         self.created = 0
        ...
        ...     @handles_event
        ...     async def on_created(self, event: BookCreated) -> None:
        ...         self.created += 1
        >>>
        >>> counter = TitleCounter()
        >>> await counter.handle(decode_event(body))
    """

    _event_router: ClassVar["MessageRouter"]

    def __init_subclass__(cls, **kwargs: object) -> None:
        """Build the routing table from @handles_event methods."""
        super().__init_subclass__(**kwargs)
        cls._event_router = setup_event_handling(cls)

    async def handle(self, event: BaseModel) -> object:
        """Route an event to its registered handler method.

        Args:
            event: The decoded event.

        Returns:
            The return value of the handler method.
        """
        result = self._event_router.route(self, event)
        if inspect.iscoroutine(result):
            return await result
        return result
