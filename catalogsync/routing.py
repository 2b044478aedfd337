"""Annotation-based routing of events and queries to handler methods.

Handler classes mark methods with :data:`handles_event` or
:data:`handles_query`; the parameter annotation of the decorated method
declares which message type it receives. Routing tables are built once per
class when it is defined and dispatch with ``functools.singledispatch``, so a
handler registered for a base class also receives every subclass that has no
more specific handler.
"""

import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable
from functools import singledispatch
from typing import Any, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class DefaultHandler(ABC):
    """Base handler for unregistered message types."""

    __slots__ = ("base_type", "operation_name")

    def __init__(self, base_type: type, operation_name: str):
        """Initialize the default handler.

        Args:
            base_type: The base type for messages (e.g., Query, BaseModel).
            operation_name: Name of the operation for error messages.
        """
        self.base_type = base_type
        self.operation_name = operation_name

    @abstractmethod
    def __call__(self, message: Any, instance: Any, *args: Any, **kwargs: Any) -> Any:
        """Handle an unregistered message type."""
        ...


class RaiseHandler(DefaultHandler):
    """Raise NotImplementedError for unregistered message types."""

    __slots__ = ()

    def __call__(self, message: Any, instance: Any, *args: Any, **kwargs: Any) -> Any:
        raise NotImplementedError(
            f"No {self.operation_name} registered for "
            f"{self.base_type.__name__} type {type(message).__name__}"
        )


class IgnoreHandler(DefaultHandler):
    """Silently ignore unregistered message types."""

    __slots__ = ()

    def __call__(self, message: Any, instance: Any, *args: Any, **kwargs: Any) -> Any:
        pass


def _extract_handler_type(func: Callable[..., Any], param_index: int = 1) -> type:
    """Extract the type annotation from a handler method.

    Args:
        func: The handler method to inspect.
        param_index: Index of the parameter to extract
            (0=self, 1=first arg, etc.)

    Returns:
        The annotated message type.

    Raises:
        ValueError: If the parameter lacks a type annotation.
    """
    func_name = getattr(func, "__name__", repr(func))
    params = list(inspect.signature(func).parameters.values())

    if len(params) <= param_index:
        raise ValueError(f"Handler {func_name} must have at least {param_index + 1} parameters")

    param = params[param_index]
    if param.annotation is inspect.Parameter.empty:
        raise ValueError(
            f"Handler {func_name} parameter '{param.name}' must have a type annotation"
        )
    if not isinstance(param.annotation, type):
        raise ValueError(
            f"Handler {func_name} parameter '{param.name}' must be annotated with a class, "
            f"got {param.annotation!r}"
        )
    return param.annotation


class MessageRouter:
    """Generic router for dispatching messages to type-specific handlers."""

    __slots__ = ("_dispatch",)

    def __init__(self, default_handler: DefaultHandler):
        """Initialize the message router.

        Args:
            default_handler: Handler for unregistered message types.
        """

        @singledispatch
        def dispatch(message: object, instance: object, *args: Any, **kwargs: Any) -> object:
            return default_handler(message, instance, *args, **kwargs)

        self._dispatch = dispatch

    def register(self, message_type: type, handler: Callable[..., object]) -> None:
        """Register a handler for a specific message type.

        Args:
            message_type: The message class this handler processes.
            handler: The method to call when handling this message type.
        """

        # singledispatch keys on the first argument, the handler expects self first
        def swap(msg: object, inst: object, *args: Any, h: Any = handler, **kwargs: Any) -> object:
            return h(inst, msg, *args, **kwargs)

        self._dispatch.register(message_type)(swap)

    def route(self, instance: Any, message: Any, *args: Any, **kwargs: Any) -> object:
        """Route a message to its registered handler.

        Args:
            instance: The instance to call the handler on (self).
            message: The message to route.
            *args: Additional positional arguments to pass to handler.
            **kwargs: Additional keyword arguments to pass to handler.

        Returns:
            The result of the handler method.
        """
        return self._dispatch(message, instance, *args, **kwargs)


class HandlerDecorator:
    """Creates decorators that mark methods as handlers for a message type."""

    def __init__(self, marker_attr: str, type_attr: str):
        """Initialize the decorator.

        Args:
            marker_attr: Attribute name to mark decorated methods
                (e.g., '_is_event_handler').
            type_attr: Attribute name to store the message type
                (e.g., '_handles_event_type').
        """
        self.marker_attr = marker_attr
        self.type_attr = type_attr

    def __call__(self, func: Callable[..., T]) -> Callable[..., T]:
        message_type = _extract_handler_type(func, param_index=1)
        setattr(func, self.type_attr, message_type)
        setattr(func, self.marker_attr, True)
        return func


handles_event = HandlerDecorator("_is_event_handler", "_handles_event_type")
handles_query = HandlerDecorator("_is_query_handler", "_handles_query_type")

handles_event.__doc__ = """Decorator marking a method as an event handler.

The event type is automatically extracted from the method's type annotation.

Example:
    >>> class Applier(EventProcessor):
    ...     @handles_event
    ...     async def on_created(self, event: BookCreated) -> ApplyResult:
    ...         ...
"""

handles_query.__doc__ = """Decorator marking a method as a query handler.

The query type is automatically extracted from the method's type annotation.
Query handlers return typed responses based on the Query's generic parameter.

Example:
    >>> class CatalogQueries(Projection):
    ...     @handles_query
    ...     async def search(self, query: SearchBooks) -> SearchPage:
    ...         ...
"""


def setup_routing(
    cls: type,
    marker_attr: str,
    type_attr: str,
    default_handler: DefaultHandler,
) -> MessageRouter:
    """Set up message routing for a class.

    Scans the class hierarchy for methods decorated with the specified marker
    and registers them with a MessageRouter. Subclass methods are scanned
    first, so an override keeps its own registration.

    Args:
        cls: The class to set up routing for.
        marker_attr: Attribute name marking decorated methods.
        type_attr: Attribute name storing the message type.
        default_handler: Handler for unregistered message types.

    Returns:
        A configured MessageRouter.
    """
    router = MessageRouter(default_handler)
    registered: set[type] = set()

    for klass in cls.__mro__:
        for value in klass.__dict__.values():
            if not getattr(value, marker_attr, False):
                continue
            message_type = getattr(value, type_attr)
            if message_type in registered:
                continue
            router.register(message_type, value)
            registered.add(message_type)

    return router


def setup_event_handling(cls: type) -> MessageRouter:
    """Set up event handling for a class.

    Args:
        cls: The class to set up routing for.

    Returns:
        A configured MessageRouter for event handlers.
    """
    return setup_routing(
        cls,
        marker_attr="_is_event_handler",
        type_attr="_handles_event_type",
        default_handler=IgnoreHandler(BaseModel, "handler"),
    )


def setup_query_routing(cls: type) -> MessageRouter:
    """Set up query routing for a projection class.

    Args:
        cls: The projection class to set up routing for.

    Returns:
        A configured MessageRouter for query handlers.
    """
    from .domain import Query

    return setup_routing(
        cls,
        marker_attr="_is_query_handler",
        type_attr="_handles_query_type",
        default_handler=RaiseHandler(Query, "handler"),
    )
