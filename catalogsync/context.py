import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class DeliveryContext:
    """Immutable context describing the queue message being processed.

    The consumer installs a context for the duration of a single message so
    that every log record emitted while the message is decoded and applied
    can be traced back to the delivery that caused it.

    Attributes:
        message_id: Broker message identifier, when the producer set one.
        redelivered: True when the broker flagged the message as a
            redelivery (after a requeue or a consumer crash).
        queue_name: Name of the queue the message was consumed from.

    Examples:
        >>> with delivery_context(DeliveryContext(message_id="m-1")):
        ...     LOGGER.info("Applied", extra=get_context().as_log_extra())
    """

    message_id: str | None = None
    redelivered: bool = False
    queue_name: str | None = None

    def as_log_extra(self) -> dict[str, Any]:
        """Return the populated fields as ``logging`` extra attributes."""
        extra: dict[str, Any] = {}
        if self.message_id is not None:
            extra["message_id"] = self.message_id
        if self.queue_name is not None:
            extra["queue"] = self.queue_name
        if self.redelivered:
            extra["redelivered"] = True
        return extra


_context_var: contextvars.ContextVar[DeliveryContext] = contextvars.ContextVar(
    "catalogsync_delivery_context", default=DeliveryContext()
)


def get_context() -> DeliveryContext:
    """Get the delivery context of the current task.

    Returns:
        The current context, or an empty one outside of message handling.
    """
    return _context_var.get()


def set_context(ctx: DeliveryContext) -> contextvars.Token[DeliveryContext]:
    """Set the delivery context of the current task.

    Args:
        ctx: The context to install.

    Returns:
        A token that can be passed to :func:`reset_context`.
    """
    return _context_var.set(ctx)


def reset_context(token: contextvars.Token[DeliveryContext]) -> None:
    """Restore the context that was active before :func:`set_context`."""
    _context_var.reset(token)


def clear_context() -> None:
    """Replace the current context with an empty one."""
    _context_var.set(DeliveryContext())


@contextmanager
def delivery_context(ctx: DeliveryContext) -> Iterator[DeliveryContext]:
    """Install ``ctx`` for the duration of the block."""
    token = set_context(ctx)
    try:
        yield ctx
    finally:
        reset_context(token)
