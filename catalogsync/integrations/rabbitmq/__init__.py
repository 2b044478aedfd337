"""RabbitMQ integration for consuming catalog events.

Usage:
    >>> from catalogsync.integrations.rabbitmq import (
    ...     RabbitMQConfiguration,
    ...     RabbitMQTransport,
    ... )
    >>>
    >>> transport = RabbitMQTransport(RabbitMQConfiguration())
    >>> consumer = QueueConsumer(transport, applier, "messages")
"""

from .config import RabbitMQConfiguration
from .transport import RabbitMQMessage, RabbitMQSubscription, RabbitMQTransport

__all__ = [
    "RabbitMQConfiguration",
    "RabbitMQMessage",
    "RabbitMQSubscription",
    "RabbitMQTransport",
]
