from types import TracebackType
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ..config import ServiceSettings
from .auth import IdentityVerifier
from .events import EventApplier, MessageTransport, QueueConsumer
from .projections import CatalogQueryService
from .store import ProjectionStore

if TYPE_CHECKING:
    from ..integrations.mongodb import MongoConfiguration
    from ..integrations.rabbitmq import RabbitMQConfiguration


@runtime_checkable
class HasLifecycle(Protocol):
    async def on_startup(self) -> None:
        """Called when the service is started."""
        ...

    async def on_shutdown(self) -> None:
        """Called when the service is shutdown."""
        ...


class CatalogService:
    """The catalog synchronization service, wired together.

    Holds one projection store shared by the write side (the queue consumer
    feeding the event applier) and the read side (the query service).

    Example:
        >>> async with CatalogService.from_settings() as service:
        ...     task = asyncio.create_task(service.run_consumer())
        ...     envelope = await service.queries.search(title="dune")
        ...     await service.stop()
        ...     await task
    """

    def __init__(
        self,
        store: ProjectionStore,
        transport: MessageTransport,
        settings: ServiceSettings | None = None,
        verifier: IdentityVerifier | None = None,
        queue_name: str = "messages",
        reconnect_delay: float = 5.0,
    ):
        self.settings = settings or ServiceSettings()
        self.store = store
        self.transport = transport
        self.applier = EventApplier(store)
        self.queries = CatalogQueryService(store, verifier, self.settings)
        self.consumer = QueueConsumer(
            transport,
            self.applier,
            queue_name=queue_name,
            reconnect_delay=reconnect_delay,
        )

    @classmethod
    def from_settings(
        cls,
        settings: ServiceSettings | None = None,
        mongo: "MongoConfiguration | None" = None,
        rabbitmq: "RabbitMQConfiguration | None" = None,
        verifier: IdentityVerifier | None = None,
    ) -> "CatalogService":
        """Build the production service: MongoDB store and RabbitMQ transport.

        Each configuration not passed in is read from the environment.
        """
        from ..integrations.mongodb import MongoConfiguration, MongoProjectionStore
        from ..integrations.rabbitmq import RabbitMQConfiguration, RabbitMQTransport

        rabbitmq = rabbitmq or RabbitMQConfiguration()
        return cls(
            store=MongoProjectionStore(mongo or MongoConfiguration()),
            transport=RabbitMQTransport(rabbitmq),
            settings=settings,
            verifier=verifier,
            queue_name=rabbitmq.queue_name,
            reconnect_delay=rabbitmq.reconnect_delay_seconds,
        )

    def _dependencies(self) -> list[HasLifecycle]:
        return [
            dependency
            for dependency in (self.store, self.transport)
            if isinstance(dependency, HasLifecycle)
        ]

    async def startup(self) -> None:
        """Startup the service.

        Calls on_startup on every dependency that implements the
        `HasLifecycle` protocol, in registration order. A store that cannot
        be reached fails the startup.
        """
        for dependency in self._dependencies():
            await dependency.on_startup()

    async def shutdown(self) -> None:
        """Shutdown the service.

        Stops the consumer, closes the broker connection and then calls
        on_shutdown on the lifecycle dependencies in reverse order.
        """
        await self.consumer.stop()
        await self.transport.close()
        for dependency in reversed(self._dependencies()):
            await dependency.on_shutdown()

    async def run_consumer(self) -> None:
        """Consume and apply events until :meth:`stop` is called."""
        await self.consumer.run()

    async def stop(self) -> None:
        """Ask the consumer to finish the current message and return."""
        await self.consumer.stop()

    async def __aenter__(self) -> "CatalogService":
        await self.startup()
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_value: BaseException | None,
        _traceback: TracebackType | None,
    ) -> None:
        await self.shutdown()

