"""Exceptions raised across the catalog pipeline."""


class CatalogSyncError(Exception):
    """Base class for all catalogsync errors."""

    pass


class DecodeError(CatalogSyncError):
    """Raised when a queue payload is not a well-formed catalog event.

    A malformed payload never becomes valid on redelivery, so consumers
    acknowledge and drop the message instead of requeueing it.
    """

    pass


class ApplyError(CatalogSyncError):
    """Raised when an event could not be applied to the projection store.

    Attributes:
        retryable: True when the failure depends on the environment (store
            unreachable, timeout) and redelivering the message may succeed.
    """

    retryable: bool = False

    def __init__(self, message: str, *, event_type: str | None = None, book_id: str | None = None):
        super().__init__(message)
        self.event_type = event_type
        self.book_id = book_id


class TransientApplyError(ApplyError):
    """Environmental failure; the message should be requeued."""

    retryable = True


class DataApplyError(ApplyError):
    """The store rejected the event's data; the message should be dropped."""

    retryable = False


class StoreError(CatalogSyncError):
    """Base class for errors raised by projection store adapters."""

    pass


class StoreUnavailableError(StoreError):
    """The store could not be reached or did not answer in time."""

    pass


class StoreRejectedError(StoreError):
    """The store refused an operation for reasons unrelated to availability."""

    pass


class TransportError(CatalogSyncError):
    """Raised when the broker connection cannot be established or is lost."""

    pass


class AuthenticationError(CatalogSyncError):
    """Raised by identity verifiers when credentials are missing or invalid."""

    pass
