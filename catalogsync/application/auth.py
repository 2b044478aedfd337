"""Identity verification seam for owner-scoped queries.

Token verification lives outside this service. The query service only needs
to turn the credentials attached to a request into a verified user
identifier, which is what :class:`IdentityVerifier` provides.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..domain import AuthenticationError


@dataclass(frozen=True)
class Identity:
    """A verified caller.

    Attributes:
        user_id: Opaque identifier of the authenticated user.
    """

    user_id: str


class IdentityVerifier(ABC):
    """Verifies request credentials and extracts the caller's identity."""

    @abstractmethod
    async def verify(self, credentials: str | None) -> Identity:
        """Verify ``credentials``.

        Args:
            credentials: Raw credentials from the request, e.g. a bearer
                token, or None when the request carried none.

        Returns:
            The verified identity.

        Raises:
            AuthenticationError: If credentials are missing or invalid.
        """
        ...


class RejectingVerifier(IdentityVerifier):
    """Verifier used when no identity provider is configured.

    Every request is rejected, so owner-scoped listings are unavailable
    rather than open.
    """

    async def verify(self, credentials: str | None) -> Identity:
        raise AuthenticationError("No identity provider configured")
