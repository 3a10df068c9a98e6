"""Exception hierarchy for the Vigil observation engine.

Routers translate ``ClientInputError`` and ``NotFoundError`` into 400 / 404
responses.  ``UpstreamDependencyError`` and ``TransportDeliveryError`` never
reach a caller: the sync scheduler and fan-out dispatcher log them and move
on to the next device / subscriber.
"""

from __future__ import annotations


class VigilError(Exception):
    """Base class for all Vigil domain errors."""


class ClientInputError(VigilError):
    """The ingested payload is missing or structurally invalid."""


class NotFoundError(VigilError):
    """A lookup found nothing for the requested identifier."""


class UpstreamDependencyError(VigilError):
    """A device directory lookup or clinical sink submission failed.

    Attributes:
        dependency: Short name of the failing collaborator ('care', 'assets', ...).
    """

    def __init__(self, message: str, dependency: str = "upstream") -> None:
        super().__init__(message)
        self.dependency = dependency


class TransportDeliveryError(VigilError):
    """Delivery of a fan-out message to one live subscriber failed."""
