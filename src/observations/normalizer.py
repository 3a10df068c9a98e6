"""Flatten ingested monitor payloads into a flat sequence of observations.

Monitors post a single observation object, an array of them, or arrays of
arrays (one inner array per parameter group).  ``flatten`` is total: anything
that is not itself a list is one leaf, and order within every nesting level
is preserved.

``normalize_observations`` is what the ingestion path calls.  It validates
the top-level payload first, then converts every leaf into an
``Observation``.  Both functions are pure.
"""

from __future__ import annotations

from typing import Any, Iterator

from src.observations.base import Observation
from src.observations.errors import ClientInputError


def _iter_leaves(payload: Any) -> Iterator[Any]:
    if isinstance(payload, list):
        for item in payload:
            yield from _iter_leaves(item)
    else:
        yield payload


def flatten(payload: Any) -> list[Any]:
    """Flatten arbitrarily nested lists into a flat, order-preserving list.

    Examples::

        flatten({"a": 1})            → [{"a": 1}]
        flatten([[a, b], [c], []])   → [a, b, c]
        flatten([])                  → []

    Args:
        payload: Decoded JSON value.

    Returns:
        List of leaf values, left to right.
    """
    return list(_iter_leaves(payload))


def validate_payload(payload: Any) -> None:
    """Reject payloads that cannot contain observations at all.

    Raises:
        ClientInputError: If the payload is missing/empty or is not an object
                          or array.
    """
    if payload is None or (not payload and not isinstance(payload, (dict, list))):
        raise ClientInputError("No observations provided")
    if not isinstance(payload, (dict, list)):
        raise ClientInputError("Invalid observations provided")


def normalize_observations(payload: Any) -> list[Observation]:
    """Validate an ingested payload and turn it into Observations.

    Every leaf is checked before anything is returned, so a bad element
    anywhere in the payload rejects the whole batch.

    Args:
        payload: Decoded JSON request body.

    Returns:
        Flat list of Observation, in payload order.

    Raises:
        ClientInputError: On a missing, non-object or malformed payload.
    """
    validate_payload(payload)
    return [Observation.from_payload(leaf) for leaf in flatten(payload)]
