"""Composite Index Manager - the Colour~OwnerId~Id secondary index.

An index entry is an ordinary world-state key built from the car's colour,
owner and id, holding a one-byte placeholder value. Leading parts can be
range-queried, so "all blue cars" and "all blue cars of person1" are prefix
scans.

OwnerId is the second part, so a lookup by owner alone cannot use a prefix:
it walks the whole index and filters on the owner part.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from ..models import Car
from .keys import split_composite_key
from .store import LedgerStore

logger = logging.getLogger(__name__)

COLOUR_OWNER_INDEX = "Colour~OwnerId~Id"
SENTINEL = b"\x00"


class CompositeIndex:
    """Keeps index entries in step with car colour and ownership.

    Callers pass the previous colour and owner whenever they may have
    changed; the index never reads prior state on its own.
    """

    def __init__(self, store: LedgerStore, index_name: str = COLOUR_OWNER_INDEX) -> None:
        self._store = store
        self.index_name = index_name

    def upsert(
        self,
        car: Car,
        previous_colour: str | None = None,
        previous_owner_id: str | None = None,
    ) -> None:
        """Write the entry for the car's current state and drop the stale one.

        Args:
            car: Car in its new (already persisted) state
            previous_colour: Colour before the mutation (None = unchanged)
            previous_owner_id: Owner before the mutation (None = unchanged)
        """
        self._store.put_composite(self.index_name, [car.colour, car.owner_id, car.id], SENTINEL)

        old_colour = car.colour if previous_colour is None else previous_colour
        old_owner = car.owner_id if previous_owner_id is None else previous_owner_id
        if (old_colour, old_owner) != (car.colour, car.owner_id):
            self.remove(old_colour, old_owner, car.id)
            logger.debug(
                f"Index entry moved for {car.id}: "
                f"({old_colour}, {old_owner}) -> ({car.colour}, {car.owner_id})"
            )

    def remove(self, colour: str, owner_id: str, car_id: str) -> None:
        self._store.delete_composite(self.index_name, [colour, owner_id, car_id])

    def _scan(self, *parts: str) -> Iterator[list[str]]:
        for key, _ in self._store.scan_prefix(self.index_name, list(parts)):
            _, key_parts = split_composite_key(key)
            yield key_parts

    def entries(self) -> list[tuple[str, str, str]]:
        """Every (colour, owner_id, car_id) entry in key order."""
        return [(p[0], p[1], p[2]) for p in self._scan()]

    def by_color(self, colour: str) -> list[str]:
        return [p[2] for p in self._scan(colour)]

    def by_owner(self, owner_id: str) -> list[str]:
        return [p[2] for p in self._scan() if p[1] == owner_id]

    def by_color_and_owner(self, colour: str, owner_id: str) -> list[str]:
        return [p[2] for p in self._scan(colour, owner_id)]


__all__ = ["CompositeIndex", "COLOUR_OWNER_INDEX", "SENTINEL"]
