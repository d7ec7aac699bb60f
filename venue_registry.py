"""
venue_registry.py
==================
Whitelist of exchange venues the executor may route through.

Entries are kept in insertion order.  Removing a venue flips its flag off;
only explicitly added venues ever appear here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from config import get_logger
from errors import UnsupportedVenue
from interfaces import IVenue

logger = get_logger(__name__)


@dataclass
class VenueEntry:
    address: str
    venue: IVenue
    supported: bool = True


class VenueRegistry:
    def __init__(self, venues: Optional[List[IVenue]] = None) -> None:
        self._entries: Dict[str, VenueEntry] = {}
        for venue in venues or []:
            self.add(venue)

    def add(self, venue: IVenue) -> None:
        entry = self._entries.get(venue.address)
        if entry is not None and entry.supported and entry.venue is venue:
            return
        self._entries[venue.address] = VenueEntry(address=venue.address, venue=venue)
        logger.info("Venue %s added", venue.address)

    def remove(self, address: str) -> None:
        entry = self._entries.get(address)
        if entry is None or not entry.supported:
            return
        entry.supported = False
        logger.info("Venue %s removed", address)

    def is_supported(self, address: str) -> bool:
        entry = self._entries.get(address)
        return entry is not None and entry.supported

    def resolve(self, address: str) -> IVenue:
        """Return the venue behind ``address`` or fail with UnsupportedVenue."""
        if not self.is_supported(address):
            raise UnsupportedVenue(address)
        return self._entries[address].venue

    def venues(self) -> List[str]:
        return [a for a, e in self._entries.items() if e.supported]

    # ── Chain participant ────────────────────────────────────────────────────

    def snapshot(self) -> List[Tuple[str, IVenue, bool]]:
        return [(a, e.venue, e.supported) for a, e in self._entries.items()]

    def restore(self, snapshot: List[Tuple[str, IVenue, bool]]) -> None:
        self._entries = {
            address: VenueEntry(address=address, venue=venue, supported=supported)
            for address, venue, supported in snapshot
        }
