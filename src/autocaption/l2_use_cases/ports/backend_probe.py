"""Port: hardware/software backend probing."""

from __future__ import annotations

from typing import Protocol

from autocaption.l1_entities.backend import DeviceCapabilities


class BackendProbe(Protocol):
    def probe(self) -> DeviceCapabilities:
        """Report which inference backends are usable on this host."""
        ...
