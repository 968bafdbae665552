"""Record of the GNSS constellations a receiver supports."""

from __future__ import annotations


class Gnss:
    """Set of supported GNSS names, such as ``"GPS"`` or ``"GLONASS"``."""

    def __init__(self) -> None:
        self._supported: set[str] = set()

    def add(self, gnss: str) -> None:
        """Mark *gnss* as supported."""
        self._supported.add(gnss)

    def is_supported(self, gnss: str) -> bool:
        """Whether *gnss* has been marked as supported."""
        return gnss in self._supported

    def __contains__(self, gnss: object) -> bool:
        return gnss in self._supported

    def __iter__(self):
        return iter(sorted(self._supported))

    def __len__(self) -> int:
        return len(self._supported)