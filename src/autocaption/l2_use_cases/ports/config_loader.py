"""Port: configuration loader."""

from __future__ import annotations

from typing import Protocol


class ConfigLoader(Protocol):
    """Reads user configuration as a raw mapping; defaults and validation happen in L4."""

    def load_raw(
        self,
        config_path: str | None = None,
        overrides: dict | None = None,
    ) -> dict:
        """Return the user's config data with *overrides* deep-merged on top.

        ``None`` override values are ignored, so unset command-line flags keep file values.
        """
        ...
