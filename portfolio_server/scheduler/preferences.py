"""Client-local scheduler preferences, the only persisted client state."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, replace

LOGGER = logging.getLogger(__name__)

MIN_REFRESH_INTERVAL_SECONDS = 1.0


@dataclass(frozen=True)
class Preferences:
    auto_refresh: bool = True
    refresh_interval_seconds: float = 15.0
    selected_sector: str | None = None


class PreferenceStore:
    """Reads and writes ``Preferences`` as a small JSON document."""

    def __init__(self, path: str, defaults: Preferences | None = None) -> None:
        self.path = path
        self.defaults = defaults or Preferences()

    def load(self) -> Preferences:
        try:
            with open(self.path, encoding="utf-8") as handle:
                raw = json.load(handle)
        except FileNotFoundError:
            return self.defaults
        except (OSError, json.JSONDecodeError) as error:
            LOGGER.warning("preferences unreadable, using defaults: path=%s error=%s", self.path, error)
            return self.defaults
        if not isinstance(raw, dict):
            return self.defaults

        prefs = self.defaults
        if isinstance(raw.get("auto_refresh"), bool):
            prefs = replace(prefs, auto_refresh=raw["auto_refresh"])
        interval = raw.get("refresh_interval_seconds")
        if isinstance(interval, (int, float)) and not isinstance(interval, bool) and interval >= MIN_REFRESH_INTERVAL_SECONDS:
            prefs = replace(prefs, refresh_interval_seconds=float(interval))
        sector = raw.get("selected_sector")
        if sector is None or isinstance(sector, str):
            prefs = replace(prefs, selected_sector=sector or None)
        return prefs

    def save(self, prefs: Preferences) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(asdict(prefs), handle, indent=2, sort_keys=True)
        os.replace(tmp_path, self.path)
