from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional

from fingerpress.core.profile import ALL_PROFILE_KEYS, SAVED_FLAG_KEY

logger = logging.getLogger(__name__)


def default_profile_path() -> Path:
    return Path.home() / ".config" / "fingerpress" / "profile.json"


class ProfileStore:
    """
    Flat JSON key-value store for calibration constants.

    Holds the 52 profile floats plus a "CalibrationSaved" flag. Unrelated
    keys already in the file are preserved.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else default_profile_path()

    def _read_all(self) -> Dict[str, object]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, ValueError) as e:
            logger.warning("unreadable profile store %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("profile store %s does not hold a JSON object", self.path)
            return {}
        return data

    def _write_all(self, data: Mapping[str, object]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2, sort_keys=True))

    def has_saved(self) -> bool:
        return bool(self._read_all().get(SAVED_FLAG_KEY))

    def write(self, values: Mapping[str, float]) -> None:
        data = self._read_all()
        for k in ALL_PROFILE_KEYS:
            if k in values:
                data[k] = float(values[k])
        data[SAVED_FLAG_KEY] = 1
        self._write_all(data)

    def read(self) -> Optional[Dict[str, object]]:
        data = self._read_all()
        if not data.get(SAVED_FLAG_KEY):
            return None
        return {k: data[k] for k in ALL_PROFILE_KEYS if k in data}

    def clear(self) -> None:
        data = self._read_all()
        if not data:
            return
        data.pop(SAVED_FLAG_KEY, None)
        for k in ALL_PROFILE_KEYS:
            data.pop(k, None)
        self._write_all(data)
