from __future__ import annotations

from typing import Optional, Protocol


class SettingsRepository(Protocol):
    def get_value(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_value(self, key: str, value: str, *, description: Optional[str] = None) -> None:
        raise NotImplementedError
