"""In-memory settings store."""

from __future__ import annotations

from kb_pipeline.interfaces.settings_store import ISettingsStore


class InMemorySettingsStore(ISettingsStore):
    """Dict-backed :class:`ISettingsStore`; empty strings read as unset."""

    def __init__(self, values: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(values or {})

    async def get_setting(self, key: str) -> str | None:
        value = self._values.get(key)
        return value or None

    def set_setting(self, key: str, value: str) -> None:
        self._values[key] = value
