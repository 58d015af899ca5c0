"""libFuzzer dictionaries contributed by fuzz targets and bug detectors.

Entries are collected for the session and written as a libFuzzer
dictionary file, one quoted entry per line:

    "select * from"
    "\\x00\\xffmagic"

Bytes outside printable ASCII, double quotes and backslashes are escaped as
``\\xNN`` / ``\\"`` / ``\\\\``.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

__all__ = ["Dictionaries", "quote_entry"]


def quote_entry(entry: str | bytes) -> str:
    """Quote one dictionary entry in libFuzzer syntax (UTF-8 for str)."""
    raw = entry.encode("utf-8") if isinstance(entry, str) else bytes(entry)
    parts = ['"']
    for byte in raw:
        if byte in (0x22, 0x5C):
            parts.append("\\" + chr(byte))
        elif 0x20 <= byte < 0x7F:
            parts.append(chr(byte))
        else:
            parts.append(f"\\x{byte:02x}")
    parts.append('"')
    return "".join(parts)


class Dictionaries:
    """Session-wide collection of dictionary entries."""

    __slots__ = ("_entries",)

    def __init__(self) -> None:
        self._entries: list[bytes] = []

    @property
    def entries(self) -> tuple[bytes, ...]:
        return tuple(self._entries)

    def add(self, *entries: str | bytes) -> None:
        """Add entries; duplicates are kept once."""
        for entry in entries:
            raw = entry.encode("utf-8") if isinstance(entry, str) else bytes(entry)
            if raw not in self._entries:
                self._entries.append(raw)

    def render(self) -> str:
        """Render all entries in libFuzzer dictionary syntax."""
        return "".join(quote_entry(entry) + "\n" for entry in self._entries)

    def write(self, path: Path) -> Path:
        """Write the dictionary to ``path`` and return it for ``-dict=<path>``."""
        path.write_text(self.render(), encoding="ascii")
        return path

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)
