"""File-like objects for revfs."""

from __future__ import annotations

import io


class ReadableFile(io.BytesIO):
    """Read-only, seekable file-like object over blob content.

    Usable anywhere a binary stream is expected, including as the buffer of
    an :class:`io.TextIOWrapper`.  Every write method raises
    :exc:`io.UnsupportedOperation`.
    """

    def __init__(self, data: bytes, name: str | None = None):
        super().__init__(data)
        self.name = name

    def __repr__(self) -> str:
        return f"ReadableFile({self.name!r})"

    def writable(self) -> bool:
        return False

    def write(self, data) -> int:
        raise io.UnsupportedOperation("not writable")

    def writelines(self, lines) -> None:
        raise io.UnsupportedOperation("not writable")

    def truncate(self, size: int | None = None) -> int:
        raise io.UnsupportedOperation("not writable")


def text_reader(data: bytes, name: str | None = None, encoding: str = "utf-8") -> io.TextIOWrapper:
    """Wrap blob content in a text stream decoded with *encoding*."""
    return io.TextIOWrapper(ReadableFile(data, name), encoding=encoding)
