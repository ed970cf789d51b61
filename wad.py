import logging
import struct
from typing import Optional

from errors import MalformedAsset
from wad_headers import (
    WadHeader,
    WadDirEntry,
    wad_header_format,
    wad_dir_entry_format,
    WAD_HEADER_SIZE,
    WAD_DIR_ENTRY_SIZE,
)

ENTRY_ID_LENGTH = 8


def entry_id(name: str) -> bytes:
    """Normalize a lump name to the 8-byte NUL-padded on-disk form."""
    if not 1 <= len(name) <= ENTRY_ID_LENGTH:
        raise ValueError(f"Invalid ID: {name!r}")
    try:
        raw = name.upper().encode("ascii")
    except UnicodeEncodeError:
        raise ValueError(f"Invalid ID: {name!r}") from None
    if b"\x00" in raw:
        raise ValueError(f"Invalid ID: {name!r}")
    return raw.ljust(ENTRY_ID_LENGTH, b"\x00")


def entry_name(raw: bytes) -> str:
    """Convert a NUL-padded 8-byte name to a display string."""
    raw = bytes(raw).split(b"\x00", 1)[0]
    return raw.rstrip().decode("ascii", errors="replace").upper()


def normalize_id(raw: bytes) -> bytes:
    # Names are compared upper-cased and with anything after the first NUL
    # dropped; some editors leave garbage behind the terminator.
    return bytes(raw).split(b"\x00", 1)[0].upper().ljust(ENTRY_ID_LENGTH, b"\x00")


class Wad:
    """
    A WAD image held in memory, with lump lookup by name.

    Header (12 bytes):
        4s  identification  "IWAD" or "PWAD"
        i   numlumps
        i   infotableofs

    Directory entry (16 bytes each):
        i   filepos
        i   size
        8s  name
    """

    def __init__(self, data: bytes):
        if len(data) < WAD_HEADER_SIZE:
            raise MalformedAsset(f"WAD too short for header: {len(data)} bytes")

        self.data = data
        self.header = WadHeader._make(struct.unpack_from(wad_header_format, data, 0))
        if self.header.identification not in (b"IWAD", b"PWAD"):
            raise MalformedAsset(
                f"Not a WAD file: identification is {self.header.identification!r}"
            )

        numlumps, infotableofs = self.header.numlumps, self.header.infotableofs
        dir_end = infotableofs + numlumps * WAD_DIR_ENTRY_SIZE
        if numlumps < 0 or infotableofs < 0 or dir_end > len(data):
            raise MalformedAsset(
                f"Lump directory out of range: {numlumps} entries at {infotableofs}"
            )

        logging.debug(
            f"wad - {self.header.identification.decode()} lumps:{numlumps} dir:{infotableofs}"
        )

        self.entries: list[WadDirEntry] = []
        self._index: dict[bytes, int] = {}
        for i in range(numlumps):
            entry = WadDirEntry._make(
                struct.unpack_from(
                    wad_dir_entry_format, data, infotableofs + i * WAD_DIR_ENTRY_SIZE
                )
            )
            if entry.filepos < 0 or entry.size < 0 or entry.filepos + entry.size > len(data):
                raise MalformedAsset(
                    f"Lump {entry_name(entry.name)} out of range: "
                    f"{entry.size} bytes at {entry.filepos}"
                )
            self.entries.append(entry)
            # Later lumps override earlier ones with the same name
            self._index[normalize_id(entry.name)] = i

    @classmethod
    def open(cls, path) -> "Wad":
        with open(path, "rb") as f:
            return cls(f.read())

    def __len__(self) -> int:
        return len(self.entries)

    def names(self) -> list[str]:
        return [entry_name(e.name) for e in self.entries]

    def lump(self, index: int) -> bytes:
        entry = self.entries[index]
        return self.data[entry.filepos : entry.filepos + entry.size]

    def by_id(self, name) -> Optional[bytes]:
        """Bytes of the last lump called `name`, or None if there is none.

        `name` is either a string or a raw 8-byte name as stored in PNAMES.
        """
        key = entry_id(name) if isinstance(name, str) else normalize_id(name)
        index = self._index.get(key)
        if index is None:
            return None
        return self.lump(index)
