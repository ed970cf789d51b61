import os
import struct

import numpy as np
import pytest

DATA_DIR = os.path.join(os.path.dirname(__file__), "data")

# Hotspot given to the trooa1 fixture sprite
TROOA1_ORIGIN = (20, 52)


def load_grid(name: str) -> tuple[np.ndarray, np.ndarray]:
    """Read a text grid: one row per line, '.' for transparent pixels."""
    with open(os.path.join(DATA_DIR, name)) as f:
        rows = [line.split() for line in f if line.strip()]
    pixels = np.array([[0 if v == "." else int(v) for v in row] for row in rows], dtype=np.uint8)
    mask = np.array([[v != "." for v in row] for row in rows], dtype=bool)
    return pixels, mask


def grid_columns(pixels: np.ndarray, mask: np.ndarray) -> list:
    """Split row-major planes into per-column lists of (top, pixels) posts."""
    height, width = pixels.shape
    columns = []
    for x in range(width):
        posts = []
        y = 0
        while y < height:
            if not mask[y, x]:
                y += 1
                continue
            top = y
            while y < height and mask[y, x]:
                y += 1
            posts.append((top, pixels[top:y, x].tobytes()))
        columns.append(posts)
    return columns


def encode_sprite(columns: list, height: int, left: int = 0, top: int = 0) -> bytes:
    """Build sprite lump bytes; posts are (top, pixels) pairs, pads are zero."""
    header = struct.pack("<HHhh", len(columns), height, left, top)
    data_start = len(header) + 4 * len(columns)

    offsets = []
    data = bytearray()
    for posts in columns:
        offsets.append(data_start + len(data))
        for post_top, pixels in posts:
            data += bytes([post_top, len(pixels), 0]) + bytes(pixels) + b"\x00"
        data.append(0xFF)

    return header + b"".join(struct.pack("<I", o) for o in offsets) + bytes(data)


def make_wad(lumps: list, identification: bytes = b"PWAD") -> bytes:
    """Build a WAD image from (name, data) pairs."""
    data = bytearray()
    entries = []
    pos = 12
    for name, lump in lumps:
        entries.append((pos, len(lump), name.encode("ascii").ljust(8, b"\x00")))
        data += lump
        pos += len(lump)

    header = struct.pack("<4sii", identification, len(lumps), pos)
    directory = b"".join(struct.pack("<ii8s", *e) for e in entries)
    return header + bytes(data) + directory


def make_pnames(names: list) -> bytes:
    return struct.pack("<I", len(names)) + b"".join(
        n.encode("ascii").ljust(8, b"\x00") for n in names
    )


def make_texture(name: str, width: int, height: int, patches: list) -> bytes:
    """patches: (origin_x, origin_y, patch_id[, step_dir, colormap])"""
    record = struct.pack(
        "<8sIHHIH", name.encode("ascii").ljust(8, b"\x00"), 0, width, height, 0, len(patches)
    )
    for patch in patches:
        if len(patch) == 3:
            patch = (*patch, 1, 0)
        record += struct.pack("<hhHHH", *patch)
    return record


def make_texture_dir(textures: list) -> bytes:
    offsets = []
    pos = 4 + 4 * len(textures)
    for record in textures:
        offsets.append(pos)
        pos += len(record)
    return (
        struct.pack("<I", len(textures))
        + b"".join(struct.pack("<I", o) for o in offsets)
        + b"".join(textures)
    )


def make_playpal(banks: int = 2) -> bytes:
    # bank 0 is a gray ramp, later banks are tinted red
    out = bytearray()
    for bank in range(banks):
        for i in range(256):
            out += bytes([min(255, i + bank * 32), i, i])
    return bytes(out)


def make_colormap(banks: int = 2) -> bytes:
    # bank 0 is the identity, bank 1 darkens by halving
    out = bytearray(range(256))
    for _ in range(1, banks):
        out += bytes(i // 2 for i in range(256))
    return bytes(out)


@pytest.fixture
def trooa1_planes():
    return load_grid("trooa1.txt")


@pytest.fixture
def trooa1_bytes(trooa1_planes):
    pixels, mask = trooa1_planes
    return encode_sprite(grid_columns(pixels, mask), pixels.shape[0], *TROOA1_ORIGIN)


@pytest.fixture
def trooa1(trooa1_bytes):
    from sprite import Sprite

    return Sprite(trooa1_bytes)


@pytest.fixture
def small_patch():
    """2x3 sprite with its hotspot at (1, 2):

    column 0: rows 0-1 = 10, 11
    column 1: rows 1-2 = 20, 21
    """
    return encode_sprite([[(0, b"\x0a\x0b")], [(1, b"\x14\x15")]], 3, left=1, top=2)


@pytest.fixture
def flat_bytes():
    # on-disk offset i holds i % 251
    return bytes(i % 251 for i in range(64 * 64))


@pytest.fixture
def sample_wad(trooa1_bytes, small_patch, flat_bytes):
    textures = make_texture_dir(
        [
            make_texture("SMALL", 16, 16, [(0, 0, 0)]),
            make_texture("TWOPATCH", 8, 4, [(0, 0, 0), (1, 1, 0)]),
            make_texture("BROKEN", 8, 8, [(0, 0, 5)]),
        ]
    )
    return make_wad(
        [
            ("PLAYPAL", make_playpal()),
            ("COLORMAP", make_colormap()),
            ("TROOA1", trooa1_bytes),
            ("FLAT1", flat_bytes),
            ("PNAMES", make_pnames(["SMALLP", "TROOA1"])),
            ("TEXTURE1", textures),
            ("SMALLP", small_patch),
        ]
    )


@pytest.fixture
def sample_wad_file(tmp_path, sample_wad):
    path = tmp_path / "sample.wad"
    path.write_bytes(sample_wad)
    return str(path)
