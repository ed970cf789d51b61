import numpy as np

from errors import MalformedAsset

FLAT_SIZE = 64


class Flat:
    """A 64x64 tile of palette indices.

    Tiles are stored column by column, so the pixel at (row, col) lives at
    offset col * 64 + row. The view is not a copy of the lump.
    """

    def __init__(self, data: bytes):
        if len(data) != FLAT_SIZE * FLAT_SIZE:
            raise MalformedAsset(
                f"Flat must be {FLAT_SIZE * FLAT_SIZE} bytes, got {len(data)}"
            )
        self.data = data
        self.pixels = np.frombuffer(data, dtype=np.uint8).reshape(FLAT_SIZE, FLAT_SIZE).T
        self.pixels.flags.writeable = False

    def dim(self) -> tuple[int, int]:
        return self.pixels.shape

    def pixel(self, row: int, col: int) -> int:
        return int(self.pixels[row, col])

    def view(self) -> np.ndarray:
        """Row-major (read-only) view of the tile"""
        return self.pixels


def decode_tile(data: bytes) -> Flat:
    return Flat(data)
