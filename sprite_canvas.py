import logging
import struct

import numpy as np

from errors import UnencodableRun
from rangetools import add, intersect, find_spans
from sprite import Sprite
from wad_headers import (
    sprite_header_format,
    sprite_column_format,
    SPRITE_HEADER_SIZE,
    SPRITE_COLUMN_SIZE,
    POST_END,
)

# The post length is a single byte
MAX_SPAN_LENGTH = 0xFF
# A post may not start on row 255, that byte value ends the column
MAX_SPAN_TOP = POST_END - 1


class SpriteCanvas:
    """A pixel + mask buffer that sprites can be drawn onto.

    Both planes are indexed [x, y], matching the column-major layout of the
    sprite format.
    """

    def __init__(self, width: int, height: int):
        if not (0 <= width <= 0xFFFF and 0 <= height <= 0xFFFF):
            raise ValueError(f"Invalid canvas size: {width}x{height}")
        self.pixels = np.zeros((width, height), dtype=np.uint8)
        self.mask = np.zeros((width, height), dtype=bool)

    @classmethod
    def from_planes(cls, pixels: np.ndarray, mask: np.ndarray) -> "SpriteCanvas":
        """Build a canvas from row-major (height, width) planes."""
        if pixels.shape != mask.shape or pixels.ndim != 2:
            raise ValueError(
                f"Pixel and mask planes differ: {pixels.shape} vs {mask.shape}"
            )
        height, width = pixels.shape
        canvas = cls(width, height)
        canvas.pixels[:] = pixels.T
        canvas.mask[:] = mask.T.astype(bool)
        return canvas

    @property
    def width(self) -> int:
        return self.pixels.shape[0]

    @property
    def height(self) -> int:
        return self.pixels.shape[1]

    def draw_patch(self, pos_x: int, pos_y: int, sprite: Sprite) -> None:
        """Draw `sprite` with its hotspot at (pos_x, pos_y).

        Whatever falls outside the canvas is clipped.
        """
        origin_x, origin_y = sprite.origin()

        # Position sprite origin at given coordinates
        offset_x = pos_x - origin_x
        offset_y = pos_y - origin_y

        x_range = add(range(sprite.width), offset_x)  # Position on canvas
        x_range = intersect(x_range, range(self.width))  # Clip to canvas

        for x in x_range:
            for span in sprite.column(x - offset_x):
                y_offset = offset_y + span.top

                span_range = add(range(len(span.pixels)), y_offset)
                span_range = intersect(span_range, range(self.height))
                if not span_range:
                    continue

                src = span.pixels[span_range.start - y_offset : span_range.stop - y_offset]
                self.pixels[x, span_range.start : span_range.stop] = np.frombuffer(
                    src, dtype=np.uint8
                )
                self.mask[x, span_range.start : span_range.stop] = True

    def make_sprite(self) -> bytes:
        """Encode the canvas in the sprite format.

        The hotspot of the result is always (0, 0): the canvas holds an
        already positioned image and keeps no origin of its own.
        """
        column_array = []
        data = bytearray()

        for x in range(self.width):
            column_array.append(len(data))

            for span in find_spans(self.mask[x]):
                span_len = len(span)
                if span_len > MAX_SPAN_LENGTH:
                    raise UnencodableRun(
                        f"Column {x}: run of {span_len} pixels exceeds {MAX_SPAN_LENGTH}"
                    )
                if span.start > MAX_SPAN_TOP:
                    raise UnencodableRun(
                        f"Column {x}: run starting at row {span.start} exceeds {MAX_SPAN_TOP}"
                    )
                data.append(span.start)
                data.append(span_len)
                data.append(span_len)
                data.extend(self.pixels[x, span.start : span.stop].tobytes())
                data.append(0)
            data.append(POST_END)

        out = bytearray(struct.pack(sprite_header_format, self.width, self.height, 0, 0))

        data_start = SPRITE_HEADER_SIZE + SPRITE_COLUMN_SIZE * len(column_array)
        for col in column_array:
            out.extend(struct.pack(sprite_column_format, col + data_start))

        out.extend(data)

        logging.debug(f"make_sprite - w:{self.width} h:{self.height} size:{len(out)}")
        return bytes(out)

    def planes_col_major(self) -> tuple[np.ndarray, np.ndarray]:
        """(pixels, mask) indexed [x, y]"""
        return self.pixels.copy(), self.mask.copy()

    def planes_row_major(self) -> tuple[np.ndarray, np.ndarray]:
        """(pixels, mask) indexed [y, x]"""
        return np.ascontiguousarray(self.pixels.T), np.ascontiguousarray(self.mask.T)
