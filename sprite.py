import logging
import struct
from collections import namedtuple
from typing import Iterator

from errors import MalformedAsset
from wad_headers import (
    SpriteHeader,
    sprite_header_format,
    sprite_column_format,
    SPRITE_HEADER_SIZE,
    SPRITE_COLUMN_SIZE,
    POST_END,
)

# A vertical run of opaque pixels starting at row `top`
Span = namedtuple("Span", ["top", "pixels"])


# Sprites are stored column by column. Each column is a list of posts:
#   top:u8 count:u8 pad:u8 pixels[count] pad:u8
# and a top of 0xFF ends the column. Rows not covered by a post are
# transparent.
class Sprite:
    def __init__(self, data: bytes):
        if len(data) < SPRITE_HEADER_SIZE:
            raise MalformedAsset(f"Sprite too short for header: {len(data)} bytes")

        self.data = data
        self.header = SpriteHeader._make(
            struct.unpack_from(sprite_header_format, data, 0)
        )

        self.data_offset = SPRITE_HEADER_SIZE + self.header.width * SPRITE_COLUMN_SIZE
        if len(data) < self.data_offset:
            raise MalformedAsset(
                f"Sprite too short for {self.header.width} columns: {len(data)} bytes"
            )

        self.column_offsets = [
            struct.unpack_from(
                sprite_column_format, data, SPRITE_HEADER_SIZE + i * SPRITE_COLUMN_SIZE
            )[0]
            for i in range(self.header.width)
        ]
        for i, offset in enumerate(self.column_offsets):
            if not self.data_offset <= offset < len(data):
                raise MalformedAsset(f"Column {i} offset out of range: {offset}")

        logging.debug(
            f"sprite - w:{self.width} h:{self.height} left:{self.left} top:{self.top} size:{len(data)}"
        )

    @property
    def width(self) -> int:
        return self.header.width

    @property
    def height(self) -> int:
        return self.header.height

    @property
    def left(self) -> int:
        return self.header.left

    @property
    def top(self) -> int:
        return self.header.top

    def dim(self) -> tuple[int, int]:
        """(height, width), the shape of the sprite as a row-major grid"""
        return (self.height, self.width)

    def dimensions(self) -> tuple[int, int]:
        """(width, height)"""
        return (self.width, self.height)

    def origin(self) -> tuple[int, int]:
        """The hotspot as (left, top)"""
        return (self.left, self.top)

    def column(self, index: int) -> Iterator[Span]:
        """Iterate the posts of column `index`.

        Every call starts over from the beginning of the column. A post that
        runs past the end of the buffer raises MalformedAsset.
        """
        if not 0 <= index < self.width:
            raise IndexError(f"Column {index} out of range (0-{self.width - 1})")
        return self._posts(index, self.column_offsets[index])

    def _posts(self, index: int, pos: int) -> Iterator[Span]:
        data = self.data
        end = len(data)
        while True:
            if pos >= end:
                raise MalformedAsset(f"Column {index} is missing its terminator")
            top = data[pos]
            if top == POST_END:
                return

            if pos + 3 > end:
                raise MalformedAsset(f"Column {index}: truncated post at {pos}")
            count = data[pos + 1]
            pixels_end = pos + 3 + count
            # the trailing pad byte must be present as well
            if pixels_end + 1 > end:
                raise MalformedAsset(
                    f"Column {index}: post of {count} pixels at {pos} runs past the end"
                )

            yield Span(top, data[pos + 3 : pixels_end])
            pos = pixels_end + 1

    def columns(self) -> Iterator[list[Span]]:
        for i in range(self.width):
            yield list(self.column(i))

    def post_count(self) -> int:
        return sum(len(posts) for posts in self.columns())

    def info(self) -> str:
        return (
            f"Dimensions: {self.width}x{self.height}\n"
            f"Origin: {self.left},{self.top}\n"
            f"Size (b): {len(self.data)}\n"
        )


def decode_sprite(data: bytes) -> Sprite:
    return Sprite(data)
