"""
Nearest-neighbour rasterizing of flats and sprites.

The assets were drawn for a 320x200 mode shown on a 4:3 screen, so their
pixels are 1.2 times taller than wide. All scale factors are kept as exact
fractions: the user's scale and the aspect correction are multiplied into a
single factor, and every output coordinate is mapped back to its source
with one truncating division.
"""

import math
from fractions import Fraction
from typing import Optional, Protocol

import numpy as np

from flat import Flat
from sprite import Sprite
from sprite_canvas import SpriteCanvas

DESIGN_RESOLUTION = Fraction(320, 200)
DISPLAY_ASPECT = Fraction(4, 3)

# Vertical stretch that makes sprite pixels look right on a square-pixel display
SPRITE_PIXEL_ASPECT = DESIGN_RESOLUTION / DISPLAY_ASPECT  # 6:5
# Width:height of an unstretched sprite pixel
ANAMORPHIC_PIXEL_ASPECT = DISPLAY_ASPECT / DESIGN_RESOLUTION  # 5:6

MASK_PALETTE = bytes([0, 0, 0, 255, 255, 255])


def do_scale(input: np.ndarray, sx: int, sy: Fraction) -> np.ndarray:
    """Scale a (height, width[, channels]) grid by `sx` across and `sy` down."""
    sy = Fraction(sy)
    if sx < 1 or sy <= 0:
        raise ValueError(f"Invalid scale factors: {sx}, {sy}")

    height, width = input.shape[:2]
    target_height = int(height * sy)
    target_width = width * sx

    src_y = np.array(
        [int(Fraction(y) / sy) for y in range(target_height)], dtype=np.intp
    )
    src_x = np.arange(target_width, dtype=np.intp) // sx

    return input[src_y][:, src_x]


class Gfx(Protocol):
    def dim(self) -> tuple[int, int]: ...

    def pixel_aspect_ratio(self) -> Fraction: ...

    def draw_column(
        self, index: int, target: np.ndarray, vertical_scale: Fraction
    ) -> None: ...


class FlatGfx:
    def __init__(self, flat: Flat):
        self.flat = flat

    def dim(self) -> tuple[int, int]:
        return self.flat.dim()

    def pixel_aspect_ratio(self) -> Fraction:
        return Fraction(1)

    def draw_column(self, index: int, target: np.ndarray, vertical_scale: Fraction):
        column = self.flat.view()[:, index]
        for y in range(len(target)):
            src_y = int(Fraction(y) / vertical_scale)
            if src_y >= len(column):
                break
            target[y] = column[src_y]


class SpriteGfx:
    """Draws a sprite relative to its own top-left corner.

    Only rows covered by a post are written; the rest of the target keeps
    whatever background it was filled with.
    """

    def __init__(self, sprite: Sprite):
        self.sprite = sprite

    def dim(self) -> tuple[int, int]:
        return self.sprite.dim()

    def pixel_aspect_ratio(self) -> Fraction:
        return SPRITE_PIXEL_ASPECT

    def draw_column(self, index: int, target: np.ndarray, vertical_scale: Fraction):
        for span in self.sprite.column(index):
            start = math.ceil(span.top * vertical_scale)
            end = math.ceil((span.top + len(span.pixels)) * vertical_scale)
            for y in range(max(start, 0), min(end, len(target))):
                src_y = int(Fraction(y) / vertical_scale)
                target[y] = span.pixels[src_y - span.top]


def paint_gfx(gfx: Gfx, scale: int, background: int = 0) -> np.ndarray:
    pixel_aspect_ratio = gfx.pixel_aspect_ratio()
    vertical_scale = pixel_aspect_ratio * scale
    height, width = gfx.dim()

    target = np.full(
        (int(height * vertical_scale), width * scale), background, dtype=np.uint8
    )

    for x in range(target.shape[1]):
        gfx.draw_column(x // scale, target[:, x], vertical_scale)

    return target


def render_sprite(
    sprite: Sprite,
    canvas_size: Optional[tuple[int, int]] = None,
    pos: Optional[tuple[int, int]] = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Place a sprite on a canvas and return its row-major (pixels, mask).

    `canvas_size` is (width, height) and defaults to the sprite's size.
    `pos` is where the hotspot goes and defaults to the hotspot itself, which
    puts the sprite's top-left corner at (0, 0).
    """
    width, height = canvas_size if canvas_size else sprite.dimensions()
    pos_x, pos_y = pos if pos else sprite.origin()

    canvas = SpriteCanvas(width, height)
    canvas.draw_patch(pos_x, pos_y, sprite)
    return canvas.planes_row_major()


def apply_colormap(pixels: np.ndarray, colormap: bytes) -> np.ndarray:
    return np.frombuffer(colormap, dtype=np.uint8)[pixels]


def to_indexed(
    pixels: np.ndarray, mask: np.ndarray, colormap: bytes, background: int
) -> np.ndarray:
    """Colormapped palette indices; transparent pixels get `background` as is"""
    out = apply_colormap(pixels, colormap)
    out[~mask] = background
    return out


def to_mask(mask: np.ndarray) -> np.ndarray:
    """0/1 indices for use with MASK_PALETTE"""
    return mask.astype(np.uint8)


def to_rgba(
    pixels: np.ndarray,
    mask: np.ndarray,
    palette: bytes,
    colormap: bytes,
    background: Optional[int] = None,
) -> np.ndarray:
    """Full color with alpha; `background` is a palette index that is
    colormapped like any other pixel. Without it transparent pixels are
    (0, 0, 0, 0)."""
    rgb = np.frombuffer(palette, dtype=np.uint8).reshape(-1, 3)
    cmap = np.frombuffer(colormap, dtype=np.uint8)

    out = np.empty(pixels.shape + (4,), dtype=np.uint8)
    out[..., :3] = rgb[cmap[pixels]]
    out[..., 3] = 255

    if background is None:
        out[~mask] = 0
    else:
        out[~mask] = (*rgb[cmap[background]], 255)
    return out
