import struct

import numpy as np
import pytest

from conftest import encode_sprite
from errors import UnencodableRun
from sprite import Sprite
from sprite_canvas import MAX_SPAN_LENGTH, SpriteCanvas


def draw_at_origin(sprite: Sprite) -> SpriteCanvas:
    canvas = SpriteCanvas(sprite.width, sprite.height)
    canvas.draw_patch(sprite.left, sprite.top, sprite)
    return canvas


class TestDrawPatch:
    def test_round_trip(self, trooa1):
        canvas = draw_at_origin(trooa1)
        copy = Sprite(canvas.make_sprite())

        assert copy.dimensions() == trooa1.dimensions()
        for i in range(trooa1.width):
            assert list(copy.column(i)) == list(trooa1.column(i))

    def test_planes_match_grid(self, trooa1, trooa1_planes):
        pixels, mask = trooa1_planes
        canvas = draw_at_origin(trooa1)

        out_pixels, out_mask = canvas.planes_row_major()
        assert np.array_equal(out_mask, mask)
        assert np.array_equal(np.where(mask, out_pixels, 0), pixels)

        col_pixels, col_mask = canvas.planes_col_major()
        assert np.array_equal(col_mask, mask.T)
        assert np.array_equal(col_pixels, out_pixels.T)

    def test_planes_are_copies(self, trooa1):
        canvas = draw_at_origin(trooa1)
        pixels, mask = canvas.planes_col_major()
        pixels[:] = 1
        mask[:] = False
        assert canvas.mask.any()

    @pytest.mark.parametrize(
        "pos", [(-100, 0), (0, -100), (200, 52), (20, 200), (-21, 52), (61, 52)]
    )
    def test_fully_clipped(self, trooa1, pos):
        canvas = SpriteCanvas(41, 57)
        canvas.draw_patch(pos[0], pos[1], trooa1)
        assert not canvas.mask.any()
        assert not canvas.pixels.any()

    def test_partially_clipped(self, trooa1, trooa1_planes):
        pixels, mask = trooa1_planes
        canvas = SpriteCanvas(20, 30)
        # Put the sprite's top-left corner at (-10, -5)
        canvas.draw_patch(20 - 10, 52 - 5, trooa1)

        out_pixels, out_mask = canvas.planes_row_major()
        expected_mask = mask[5:35, 10:30]
        assert np.array_equal(out_mask, expected_mask)
        assert np.array_equal(
            out_pixels[expected_mask], pixels[5:35, 10:30][expected_mask]
        )

    def test_later_patch_overwrites(self):
        red = Sprite(encode_sprite([[(0, b"\x01\x01")]] * 2, 2))
        blue = Sprite(encode_sprite([[(1, b"\x02")]], 2))
        canvas = SpriteCanvas(2, 2)
        canvas.draw_patch(0, 0, red)
        canvas.draw_patch(1, 0, blue)

        pixels, mask = canvas.planes_row_major()
        assert mask.all()
        assert pixels.tolist() == [[1, 1], [1, 2]]

    def test_transparent_pixels_do_not_overwrite(self):
        solid = Sprite(encode_sprite([[(0, b"\x07\x07\x07")]], 3))
        holey = Sprite(encode_sprite([[(0, b"\x09"), (2, b"\x09")]], 3))
        canvas = SpriteCanvas(1, 3)
        canvas.draw_patch(0, 0, solid)
        canvas.draw_patch(0, 0, holey)
        assert canvas.pixels[0].tolist() == [9, 7, 9]

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            SpriteCanvas(-1, 10)
        with pytest.raises(ValueError):
            SpriteCanvas(10, 0x10000)


class TestMakeSprite:
    def test_exact_bytes(self):
        canvas = SpriteCanvas(2, 3)
        canvas.pixels[0, 1:3] = [5, 6]
        canvas.mask[0, 1:3] = True

        assert canvas.make_sprite() == (
            bytes([2, 0, 3, 0, 0, 0, 0, 0])
            + struct.pack("<2I", 16, 23)
            + bytes([1, 2, 2, 5, 6, 0, 255, 255])
        )

    def test_empty_canvas(self):
        data = SpriteCanvas(3, 4).make_sprite()
        sprite = Sprite(data)
        assert sprite.dimensions() == (3, 4)
        assert sprite.post_count() == 0
        assert data[-3:] == b"\xff\xff\xff"

    def test_hotspot_reset(self, trooa1):
        sprite = Sprite(draw_at_origin(trooa1).make_sprite())
        assert sprite.origin() == (0, 0)

    def test_max_run(self):
        canvas = SpriteCanvas(1, 300)
        canvas.mask[0, :MAX_SPAN_LENGTH] = True
        (post,) = Sprite(canvas.make_sprite()).column(0)
        assert post.top == 0
        assert len(post.pixels) == 255

    def test_run_too_long(self):
        canvas = SpriteCanvas(1, 300)
        canvas.mask[0, :256] = True
        with pytest.raises(UnencodableRun):
            canvas.make_sprite()

    def test_run_starts_too_low(self):
        canvas = SpriteCanvas(1, 300)
        canvas.mask[0, 255] = True
        with pytest.raises(UnencodableRun):
            canvas.make_sprite()

    def test_last_encodable_row(self):
        canvas = SpriteCanvas(1, 300)
        canvas.mask[0, 254] = True
        canvas.pixels[0, 254] = 42
        assert list(Sprite(canvas.make_sprite()).column(0)) == [(254, b"\x2a")]


class TestFromPlanes:
    def test_from_planes(self, trooa1_planes, trooa1):
        pixels, mask = trooa1_planes
        canvas = SpriteCanvas.from_planes(pixels, mask)
        assert (canvas.width, canvas.height) == (41, 57)

        copy = Sprite(canvas.make_sprite())
        for i in range(trooa1.width):
            assert list(copy.column(i)) == list(trooa1.column(i))

    def test_mismatched_planes(self):
        with pytest.raises(ValueError):
            SpriteCanvas.from_planes(
                np.zeros((2, 3), dtype=np.uint8), np.zeros((3, 2), dtype=bool)
            )
