#!/usr/bin/env python3

import argparse
import logging
import sys
from typing import Optional

import numpy as np
from PIL import Image
from PIL.Image import Image as PILImage

from shared import palette_bank
from sprite_canvas import SpriteCanvas
from wad import Wad

# Alpha values below this are transparent when converting RGBA images
ALPHA_THRESHOLD = 128


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Convert PNG files to sprite lumps")
    parser.add_argument("file", help="The PNG file to convert.")
    parser.add_argument("-o", "--output", help="Output sprite lump name", required=True)
    parser.add_argument(
        "-p",
        "--palette",
        help="Palette to match non-indexed images to: a raw .pal file or a WAD "
        "with a PLAYPAL lump.",
        default=None,
    )
    parser.add_argument(
        "--bank", type=int, default=0, help="Which PLAYPAL bank to use (0-13)"
    )
    parser.add_argument(
        "-t",
        "--transparent",
        type=int,
        default=None,
        help="Color index to treat as transparent in indexed images without "
        "transparency information",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose mode."
    )
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.INFO)
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        palette = load_palette(args.palette, args.bank) if args.palette else None

        image = Image.open(args.file)
        pixels, mask = image_planes(image, palette, args.transparent)
        data = SpriteCanvas.from_planes(pixels, mask).make_sprite()
    except (OSError, ValueError) as e:
        logging.error(f"{args.file}: {e}")
        return 1

    logging.info(f"writing {len(data)} bytes to {args.output}")
    with open(args.output, "wb") as f:
        f.write(data)
    return 0


def load_palette(filename: str, bank: int = 0) -> bytes:
    if filename.lower().endswith(".pal"):
        with open(filename, "rb") as f:
            return palette_bank(f.read(), bank)

    wad = Wad.open(filename)
    playpal = wad.by_id("PLAYPAL")
    if playpal is None:
        raise ValueError(f"{filename}: Missing PLAYPAL")
    return palette_bank(playpal, bank)


def image_planes(
    image: PILImage, palette: Optional[bytes] = None, transparent: Optional[int] = None
) -> tuple[np.ndarray, np.ndarray]:
    """Row-major (pixels, mask) planes of an image.

    Indexed images keep their indices. Anything else is matched against
    `palette` and uses its alpha channel for the mask.
    """
    if image.mode == "P":
        pixels = np.asarray(image, dtype=np.uint8)
        trns = image.info.get("transparency")
        if isinstance(trns, int):
            mask = pixels != trns
        elif isinstance(trns, bytes):
            alpha = np.frombuffer(trns.ljust(256, b"\xff"), dtype=np.uint8)
            mask = alpha[pixels] >= ALPHA_THRESHOLD
        elif transparent is not None:
            mask = pixels != transparent
        else:
            mask = np.ones(pixels.shape, dtype=bool)
        logging.info(f"indexed image {image.width}x{image.height}")
        return pixels, mask

    if palette is None:
        raise ValueError(f"A palette is needed to convert {image.mode} images")

    rgba = image.convert("RGBA")
    mask = np.asarray(rgba, dtype=np.uint8)[..., 3] >= ALPHA_THRESHOLD

    palette_image = Image.new("P", (16, 16))
    palette_image.putpalette(palette)

    # Match using fixed palette, no dithering: sprites are pixel art
    quantized = rgba.convert("RGB").quantize(
        palette=palette_image, dither=Image.Dither.NONE
    )
    pixels = np.asarray(quantized, dtype=np.uint8)
    logging.info(f"{image.mode} image {image.width}x{image.height} matched to palette")
    return pixels, mask


if __name__ == "__main__":
    sys.exit(main())
