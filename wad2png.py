#!/usr/bin/env python3

import argparse
import logging
import os
import re
import sys
from fractions import Fraction
from typing import Optional

import numpy as np
from PIL import Image

from flat import Flat
from raster import (
    ANAMORPHIC_PIXEL_ASPECT,
    SPRITE_PIXEL_ASPECT,
    MASK_PALETTE,
    FlatGfx,
    apply_colormap,
    do_scale,
    paint_gfx,
    render_sprite,
    to_indexed,
    to_mask,
    to_rgba,
)
from shared import palette_bank, colormap_bank
from sprite import Sprite
from texture import (
    EagerPatchProvider,
    LazyPatchProvider,
    TextureDirectory,
    parse_pnames,
    render_texture,
)
from wad import Wad, entry_name

# pHYs stores pixels per metre
INCH = 0.0254
PHYS_PPM_BASE = 1000

FORMATS = {
    "indexed": "indexed",
    "i": "indexed",
    "mask": "mask",
    "m": "mask",
    "full": "full",
    "f": "full",
}


def parse_format(src: str) -> str:
    try:
        return FORMATS[src]
    except KeyError:
        raise argparse.ArgumentTypeError(
            "format must be 'indexed'/'i', 'mask'/'m' or 'full'/'f'"
        ) from None


def parse_pair(src: str) -> tuple[int, int]:
    """Parse "320x200" or "100,200" into (x, y)"""
    parts = re.split(r"[x,]", src)
    try:
        if len(parts) != 2:
            raise ValueError(src)
        return int(parts[0]), int(parts[1])
    except ValueError:
        raise argparse.ArgumentTypeError(
            "format must be two integers separated by `x` or `,`, eg 320x200 or 100,200"
        ) from None


def parse_scale(src: str) -> int:
    value = int(src)
    if value < 1:
        raise argparse.ArgumentTypeError(f"scale must be at least 1, got {value}")
    return value


def parse_color_index(src: str) -> int:
    value = int(src)
    if not 0 <= value <= 255:
        raise argparse.ArgumentTypeError(f"color index must be 0-255, got {value}")
    return value


def add_output_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-f",
        "--format",
        type=parse_format,
        default="full",
        help="Output format: full/f, indexed/i or mask/m. Full color uses the "
        "alpha channel for transparency. Indexed color does not include "
        "transparency, but can be combined with the mask for transparent sprites.",
    )
    parser.add_argument(
        "-b",
        "--background",
        type=parse_color_index,
        default=None,
        help="Color index to use for the background",
    )
    parser.add_argument(
        "-a",
        "--anamorphic",
        action="store_true",
        help="Output anamorphic (non-square) pixels. Like the game's own assets, "
        "the pixel aspect ratio will be 5:6.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Extract graphics from Doom WAD files")
    parser.add_argument("input", help="Input WAD file")
    parser.add_argument("name", help="The lump name of the graphic to extract")
    parser.add_argument(
        "-p", "--palette", type=int, default=0, help="Which palette to use (0-13)"
    )
    parser.add_argument(
        "-c", "--colormap", type=int, default=0, help="Which colormap to use (0-33)"
    )
    parser.add_argument(
        "-s",
        "--scale",
        type=parse_scale,
        default=2,
        help="Scale with beautiful nearest neighbor filtering",
    )
    parser.add_argument("-o", "--output", help="Output filename", default=None)
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Enable verbose mode. Can be specified multiple times.",
    )

    gfx = parser.add_subparsers(dest="gfx", required=True)

    gfx.add_parser("flat", help="Extract a flat")

    sprite = gfx.add_parser("sprite", help="Extract a sprite")
    sprite.add_argument(
        "--canvas",
        type=parse_pair,
        default=None,
        help="Canvas size for the output, eg 320x200. Defaults to the size of "
        "the sprite. See the output from --info.",
    )
    sprite.add_argument(
        "--pos",
        type=parse_pair,
        default=None,
        help="Place the sprite's hotspot at these coordinates. Defaults to the "
        "coordinates of the hotspot. See the output from --info.",
    )
    sprite.add_argument(
        "-I",
        "--info",
        action="store_true",
        help="Print information about the sprite instead of generating an image",
    )
    add_output_options(sprite)

    texture = gfx.add_parser("texture", help="List or extract textures")
    texture_cmds = texture.add_subparsers(dest="texture_cmd", required=True)
    texture_cmds.add_parser("list", help="List textures in directory")

    extract = texture_cmds.add_parser("extract", help="Extract a texture")
    extract.add_argument("texture", help="The name of the texture to extract")
    extract.add_argument(
        "-I",
        "--info",
        action="store_true",
        help="Print information about the texture in DeuTex format instead of "
        "generating an image",
    )
    add_output_options(extract)

    extract_all = texture_cmds.add_parser(
        "extract-all", help="Extract every texture in the directory"
    )
    extract_all.add_argument(
        "-d", "--directory", default=".", help="Directory to write the images to"
    )
    add_output_options(extract_all)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.verbose >= 2:
        logging.basicConfig(level=logging.DEBUG)
    elif args.verbose == 1:
        logging.basicConfig(level=logging.INFO)
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        wad = Wad.open(args.input)

        palettes = require_lump(wad, "PLAYPAL")
        palette = palette_bank(palettes, args.palette)
        colormaps = require_lump(wad, "COLORMAP")
        colormap = colormap_bank(colormaps, args.colormap)

        gfx = require_lump(wad, args.name)
        output = args.output if args.output else f"{args.name.lower()}.png"

        if args.gfx == "flat":
            return flat_cmd(palette, colormap, gfx, args.scale, output)
        if args.gfx == "sprite":
            return sprite_cmd(palette, colormap, gfx, args.scale, output, args)
        return texture_cmd(wad, palette, colormap, gfx, args.scale, args.output, args)
    except (OSError, ValueError) as e:
        logging.error(f"{args.input}: {e}")
        return 1


def require_lump(wad: Wad, name: str) -> bytes:
    data = wad.by_id(name)
    if data is None:
        raise ValueError(f"Cannot find {name}")
    return data


def write_png(
    filename,
    palette: Optional[bytes],
    gfx: np.ndarray,
    pixel_aspect: Optional[Fraction] = None,
) -> None:
    """Write a (height, width) indexed or (height, width, 4) RGBA grid.

    A non-square `pixel_aspect` (width:height) is stored in the pHYs chunk.
    """
    height, width = gfx.shape[:2]
    mode = "RGBA" if gfx.ndim == 3 else "P"
    image = Image.frombytes(mode, (width, height), np.ascontiguousarray(gfx).tobytes())
    if palette is not None:
        image.putpalette(palette)

    params = {}
    if pixel_aspect is not None and pixel_aspect != 1:
        params["dpi"] = aspect_dpi(pixel_aspect)

    logging.info(f"saving {width}x{height} {mode} to {filename}")
    image.save(filename, "PNG", optimize=True, **params)


def aspect_dpi(pixel_aspect: Fraction) -> tuple[float, float]:
    """DPI pair whose pHYs pixels-per-metre values have the exact ratio of
    `pixel_aspect` (width:height of one pixel)"""
    return (
        pixel_aspect.denominator * PHYS_PPM_BASE * INCH,
        pixel_aspect.numerator * PHYS_PPM_BASE * INCH,
    )


def flat_cmd(palette: bytes, colormap: bytes, gfx: bytes, scale: int, output) -> int:
    flat = Flat(gfx)
    target = paint_gfx(FlatGfx(flat), scale)
    write_png(output, palette, apply_colormap(target, colormap))
    return 0


def sprite_cmd(
    palette: bytes, colormap: bytes, gfx: bytes, scale: int, output, opts
) -> int:
    sprite = Sprite(gfx)

    if getattr(opts, "info", False):
        print(sprite.info(), end="")
        return 0

    if opts.anamorphic:
        stretch, store_aspect = Fraction(1), ANAMORPHIC_PIXEL_ASPECT
    else:
        stretch, store_aspect = SPRITE_PIXEL_ASPECT, None

    pixels, mask = render_sprite(
        sprite, getattr(opts, "canvas", None), getattr(opts, "pos", None)
    )

    if opts.format == "indexed":
        if opts.background is None:
            raise ValueError("--background must be specified for the indexed format")
        target = to_indexed(pixels, mask, colormap, opts.background)
        target_palette = palette
    elif opts.format == "mask":
        if opts.background is not None:
            logging.warning("--background has no effect for mask format")
        target = to_mask(mask)
        target_palette = MASK_PALETTE
    else:
        target = to_rgba(pixels, mask, palette, colormap, opts.background)
        target_palette = None

    scaled = do_scale(target, scale, Fraction(scale) * stretch)
    write_png(output, target_palette, scaled, store_aspect)
    return 0


def texture_cmd(
    wad: Wad,
    palette: bytes,
    colormap: bytes,
    texture_dir: bytes,
    scale: int,
    output,
    opts,
) -> int:
    texture_dir = TextureDirectory(texture_dir)

    if opts.texture_cmd == "list":
        for texture in texture_dir:
            print(texture.display_name)
        return 0

    pnames = parse_pnames(require_lump(wad, "PNAMES"))

    if opts.texture_cmd == "extract-all":
        patch_provider = EagerPatchProvider(wad, pnames)
        os.makedirs(opts.directory, exist_ok=True)
        for texture in texture_dir:
            texture_sprite = render_texture(texture, patch_provider)
            filename = os.path.join(opts.directory, f"{texture.display_name.lower()}.png")
            sprite_cmd(palette, colormap, texture_sprite, scale, filename, opts)
        return 0

    texture = texture_dir.find(opts.texture)
    if texture is None:
        raise ValueError(f"Unable to find texture {opts.texture}")

    if opts.info:
        print(texture_info(texture, pnames), end="")
        return 0

    patch_provider = LazyPatchProvider(wad, pnames)
    texture_sprite = render_texture(texture, patch_provider)

    if output is None:
        output = f"{texture.display_name.lower()}.png"
    return sprite_cmd(palette, colormap, texture_sprite, scale, output, opts)


def texture_info(texture, pnames: list[bytes]) -> str:
    lines = [
        "; TextureName Width Height",
        f"{texture.display_name} {texture.width} {texture.height}",
        "; PatchName Xoffset Yoffset",
    ]
    for patch in texture.patches():
        if patch.patch_id < len(pnames):
            name = entry_name(pnames[patch.patch_id])
        else:
            name = f"#{patch.patch_id}"
        lines.append(f"* {name} {patch.origin_x} {patch.origin_y}")
    return "\n".join(lines) + "\n"


if __name__ == "__main__":
    sys.exit(main())
