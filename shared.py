PALETTE_SIZE = 256 * 3
COLORMAP_SIZE = 256

# Banks in the reference PLAYPAL / COLORMAP lumps
PALETTE_BANKS = 14
COLORMAP_BANKS = 34


def palette_bank(playpal: bytes, index: int = 0) -> bytes:
    """Slice palette bank `index` out of a PLAYPAL lump"""
    start = index * PALETTE_SIZE
    if index < 0 or start + PALETTE_SIZE > len(playpal):
        banks = len(playpal) // PALETTE_SIZE
        raise ValueError(f"Palette {index} out of range (0-{banks - 1})")
    return bytes(playpal[start : start + PALETTE_SIZE])


def colormap_bank(colormaps: bytes, index: int = 0) -> bytes:
    """Slice colormap bank `index` out of a COLORMAP lump"""
    start = index * COLORMAP_SIZE
    if index < 0 or start + COLORMAP_SIZE > len(colormaps):
        banks = len(colormaps) // COLORMAP_SIZE
        raise ValueError(f"Colormap {index} out of range (0-{banks - 1})")
    return bytes(colormaps[start : start + COLORMAP_SIZE])

