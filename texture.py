import logging
import struct
from typing import Iterator, Optional, Protocol

from errors import MalformedAsset, UnsupportedField, UnresolvedPatch
from sprite import Sprite
from sprite_canvas import SpriteCanvas
from wad import Wad, entry_id, entry_name, normalize_id
from wad_headers import (
    TextureHeader,
    PatchRecord,
    texture_dir_count_format,
    texture_dir_offset_format,
    texture_header_format,
    patch_record_format,
    pnames_count_format,
    TEXTURE_HEADER_SIZE,
    PATCH_RECORD_SIZE,
    PNAME_SIZE,
)

# Every patch record in this asset family carries these values
PATCH_STEP_DIR = 1
PATCH_COLORMAP = 0


def parse_patch(data: bytes, offset: int = 0) -> PatchRecord:
    patch = PatchRecord._make(struct.unpack_from(patch_record_format, data, offset))
    if patch.step_dir != PATCH_STEP_DIR:
        raise UnsupportedField(
            f"Patch #{patch.patch_id}: unsupported step direction {patch.step_dir}"
        )
    if patch.colormap != PATCH_COLORMAP:
        raise UnsupportedField(
            f"Patch #{patch.patch_id}: unsupported colormap {patch.colormap}"
        )
    return patch


class Texture:
    def __init__(self, data: bytes):
        if len(data) < TEXTURE_HEADER_SIZE:
            raise MalformedAsset(f"Texture too short for header: {len(data)} bytes")

        self.data = data
        self.header = TextureHeader._make(
            struct.unpack_from(texture_header_format, data, 0)
        )

        patch_data_end = TEXTURE_HEADER_SIZE + self.header.patch_count * PATCH_RECORD_SIZE
        if len(data) < patch_data_end:
            raise MalformedAsset(
                f"Texture {self.display_name}: too short for "
                f"{self.header.patch_count} patches"
            )

    @property
    def name(self) -> bytes:
        return self.header.name

    @property
    def display_name(self) -> str:
        return entry_name(self.header.name)

    @property
    def width(self) -> int:
        return self.header.width

    @property
    def height(self) -> int:
        return self.header.height

    def __len__(self) -> int:
        return self.header.patch_count

    def patch(self, index: int) -> PatchRecord:
        if not 0 <= index < len(self):
            raise IndexError(f"Patch {index} out of range (0-{len(self) - 1})")
        return parse_patch(self.data, TEXTURE_HEADER_SIZE + index * PATCH_RECORD_SIZE)

    def patches(self) -> Iterator[PatchRecord]:
        for i in range(len(self)):
            yield self.patch(i)


class TextureDirectory:
    """A TEXTURE1/TEXTURE2 lump: a count, an offset table and the records."""

    def __init__(self, data: bytes):
        if len(data) < 4:
            raise MalformedAsset(f"Texture directory too short: {len(data)} bytes")

        self.data = data
        (self.num_textures,) = struct.unpack_from(texture_dir_count_format, data, 0)
        if self.num_textures & 0x80000000:
            raise MalformedAsset(f"Invalid texture count: {self.num_textures:#x}")

        offset_array_end = 4 + self.num_textures * 4
        if len(data) < offset_array_end:
            raise MalformedAsset(
                f"Texture directory too short for {self.num_textures} offsets"
            )

        self.offsets = [
            struct.unpack_from(texture_dir_offset_format, data, 4 + i * 4)[0]
            for i in range(self.num_textures)
        ]
        for i, offset in enumerate(self.offsets):
            if not offset_array_end <= offset <= len(data):
                raise MalformedAsset(f"Texture {i} offset out of range: {offset}")

        logging.debug(f"texture dir - count:{self.num_textures} size:{len(data)}")

    def __len__(self) -> int:
        return self.num_textures

    def __iter__(self) -> Iterator[Texture]:
        for i in range(len(self)):
            yield self.texture(i)

    def texture(self, index: int) -> Texture:
        if not 0 <= index < len(self):
            raise IndexError(f"Texture {index} out of range (0-{len(self) - 1})")
        start = self.offsets[index]
        # Records are not required to be stored in order
        end = len(self.data)
        if index + 1 < len(self.offsets) and self.offsets[index + 1] > start:
            end = self.offsets[index + 1]
        return Texture(self.data[start:end])

    def find(self, name: str) -> Optional[Texture]:
        wanted = entry_id(name)
        for texture in self:
            if normalize_id(texture.name) == wanted:
                return texture
        return None


def parse_pnames(data: bytes) -> list[bytes]:
    """Parse a PNAMES lump into its raw 8-byte names"""
    if len(data) < 4:
        raise MalformedAsset(f"PNAMES too short: {len(data)} bytes")
    (count,) = struct.unpack_from(pnames_count_format, data, 0)
    if len(data) < 4 + count * PNAME_SIZE:
        raise MalformedAsset(f"PNAMES too short for {count} names: {len(data)} bytes")
    return [
        bytes(data[4 + i * PNAME_SIZE : 4 + (i + 1) * PNAME_SIZE]) for i in range(count)
    ]


class PatchProvider(Protocol):
    def patch(self, patch_id: int) -> Optional[Sprite]: ...

    def patch_name(self, patch_id: int) -> Optional[str]: ...


class LazyPatchProvider:
    """Looks up and decodes a patch every time it is asked for."""

    def __init__(self, wad: Wad, pnames: list[bytes]):
        self.wad = wad
        self.pnames = pnames

    def patch_name(self, patch_id: int) -> Optional[str]:
        if 0 <= patch_id < len(self.pnames):
            return entry_name(self.pnames[patch_id])
        return None

    def patch(self, patch_id: int) -> Optional[Sprite]:
        if not 0 <= patch_id < len(self.pnames):
            return None
        data = self.wad.by_id(self.pnames[patch_id])
        if data is None:
            return None
        return Sprite(data)


class EagerPatchProvider:
    """Looks up and decodes every patch in PNAMES up front."""

    def __init__(self, wad: Wad, pnames: list[bytes]):
        self.pnames = pnames
        self.patches: list[Optional[Sprite]] = []
        for name in pnames:
            data = wad.by_id(name)
            if data is None:
                logging.info(f"patch {entry_name(name)} not found")
                self.patches.append(None)
            else:
                self.patches.append(Sprite(data))

    def patch_name(self, patch_id: int) -> Optional[str]:
        if 0 <= patch_id < len(self.pnames):
            return entry_name(self.pnames[patch_id])
        return None

    def patch(self, patch_id: int) -> Optional[Sprite]:
        if 0 <= patch_id < len(self.patches):
            return self.patches[patch_id]
        return None


def render_texture(texture: Texture, patch_provider: PatchProvider) -> bytes:
    """Compose the patches of `texture` and encode the result as a sprite."""
    canvas = SpriteCanvas(texture.width, texture.height)

    for patch in texture.patches():
        sprite = patch_provider.patch(patch.patch_id)
        if sprite is None:
            raise UnresolvedPatch(patch.patch_id, patch_provider.patch_name(patch.patch_id))

        logging.debug(
            f"texture {texture.display_name} - patch #{patch.patch_id} at "
            f"{patch.origin_x},{patch.origin_y}"
        )
        # The patch's own hotspot cancels out: its top-left corner lands on
        # the origin given in the texture record.
        canvas.draw_patch(
            patch.origin_x + sprite.left, patch.origin_y + sprite.top, sprite
        )

    return canvas.make_sprite()
