from collections import namedtuple
import struct

# typedef struct {  // WAD file header
#     char identification[4];  // "IWAD" or "PWAD"
#     int32_t numlumps;        // number of directory entries
#     int32_t infotableofs;    // offset of the lump directory
# } wadinfo_t;
WadHeader = namedtuple("WadHeader", ["identification", "numlumps", "infotableofs"])
wad_header_format = "<4sii"

# typedef struct {  // WAD lump directory entry
#     int32_t filepos;  // offset of the lump data
#     int32_t size;     // length of the lump data
#     char name[8];     // NUL-padded lump name
# } filelump_t;
WadDirEntry = namedtuple("WadDirEntry", ["filepos", "size", "name"])
wad_dir_entry_format = "<ii8s"

# typedef struct {  // Sprite (patch_t) header
#     uint16_t width;
#     uint16_t height;
#     int16_t left;       // hotspot x, relative to the top-left corner
#     int16_t top;        // hotspot y, relative to the top-left corner
#     uint32_t columnofs[width];  // absolute offsets of the column posts
# } patch_t;
SpriteHeader = namedtuple("SpriteHeader", ["width", "height", "left", "top"])
sprite_header_format = "<HHhh"
sprite_column_format = "<I"

# post: uint8_t top, uint8_t length, uint8_t pad, uint8_t pixels[length], uint8_t pad
# top == 0xFF ends the column
POST_END = 0xFF

# typedef struct {  // TEXTURE1/TEXTURE2 directory
#     int32_t numtextures;
#     int32_t offset[numtextures];
# } maptexturedir_t;
texture_dir_count_format = "<I"
texture_dir_offset_format = "<I"

# typedef struct {  // Texture record
#     char name[8];
#     uint32_t masked;           // unused
#     uint16_t width;
#     uint16_t height;
#     uint32_t columndirectory;  // unused
#     uint16_t patchcount;
#     mappatch_t patches[patchcount];
# } maptexture_t;
TextureHeader = namedtuple(
    "TextureHeader",
    ["name", "masked", "width", "height", "columndirectory", "patch_count"],
)
texture_header_format = "<8sIHHIH"

# typedef struct {  // Texture patch record
#     int16_t originx;
#     int16_t originy;
#     uint16_t patch;     // index into PNAMES
#     uint16_t stepdir;   // always 1
#     uint16_t colormap;  // always 0
# } mappatch_t;
PatchRecord = namedtuple(
    "PatchRecord", ["origin_x", "origin_y", "patch_id", "step_dir", "colormap"]
)
patch_record_format = "<hhHHH"

# PNAMES: int32_t count, char names[count][8]
pnames_count_format = "<I"
PNAME_SIZE = 8

WAD_HEADER_SIZE = struct.calcsize(wad_header_format)  # 12
WAD_DIR_ENTRY_SIZE = struct.calcsize(wad_dir_entry_format)  # 16
SPRITE_HEADER_SIZE = struct.calcsize(sprite_header_format)  # 8
SPRITE_COLUMN_SIZE = struct.calcsize(sprite_column_format)  # 4
TEXTURE_HEADER_SIZE = struct.calcsize(texture_header_format)  # 22
PATCH_RECORD_SIZE = struct.calcsize(patch_record_format)  # 10
