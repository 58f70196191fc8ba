"""SNES tile graphics decoding.

Binary formats exported by SMART:

  8x8tiles.gfx     32-byte records, one 8x8 tile in 4bpp planar format.
                   Row y uses bytes 2y / 2y+1 (bitplanes 0,1) and
                   2y+16 / 2y+17 (bitplanes 2,3); pixel x is bit 7-x.
  16x16tiles.ttb   8-byte records, four little-endian tile words
                   (top-left, top-right, bottom-left, bottom-right).
  palette.snes     2-byte little-endian RGB555 colors, 16 per bank.

Tile word layout (8x8 reference):
  bits 0-9   graphics index
  bits 10-12 palette bank
  bit 13     priority (ignored when rendering)
  bit 14     horizontal flip
  bit 15     vertical flip
"""

import struct
from typing import NamedTuple

from .errors import UnsupportedAssetShape

# ============================================================================
# Constants
# ============================================================================

TILE_SIZE = 8
TILE_4BPP_BYTES = 32
TILE16_RECORD_BYTES = 8
COLOR_BYTES = 2
COLORS_PER_BANK = 16

TILE_IDX_MASK = 0x3FF
TILE_PALETTE_SHIFT = 10
TILE_PALETTE_MASK = 0x7
TILE_PRIORITY_BIT = 13
TILE_FLIP_X_BIT = 14
TILE_FLIP_Y_BIT = 15

Color = tuple[int, int, int]


class Tile8x8(NamedTuple):
    idx: int
    palette: int
    flip_x: bool = False
    flip_y: bool = False
    priority: bool = False


class Tile16x16(NamedTuple):
    top_left: Tile8x8
    top_right: Tile8x8
    bottom_left: Tile8x8
    bottom_right: Tile8x8


# ============================================================================
# 4bpp planar bitmaps
# ============================================================================

def decode_4bpp_tile(data: bytes) -> list[list[int]]:
    """Decode one 32-byte planar tile into an 8x8 matrix of color indices (0-15)."""
    if len(data) < TILE_4BPP_BYTES:
        raise UnsupportedAssetShape(
            f"4bpp tile needs {TILE_4BPP_BYTES} bytes, got {len(data)}")
    rows = []
    for y in range(TILE_SIZE):
        addr = y * 2
        plane0 = data[addr]
        plane1 = data[addr + 1]
        plane2 = data[addr + 16]
        plane3 = data[addr + 17]
        row = []
        for x in range(TILE_SIZE):
            shift = 7 - x
            row.append(((plane0 >> shift) & 1)
                       | (((plane1 >> shift) & 1) << 1)
                       | (((plane2 >> shift) & 1) << 2)
                       | (((plane3 >> shift) & 1) << 3))
        rows.append(row)
    return rows


def encode_4bpp_tile(pixels: list[list[int]]) -> bytes:
    """Pack an 8x8 matrix of color indices back into 32 planar bytes."""
    out = bytearray(TILE_4BPP_BYTES)
    for y in range(TILE_SIZE):
        addr = y * 2
        for x in range(TILE_SIZE):
            c = pixels[y][x] & 0xF
            bit = 1 << (7 - x)
            if c & 1:
                out[addr] |= bit
            if c & 2:
                out[addr + 1] |= bit
            if c & 4:
                out[addr + 16] |= bit
            if c & 8:
                out[addr + 17] |= bit
    return bytes(out)


def decode_gfx(data: bytes) -> list[list[list[int]]]:
    """Decode a whole 8x8tiles.gfx file."""
    if len(data) % TILE_4BPP_BYTES:
        raise UnsupportedAssetShape(
            f"8x8 graphics length {len(data)} is not a multiple of {TILE_4BPP_BYTES}")
    return [decode_4bpp_tile(data[i:i + TILE_4BPP_BYTES])
            for i in range(0, len(data), TILE_4BPP_BYTES)]


# ============================================================================
# Tile words and 16x16 tile tables
# ============================================================================

def decode_tile_word(word: int) -> Tile8x8:
    """Unpack a 16-bit 8x8 tile reference."""
    return Tile8x8(
        idx=word & TILE_IDX_MASK,
        palette=(word >> TILE_PALETTE_SHIFT) & TILE_PALETTE_MASK,
        flip_x=bool((word >> TILE_FLIP_X_BIT) & 1),
        flip_y=bool((word >> TILE_FLIP_Y_BIT) & 1),
        priority=bool((word >> TILE_PRIORITY_BIT) & 1),
    )


def encode_tile_word(tile: Tile8x8) -> int:
    """Pack a Tile8x8 into its 16-bit word."""
    return ((tile.idx & TILE_IDX_MASK)
            | ((tile.palette & TILE_PALETTE_MASK) << TILE_PALETTE_SHIFT)
            | (int(tile.priority) << TILE_PRIORITY_BIT)
            | (int(tile.flip_x) << TILE_FLIP_X_BIT)
            | (int(tile.flip_y) << TILE_FLIP_Y_BIT))


def decode_16x16_tile(data: bytes) -> Tile16x16:
    """Decode one 8-byte tile table record."""
    if len(data) < TILE16_RECORD_BYTES:
        raise UnsupportedAssetShape(
            f"16x16 tile record needs {TILE16_RECORD_BYTES} bytes, got {len(data)}")
    tl, tr, bl, br = struct.unpack_from('<4H', data)
    return Tile16x16(decode_tile_word(tl), decode_tile_word(tr),
                     decode_tile_word(bl), decode_tile_word(br))


def decode_tile_table(data: bytes) -> list[Tile16x16]:
    """Decode a whole 16x16tiles.ttb file."""
    if len(data) % TILE16_RECORD_BYTES:
        raise UnsupportedAssetShape(
            f"16x16 tile table length {len(data)} is not a multiple of {TILE16_RECORD_BYTES}")
    return [decode_16x16_tile(data[i:i + TILE16_RECORD_BYTES])
            for i in range(0, len(data), TILE16_RECORD_BYTES)]


# ============================================================================
# Palettes
# ============================================================================

def decode_color(word: int) -> Color:
    """Convert an RGB555 word to 8-bit RGB.

    Channels are scaled by 8, so full intensity is 248 rather than 255.
    Rendered output is compared against images made the same way, so the
    scale must not be changed.
    """
    r = word & 0x1F
    g = (word >> 5) & 0x1F
    b = (word >> 10) & 0x1F
    return (r * 8, g * 8, b * 8)


def decode_palette(data: bytes) -> list[Color]:
    """Decode a whole palette.snes file."""
    if len(data) % COLOR_BYTES:
        raise UnsupportedAssetShape(
            f"Palette length {len(data)} is not a multiple of {COLOR_BYTES}")
    return [decode_color(word) for (word,) in struct.iter_unpack('<H', data)]
