"""Tileset loading and CRE/SCE merging.

A project holds one common tileset (CRE, shared by every room) and one
scene tileset (SCE) per graphics set id:

  Export/Tileset/CRE/00/8x8tiles.gfx
  Export/Tileset/CRE/00/16x16tiles.ttb
  Export/Tileset/SCE/<id>/8x8tiles.gfx
  Export/Tileset/SCE/<id>/16x16tiles.ttb
  Export/Tileset/SCE/<id>/palette.snes

The merged tileset mirrors the console's layout: scene graphics come first
and CRE graphics follow them, while the 16x16 table starts with the CRE
tiles and the scene tiles follow. The CRE set carries no palette.
"""

import posixpath
from dataclasses import dataclass, field

from .gfx import Color, Tile16x16, decode_gfx, decode_palette, decode_tile_table

CRE_TILESET_DIR = 'Export/Tileset/CRE/00'
SCE_TILESET_DIR = 'Export/Tileset/SCE'
GFX_FILE = '8x8tiles.gfx'
TILE_TABLE_FILE = '16x16tiles.ttb'
PALETTE_FILE = 'palette.snes'


@dataclass
class Tileset:
    palette: list[Color] = field(default_factory=list)
    gfx: list[list[list[int]]] = field(default_factory=list)
    tiles: list[Tile16x16] = field(default_factory=list)


def sce_dir_name(gfx_set: int) -> str:
    """Directory name for a graphics set id: two uppercase hex digits."""
    return f'{gfx_set:02X}'


def load_cre_tileset(file_system, project_dir: str) -> Tileset:
    """Load the common tileset (graphics and 16x16 tiles, no palette)."""
    base = posixpath.join(project_dir, CRE_TILESET_DIR)
    gfx = decode_gfx(file_system.load(posixpath.join(base, GFX_FILE)))
    tiles = decode_tile_table(file_system.load(posixpath.join(base, TILE_TABLE_FILE)))
    return Tileset(gfx=gfx, tiles=tiles)


def load_sce_tileset(file_system, project_dir: str, gfx_set: int,
                     cre: Tileset) -> Tileset:
    """Load the scene tileset for gfx_set and merge the common tileset into it."""
    base = posixpath.join(project_dir, SCE_TILESET_DIR, sce_dir_name(gfx_set))
    palette = decode_palette(file_system.load(posixpath.join(base, PALETTE_FILE)))
    gfx = decode_gfx(file_system.load(posixpath.join(base, GFX_FILE)))
    sce_tiles = decode_tile_table(file_system.load(posixpath.join(base, TILE_TABLE_FILE)))
    return merge_tilesets(cre, Tileset(palette, gfx, sce_tiles))


def merge_tilesets(cre: Tileset, sce: Tileset) -> Tileset:
    """Combine common and scene tilesets into one addressable space."""
    return Tileset(
        palette=list(sce.palette),
        gfx=sce.gfx + cre.gfx,
        tiles=cre.tiles + sce.tiles,
    )
