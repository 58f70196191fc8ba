"""Room renderer: room document + tilesets -> layer images.

Coordinates:
  - a screen is 16x16 tiles of 16x16 pixels (256x256 pixels)
  - Screen (X, Y) covers pixels (X*256 .. X*256+255, Y*256 .. Y*256+255)
  - screen word i sits at column i % 16, row i // 16 of its screen

Screen words reference the merged 16x16 tile table:
  bits 0-9   tile index
  bit 10     flip the whole 16x16 tile horizontally
  bit 11     flip the whole 16x16 tile vertically

Layer 2 is drawn as BGData first with its screens on top; layer 1 has
screens only. Every state of a room renders at width*256 x height*256.
"""

import posixpath

from .errors import DanglingReferenceError
from .gfx import COLORS_PER_BANK, TILE_SIZE, Tile8x8, Tile16x16, decode_tile_word
from .image import Image, RoomImages
from .room_xml import BG_DECOMP, BGDataBlock, Room, Screen, parse_room
from .tileset import Tileset, load_cre_tileset, load_sce_tileset

ROOMS_DIR = 'Export/Rooms'

SCREEN_PIXELS = 256
SCREEN_TILES = 16           # 16x16 tiles per screen edge
TILE16_PIXELS = 16

SCREEN_TILE_IDX_MASK = 0x3FF
SCREEN_FLIP_X = 0x400
SCREEN_FLIP_Y = 0x800

BG_GRID = 32                # 8x8 tiles per BGData screen edge
BG_SCREEN_WORDS = BG_GRID * BG_GRID
BG_DOUBLE_SCREEN_WORDS = 2 * BG_SCREEN_WORDS


# ============================================================================
# Tile painting
# ============================================================================

def paint_tile_8x8(image: Image, x0: int, y0: int, tile: Tile8x8,
                   tileset: Tileset) -> None:
    """Paint one 8x8 tile with its top-left corner at (x0, y0).

    Color index 0 is transparent and leaves the destination untouched.
    Pixels falling outside the image are clipped.
    """
    if tile.idx >= len(tileset.gfx):
        raise DanglingReferenceError(
            f"8x8 graphics index {tile.idx} out of range ({len(tileset.gfx)} tiles)")
    if x0 >= image.width or y0 >= image.height:
        return
    gfx = tileset.gfx[tile.idx]
    palette = tileset.palette
    bank = tile.palette * COLORS_PER_BANK
    pixels = image.pixels
    width = image.width
    cols = min(TILE_SIZE, width - x0)
    rows = min(TILE_SIZE, image.height - y0)

    for y in range(rows):
        src_row = gfx[7 - y if tile.flip_y else y]
        offset = ((y0 + y) * width + x0) * 4
        for x in range(cols):
            c = src_row[7 - x if tile.flip_x else x]
            if c == 0:
                continue
            slot = bank + c
            if slot >= len(palette):
                raise DanglingReferenceError(
                    f"Palette slot {slot} out of range ({len(palette)} colors)")
            r, g, b = palette[slot]
            i = offset + x * 4
            pixels[i] = r
            pixels[i + 1] = g
            pixels[i + 2] = b
            pixels[i + 3] = 255


def paint_tile_16x16(image: Image, x0: int, y0: int, tile: Tile16x16,
                     tileset: Tileset) -> None:
    paint_tile_8x8(image, x0, y0, tile.top_left, tileset)
    paint_tile_8x8(image, x0 + 8, y0, tile.top_right, tileset)
    paint_tile_8x8(image, x0, y0 + 8, tile.bottom_left, tileset)
    paint_tile_8x8(image, x0 + 8, y0 + 8, tile.bottom_right, tileset)


def flip_tile_16x16(tile: Tile16x16, flip_x: bool, flip_y: bool) -> Tile16x16:
    """Apply a screen-level flip on top of the tile's own quadrant flips."""
    tl, tr, bl, br = tile
    if flip_x:
        tl, tr, bl, br = (q._replace(flip_x=not q.flip_x) for q in (tr, tl, br, bl))
    if flip_y:
        tl, tr, bl, br = (q._replace(flip_y=not q.flip_y) for q in (bl, br, tl, tr))
    return Tile16x16(tl, tr, bl, br)


# ============================================================================
# Layer painting
# ============================================================================

def render_screens(screens: list[Screen], image: Image, tileset: Tileset) -> None:
    """Paint screen-grid tiles; later tiles overwrite the pixels they touch."""
    for screen in screens:
        x0 = screen.x * SCREEN_TILES
        y0 = screen.y * SCREEN_TILES
        for i, word in enumerate(screen.data):
            idx = word & SCREEN_TILE_IDX_MASK
            if idx >= len(tileset.tiles):
                raise DanglingReferenceError(
                    f"16x16 tile index {idx} out of range ({len(tileset.tiles)} tiles) "
                    f"in screen ({screen.x}, {screen.y})")
            tile = flip_tile_16x16(tileset.tiles[idx],
                                   bool(word & SCREEN_FLIP_X),
                                   bool(word & SCREEN_FLIP_Y))
            x = (x0 + i % SCREEN_TILES) * TILE16_PIXELS
            y = (y0 + i // SCREEN_TILES) * TILE16_PIXELS
            paint_tile_16x16(image, x, y, tile, tileset)


def render_bg_data(blocks: list[BGDataBlock], image: Image, tileset: Tileset) -> None:
    """Paint decompressed BGData blocks repeated across the whole image.

    1024 words: one 256x256 screen of 8x8 tiles, repeated every 256x256.
    2048 words: two screens side by side, repeated every 512x256.
    Blocks of other sizes or types are skipped.
    """
    for block in blocks:
        if block.type != BG_DECOMP:
            continue
        tiles = [decode_tile_word(word & 0xFFFF) for word in block.source]
        if len(tiles) == BG_SCREEN_WORDS:
            for screen_y in range(image.height // SCREEN_PIXELS):
                for screen_x in range(image.width // SCREEN_PIXELS):
                    for i, tile in enumerate(tiles):
                        x = screen_x * SCREEN_PIXELS + (i % BG_GRID) * TILE_SIZE
                        y = screen_y * SCREEN_PIXELS + (i // BG_GRID) * TILE_SIZE
                        paint_tile_8x8(image, x, y, tile, tileset)
        elif len(tiles) == BG_DOUBLE_SCREEN_WORDS:
            for screen_y in range(image.height // SCREEN_PIXELS):
                for pair_x in range(image.width // (2 * SCREEN_PIXELS)):
                    for i, tile in enumerate(tiles):
                        half, j = divmod(i, BG_SCREEN_WORDS)
                        x = (pair_x * 2 + half) * SCREEN_PIXELS + (j % BG_GRID) * TILE_SIZE
                        y = screen_y * SCREEN_PIXELS + (j // BG_GRID) * TILE_SIZE
                        paint_tile_8x8(image, x, y, tile, tileset)


# ============================================================================
# Rooms
# ============================================================================

def room_path(project_dir: str, room_name: str) -> str:
    return posixpath.join(project_dir, ROOMS_DIR, f'{room_name}.xml')


def load_room(project_dir: str, room_name: str, file_system) -> Room:
    """Load and parse a room document without rendering it."""
    return parse_room(file_system.load(room_path(project_dir, room_name)))


def render_room(project_dir: str, room_name: str, file_system) -> RoomImages:
    """Render both layers of every state of a room.

    Any failure (missing asset, bad document, dangling tile reference)
    aborts the whole render; no partial result is returned.
    """
    room = load_room(project_dir, room_name, file_system)
    cre = load_cre_tileset(file_system, project_dir)
    width = room.width * SCREEN_PIXELS
    height = room.height * SCREEN_PIXELS

    images = RoomImages()
    for state in room.states:
        tileset = load_sce_tileset(file_system, project_dir, state.gfx_set, cre)

        layer1 = Image(width, height)
        render_screens(state.level_data.layer1, layer1, tileset)

        layer2 = Image(width, height)
        render_bg_data(state.bg_data, layer2, tileset)
        render_screens(state.level_data.layer2, layer2, tileset)

        images.room_state_names.append(state.label)
        images.layer1.append(layer1)
        images.layer2.append(layer2)
    return images
