"""RGBA raster images produced by the renderer.

Pixels are stored row-major, 4 bytes each (r, g, b, a). Alpha is either 0
(never painted) or 255 (painted); there is no partial transparency.
"""

import struct
import zlib
from dataclasses import dataclass, field

Color = tuple[int, int, int]

BLACK = (0, 0, 0)
HIGHLIGHT_PINK = (255, 105, 180)


class Image:
    """A width x height RGBA buffer, fully transparent when created."""

    def __init__(self, width: int, height: int, pixels: bytearray | None = None):
        self.width = width
        self.height = height
        if pixels is None:
            pixels = bytearray(width * height * 4)
        elif len(pixels) != width * height * 4:
            raise ValueError(
                f"Pixel buffer holds {len(pixels)} bytes, expected {width * height * 4}")
        self.pixels = pixels

    def __repr__(self):
        return f'Image({self.width}x{self.height})'

    def __eq__(self, other):
        if not isinstance(other, Image):
            return NotImplemented
        return (self.width, self.height, self.pixels) == \
            (other.width, other.height, other.pixels)

    def get_pixel(self, x: int, y: int) -> Color:
        i = (y * self.width + x) * 4
        return (self.pixels[i], self.pixels[i + 1], self.pixels[i + 2])

    def set_pixel(self, x: int, y: int, color: Color) -> None:
        """Paint one pixel fully opaque."""
        i = (y * self.width + x) * 4
        self.pixels[i] = color[0]
        self.pixels[i + 1] = color[1]
        self.pixels[i + 2] = color[2]
        self.pixels[i + 3] = 255

    def is_transparent(self, x: int, y: int) -> bool:
        return self.pixels[(y * self.width + x) * 4 + 3] == 0

    def copy(self) -> 'Image':
        return Image(self.width, self.height, bytearray(self.pixels))

    def scaled(self, factor: int) -> 'Image':
        """Nearest-neighbour upscale by an integer factor."""
        if factor <= 1:
            return self.copy()
        width = self.width * factor
        out = bytearray()
        for y in range(self.height):
            start = y * self.width * 4
            row = bytearray()
            for x in range(self.width):
                row += self.pixels[start + x * 4:start + x * 4 + 4] * factor
            out += row * factor
        return Image(width, self.height * factor, out)


@dataclass
class RoomImages:
    """Rendered layers for every state of a room, indexed alike."""
    room_state_names: list[str] = field(default_factory=list)
    layer1: list[Image] = field(default_factory=list)
    layer2: list[Image] = field(default_factory=list)

    @property
    def width(self) -> int:
        return self.layer1[0].width if self.layer1 else 0

    @property
    def height(self) -> int:
        return self.layer1[0].height if self.layer1 else 0


def flatten(layers: list[Image], background: Color = BLACK) -> Image:
    """Stack layers (bottom first) over an opaque background color.

    Painted pixels of a later layer replace whatever lies beneath them;
    transparent pixels let the lower layers (or the background) show.
    """
    width, height = layers[0].width, layers[0].height
    out = Image(width, height, bytearray(bytes((*background, 255)) * (width * height)))
    for layer in layers:
        if (layer.width, layer.height) != (width, height):
            raise ValueError(f"Layer {layer!r} does not match {width}x{height}")
        src = layer.pixels
        dst = out.pixels
        for i in range(3, len(src), 4):
            if src[i]:
                dst[i - 3:i + 1] = src[i - 3:i + 1]
    return out


# ============================================================================
# PNG writing (stdlib, no Pillow)
# ============================================================================

def _png_chunk(chunk_type: bytes, data: bytes) -> bytes:
    crc = zlib.crc32(chunk_type + data) & 0xFFFFFFFF
    return struct.pack('>I', len(data)) + chunk_type + data + struct.pack('>I', crc)


def encode_png(image: Image) -> bytes:
    """Encode an Image as an 8-bit RGBA PNG (filter type 0 on every row)."""
    stride = image.width * 4
    raw = bytearray()
    for y in range(image.height):
        raw.append(0)
        raw += image.pixels[y * stride:(y + 1) * stride]
    ihdr = struct.pack('>IIBBBBB', image.width, image.height, 8, 6, 0, 0, 0)
    return (b'\x89PNG\r\n\x1a\n'
            + _png_chunk(b'IHDR', ihdr)
            + _png_chunk(b'IDAT', zlib.compress(bytes(raw), 9))
            + _png_chunk(b'IEND', b''))


def write_png(filepath: str, image: Image) -> None:
    with open(filepath, 'wb') as f:
        f.write(encode_png(image))
