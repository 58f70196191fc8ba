"""Pixel difference between two renderings of the same room.

For each pixel of the baseline / candidate pair:
  - RGB differs                  -> white, opaque
  - same RGB, baseline opaque    -> baseline color * coefficient, opaque
  - same RGB, baseline clear     -> left transparent

Only the baseline's alpha decides whether an unchanged pixel is drawn, and
only RGB is compared, so a pixel painted black in one image and untouched in
the other counts as unchanged.
"""

from .errors import ImageShapeMismatch
from .image import Image, RoomImages

DEFAULT_BASELINE = 0.3

WHITE = (255, 255, 255)


def diff_image(baseline: Image, candidate: Image, coefficient: float) -> Image:
    if not 0.0 <= coefficient <= 1.0:
        raise ValueError(f"Darkening coefficient must be within [0, 1], got {coefficient}")
    if (baseline.width, baseline.height) != (candidate.width, candidate.height):
        raise ImageShapeMismatch(
            f"Cannot diff {baseline.width}x{baseline.height} against "
            f"{candidate.width}x{candidate.height}")

    out = Image(baseline.width, baseline.height)
    src = baseline.pixels
    other = candidate.pixels
    dst = out.pixels
    for i in range(0, len(src), 4):
        if src[i:i + 3] != other[i:i + 3]:
            dst[i:i + 4] = b'\xff\xff\xff\xff'
        elif src[i + 3]:
            dst[i] = int(src[i] * coefficient)
            dst[i + 1] = int(src[i + 1] * coefficient)
            dst[i + 2] = int(src[i + 2] * coefficient)
            dst[i + 3] = 255
    return out


def diff_images(baseline: list[Image], candidate: list[Image],
                coefficient: float) -> list[Image]:
    """Diff two image lists pairwise; extra images on either side are dropped."""
    return [diff_image(a, b, coefficient) for a, b in zip(baseline, candidate)]


def diff_room_images(baseline: RoomImages, candidate: RoomImages,
                     coefficient: float = DEFAULT_BASELINE) -> RoomImages:
    """Diff both layers of two renderings, labelled by the baseline's states."""
    layer1 = diff_images(baseline.layer1, candidate.layer1, coefficient)
    layer2 = diff_images(baseline.layer2, candidate.layer2, coefficient)
    return RoomImages(
        room_state_names=baseline.room_state_names[:len(layer1)],
        layer1=layer1,
        layer2=layer2,
    )


def count_changed_pixels(baseline: Image, candidate: Image) -> int:
    """Number of pixels whose RGB differs (the white pixels of a diff)."""
    if (baseline.width, baseline.height) != (candidate.width, candidate.height):
        raise ImageShapeMismatch(
            f"Cannot diff {baseline.width}x{baseline.height} against "
            f"{candidate.width}x{candidate.height}")
    src = baseline.pixels
    other = candidate.pixels
    return sum(1 for i in range(0, len(src), 4) if src[i:i + 3] != other[i:i + 3])
