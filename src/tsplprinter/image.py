"""
Image Processing for TSPL Printers.

Converts images to the packed 1-bit raster carried by the TSPL ``BITMAP``
directive: 8 pixels per byte, MSB first, row-major, 1 = white and
0 = black.

Two encoders produce the same raster:

- ``GenericEncoder`` thresholds every pixel and packs the result.
- ``PackedRasterEncoder`` lets Pillow write a PBM (P4) container and
  strips its header, skipping the per-pixel loop.
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Optional, Sequence, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import ImageError, ImageSizeError, MalformedPackedRaster, UnsupportedFormat

logger = logging.getLogger(__name__)

# Image size limits to prevent memory exhaustion from malicious/malformed images
MAX_IMAGE_DIMENSION = 10000  # Maximum width or height in pixels
MAX_IMAGE_PIXELS = 10_000_000  # Maximum total pixels (10 megapixels)

# 8-bit channels: anything at or above half intensity is white
CHANNEL_MAX = 255
HALF_INTENSITY = (CHANNEL_MAX + 1) // 2

PBM_MAGIC = b"P4"

# RGB -> L using the integer channel average. The -1/3 offset turns Pillow's
# round-to-nearest into floor, matching (R+G+B)//3.
AVERAGE_MATRIX = (1 / 3, 1 / 3, 1 / 3, -1 / 3)

ImageSource = Union[str, Path, bytes, BinaryIO, Image.Image, None]


@dataclass(frozen=True)
class RasterImage:
    """
    Packed monochrome bitmap.

    Attributes:
        width: Width in dots
        height: Height in dots
        width_bytes: Bytes per row, ceil(width / 8)
        data: Row-major packed bits, 1 = white, 0 = black
    """
    width: int
    height: int
    width_bytes: int
    data: bytes

    def __post_init__(self):
        if self.width_bytes != (self.width + 7) // 8:
            raise ValueError(
                f"width_bytes {self.width_bytes} does not match width {self.width}"
            )
        if len(self.data) != self.width_bytes * self.height:
            raise ValueError(
                f"Raster data is {len(self.data)} bytes, expected "
                f"{self.width_bytes * self.height}"
            )

    @classmethod
    def from_packed(cls, width: int, height: int, data: bytes) -> "RasterImage":
        """Wrap already-packed data."""
        return cls(width, height, (width + 7) // 8, bytes(data))

    @classmethod
    def blank(cls, width: int = 0, height: int = 0) -> "RasterImage":
        """All-white raster of the given size."""
        width_bytes = (width + 7) // 8
        return cls(width, height, width_bytes, b"\xff" * (width_bytes * height))


def normalize_width(width: int, target_width: Optional[int] = None) -> int:
    """
    Round a width down to a whole number of bytes.

    The target width wins over the source width when given.
    """
    if target_width is not None:
        return (target_width // 8) * 8
    return (width // 8) * 8


def pack_bits(pixels: Sequence[Sequence[bool]], width: int, height: int) -> bytes:
    """
    Pack a row-major pixel matrix into bytes.

    Pixel 0 of each row is the MSB of the row's first byte. The unused low
    bits of a row's last byte are 0. Rows are not padded beyond their own
    byte alignment.

    Args:
        pixels: height rows of width truthy/falsy values (truthy = white = 1)
        width: Pixels per row
        height: Number of rows

    Returns:
        height * ceil(width / 8) bytes
    """
    result = bytearray()

    for row in range(height):
        row_pixels = pixels[row]
        row_byte = 0
        bit_pos = 7

        for col in range(width):
            if row_pixels[col]:
                row_byte |= (1 << bit_pos)

            bit_pos -= 1
            if bit_pos < 0:
                result.append(row_byte)
                row_byte = 0
                bit_pos = 7

        # Pad last byte of row if needed
        if bit_pos != 7:
            result.append(row_byte)

    return bytes(result)


def flatten_alpha(image: Image.Image) -> Image.Image:
    """
    Composite an image over an opaque white canvas.

    Returns an RGB image with any transparency replaced by white.
    """
    canvas = Image.new("RGBA", image.size, (255, 255, 255, 255))
    flat = Image.alpha_composite(canvas, image.convert("RGBA"))
    return flat.convert("RGB")


def strip_pbm_header(blob: bytes, width: int, height: int) -> bytes:
    """
    Return the raster payload of a binary PBM (P4) blob.

    Skips the magic line, any number of comment lines and the dimensions
    line. The remainder must be exactly ceil(width / 8) * height bytes.

    Raises:
        MalformedPackedRaster: If the blob does not match that structure
    """
    start = blob.find(PBM_MAGIC + b"\n")
    if start < 0:
        raise MalformedPackedRaster("Packed raster is missing the P4 magic")
    pos = start + len(PBM_MAGIC) + 1

    while blob[pos:pos + 1] == b"#":
        end = blob.find(b"\n", pos)
        if end < 0:
            raise MalformedPackedRaster("Unterminated comment in packed raster header")
        pos = end + 1

    end = blob.find(b"\n", pos)
    if end < 0:
        raise MalformedPackedRaster("Packed raster header has no dimensions line")

    data = blob[end + 1:]
    expected = ((width + 7) // 8) * height
    if len(data) != expected:
        raise MalformedPackedRaster(
            f"Packed raster payload is {len(data)} bytes, expected {expected}"
        )
    return data


class RasterEncoder(ABC):
    """Turns a flattened, width-normalized RGB image into a RasterImage."""

    name = "base"

    @classmethod
    def is_available(cls) -> bool:
        return True

    @abstractmethod
    def encode(self, image: Image.Image) -> RasterImage:
        """Encode an RGB image whose width is a multiple of 8."""


class GenericEncoder(RasterEncoder):
    """Per-pixel threshold on the channel average, then bit packing."""

    name = "generic"

    def threshold_rows(self, image: Image.Image) -> list[list[bool]]:
        """Return one row of booleans per image row (True = white)."""
        if image.mode != "RGB":
            image = image.convert("RGB")

        width, height = image.size
        px = image.load()
        rows = []
        for y in range(height):
            row = []
            for x in range(width):
                r, g, b = px[x, y]
                row.append((r + g + b) // 3 >= HALF_INTENSITY)
            rows.append(row)
        return rows

    def encode(self, image: Image.Image) -> RasterImage:
        width, height = image.size
        data = pack_bits(self.threshold_rows(image), width, height)
        return RasterImage.from_packed(width, height, data)


class PackedRasterEncoder(RasterEncoder):
    """Codec-assisted path through Pillow's PBM (P4) writer."""

    name = "pbm"

    @classmethod
    def is_available(cls) -> bool:
        Image.init()
        return "PPM" in Image.SAVE

    def to_pbm(self, image: Image.Image) -> bytes:
        """Render the image as a P4 blob whose set bits are white pixels."""
        grey = image.convert("RGB").convert("L", AVERAGE_MATRIX)
        # PBM stores black as 1; negating first makes set bits mean white
        negated = ImageOps.invert(grey)
        mono = negated.point(lambda v: 0 if v < HALF_INTENSITY else 255, mode="1")

        buf = BytesIO()
        mono.save(buf, format="PPM")
        return buf.getvalue()

    def encode(self, image: Image.Image) -> RasterImage:
        width, height = image.size
        data = strip_pbm_header(self.to_pbm(image), width, height)
        return RasterImage.from_packed(width, height, data)


def select_encoder(prefer_packed: bool = True) -> RasterEncoder:
    """Pick the packed-raster encoder when the codec supports it."""
    if prefer_packed and PackedRasterEncoder.is_available():
        return PackedRasterEncoder()
    return GenericEncoder()


def is_empty_source(source: ImageSource) -> bool:
    """
    Check for a source with nothing to decode.

    True for None, empty bytes, a zero-byte file, or a seekable stream with
    no data left. A stream's position is left unchanged.

    Raises:
        OSError: If a path cannot be stat'ed
    """
    if source is None:
        return True
    if isinstance(source, (bytes, bytearray)):
        return not source
    if isinstance(source, (str, Path)):
        return Path(source).stat().st_size == 0
    if hasattr(source, "read") and hasattr(source, "seekable") and source.seekable():
        pos = source.tell()
        end = source.seek(0, os.SEEK_END)
        source.seek(pos)
        return end == pos
    return False


class Binarizer:
    """Decode, flatten, resize and binarize images for the BITMAP directive."""

    def __init__(self, encoder: Optional[RasterEncoder] = None):
        """
        Initialize binarizer.

        Args:
            encoder: Raster encoder to use (default: best available)
        """
        self.encoder = encoder or select_encoder()
        logger.debug("Using %s raster encoder", self.encoder.name)

    def load(self, source: ImageSource) -> Image.Image:
        """
        Load an image from various sources.

        Args:
            source: File path, bytes, binary file object, or PIL Image

        Returns:
            Decoded PIL Image

        Raises:
            ImageSizeError: If image dimensions exceed safety limits
            UnsupportedFormat: If the source cannot be decoded
            OSError: If the source cannot be read
        """
        if isinstance(source, Image.Image):
            img = source
        else:
            if isinstance(source, (str, Path)):
                fp = source
            elif isinstance(source, (bytes, bytearray)):
                fp = BytesIO(source)
            elif hasattr(source, "read"):
                fp = source
            else:
                raise UnsupportedFormat(f"Unsupported source type: {type(source)}")

            try:
                img = Image.open(fp)
            except UnidentifiedImageError as e:
                raise UnsupportedFormat(f"Cannot identify image: {e}") from e
            except Image.DecompressionBombError as e:
                raise ImageSizeError(str(e)) from e

        # Validate image dimensions before decoding pixel data
        try:
            if img.width > MAX_IMAGE_DIMENSION or img.height > MAX_IMAGE_DIMENSION:
                raise ImageSizeError(
                    f"Image dimensions ({img.width}x{img.height}) exceed maximum "
                    f"({MAX_IMAGE_DIMENSION}x{MAX_IMAGE_DIMENSION})"
                )
            if img.width * img.height > MAX_IMAGE_PIXELS:
                raise ImageSizeError(
                    f"Image pixel count ({img.width * img.height:,}) exceeds "
                    f"maximum ({MAX_IMAGE_PIXELS:,})"
                )

            try:
                img.load()
            except OSError as e:
                raise UnsupportedFormat(f"Failed to decode image: {e}") from e
        except ImageError:
            if img is not source:
                img.close()
            raise

        return img

    def prepare(self, image: Image.Image, width: int, height: int) -> Image.Image:
        """
        Flatten transparency and resample to the working size.

        Args:
            image: Decoded source image
            width: Working width, already a multiple of 8
            height: Working height

        Returns:
            RGB image of exactly width x height
        """
        flat = flatten_alpha(image)
        if flat.size != (width, height):
            flat = flat.resize((width, height))
        return flat

    def binarize(self, source: ImageSource, target_width: Optional[int] = None,
                 target_height: Optional[int] = None) -> RasterImage:
        """
        Convert an image source into a packed raster.

        Args:
            source: Image source; None or a zero-byte source yields a blank raster
            target_width: Printed width in dots, floored to a multiple of 8
            target_height: Printed height in dots (default: source height)

        Returns:
            RasterImage ready for the BITMAP directive
        """
        if is_empty_source(source):
            width = max(normalize_width(0, target_width), 0)
            return RasterImage.blank(width, max(target_height or 0, 0))

        img = self.load(source)
        width = normalize_width(img.width, target_width)
        height = target_height if target_height is not None else img.height
        if width <= 0 or height <= 0:
            return RasterImage.blank(max(width, 0), max(height, 0))

        img = self.prepare(img, width, height)

        raster = self.encoder.encode(img)
        logger.debug(
            "Binarized %dx%d image into %d bytes", raster.width, raster.height, len(raster.data)
        )
        return raster


def binarize(source: ImageSource, target_width: Optional[int] = None,
             target_height: Optional[int] = None) -> RasterImage:
    """Binarize with the best available encoder."""
    return Binarizer().binarize(source, target_width, target_height)
