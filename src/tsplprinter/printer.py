"""
High-Level TSPL Printer Interface.

A ``TSPLPrinter`` session holds the label settings and a connector. Each
setter replaces the session's frozen ``PrintJobConfig`` snapshot; each print
action builds a job from the current snapshot and hands the serialized job
to the connector in a single write.
"""

import logging
from dataclasses import replace
from typing import Optional

from .connection import Connector
from .errors import (
    ImageError,
    ImageSizeError,
    MalformedPackedRaster,
    PrinterError,
    UnsupportedFormat,
)
from .image import Binarizer, ImageSource, RasterImage
from .tspl import (
    Direction,
    Gap,
    Job,
    Offset,
    PrintJobConfig,
    Reference,
    Shift,
    Size,
    Text,
    build_beep_job,
    build_home_job,
    build_image_job,
    build_text_job,
)
from .tspl_commands import BitmapMode, Number, Unit

__all__ = [
    "TSPLPrinter",
    "PrinterError",
    "ImageError",
    "ImageSizeError",
    "UnsupportedFormat",
    "MalformedPackedRaster",
]

logger = logging.getLogger(__name__)
package_logger = logging.getLogger("tsplprinter")


class TSPLPrinter:
    """
    Printer session.

    Setters return the session so calls can be chained::

        printer.set_size(50, 30, Unit.MM).set_gap(2, 0).print_image("logo.png")
    """

    def __init__(self, connector: Connector, config: Optional[PrintJobConfig] = None,
                 binarizer: Optional[Binarizer] = None):
        """
        Initialize printer session.

        Args:
            connector: Transport that receives job buffers
            config: Initial settings (default: PrintJobConfig())
            binarizer: Image binarizer (default: best available encoder)
        """
        self.connector = connector
        self.config = config or PrintJobConfig()
        self.binarizer = binarizer or Binarizer()

    def set_debug(self, enabled: bool):
        """Enable/disable debug logging for the package."""
        package_logger.setLevel(logging.DEBUG if enabled else logging.NOTSET)

    # ---- Configuration ----

    def set_default_unit(self, unit: Optional[Unit]) -> "TSPLPrinter":
        """Unit used by measurements that carry none of their own."""
        self.config = replace(self.config, default_unit=unit)
        return self

    def set_size(self, width: Number, height: Optional[Number] = None,
                 unit: Optional[Unit] = None) -> "TSPLPrinter":
        self.config = replace(self.config, size=Size(width, height, unit))
        return self

    def set_gap(self, distance: Number, offset: Number,
                unit: Optional[Unit] = None) -> "TSPLPrinter":
        self.config = replace(self.config, gap=Gap(distance, offset, unit))
        return self

    def set_reference(self, x: int, y: int) -> "TSPLPrinter":
        self.config = replace(self.config, reference=Reference(x, y))
        return self

    def set_direction(self, direction: int, mirror: Optional[int] = None) -> "TSPLPrinter":
        self.config = replace(self.config, direction=Direction(int(direction), mirror))
        return self

    def set_shift(self, y: int, x: Optional[int] = None) -> "TSPLPrinter":
        self.config = replace(self.config, shift=Shift(y, x))
        return self

    def set_offset(self, value: Optional[Number],
                   unit: Optional[Unit] = None) -> "TSPLPrinter":
        """Set the stop offset; None removes OFFSET from later jobs."""
        offset = Offset(value, unit) if value is not None else None
        self.config = replace(self.config, offset=offset)
        return self

    # ---- Print actions ----

    def send(self, job: Job) -> int:
        """
        Serialize a job and write it to the connector.

        Returns:
            Number of bytes written
        """
        data = job.serialize()
        logger.debug("Sending %d directive(s), %d bytes", len(job), len(data))
        self.connector.write(data)
        return len(data)

    def print_bitmap(self, raster: RasterImage, x: int = 0, y: int = 0,
                     mode: BitmapMode = BitmapMode.OVERWRITE, copies: int = 1,
                     sets: Optional[int] = None) -> int:
        """Print an already-packed raster."""
        return self.send(build_image_job(self.config, raster, x, y, mode, copies, sets))

    def print_image(
        self,
        image: ImageSource,
        x: int = 0,
        y: int = 0,
        mode: BitmapMode = BitmapMode.OVERWRITE,
        target_width: Optional[int] = None,
        target_height: Optional[int] = None,
        copies: int = 1,
        sets: Optional[int] = None,
    ) -> int:
        """
        Print an image as a bitmap.

        Args:
            image: Image source (path, bytes, file object, or PIL Image)
            x, y: Position in dots (default 0,0)
            mode: Bitmap overlay mode
            target_width: Width in dots, floored to a multiple of 8
            target_height: Height in dots (default: source height)
            copies: Number of copies to print
            sets: Number of label sets (PRINT second field, omitted when None)

        Returns:
            Number of bytes written

        Raises:
            ImageError: If the image cannot be decoded or is too large
            OSError: If the image cannot be read or the write fails
        """
        raster = self.binarizer.binarize(image, target_width, target_height)
        logger.debug("Image size: %dx%d dots", raster.width, raster.height)
        return self.print_bitmap(raster, x, y, mode, copies, sets)

    def print_text(
        self,
        content: str,
        x: int = 0,
        y: int = 0,
        font: str = "1",
        rotation: int = 0,
        x_mul: int = 1,
        y_mul: int = 1,
        alignment: Optional[int] = None,
        copies: int = 1,
        sets: Optional[int] = None,
    ) -> int:
        """
        Print one line of text with a resident font.

        Returns:
            Number of bytes written
        """
        text = Text(x, y, font, rotation, x_mul, y_mul, content, alignment)
        return self.send(build_text_job(self.config, text, copies, sets))

    def beep(self) -> int:
        """Sound the printer's beeper."""
        return self.send(build_beep_job())

    def home(self) -> int:
        """Feed to the start of the next label."""
        return self.send(build_home_job())

    def close(self):
        """Release the connector."""
        self.connector.finalize()

    def __enter__(self) -> "TSPLPrinter":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
