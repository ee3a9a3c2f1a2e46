"""TSPL label printer driver: image binarization and command serialization."""

__version__ = "0.1.0"

from .connection import BLEConnector, Connector, DummyConnector, FileConnector, NetworkConnector
from .errors import (
    ImageError,
    ImageSizeError,
    MalformedPackedRaster,
    PrinterError,
    UnsupportedFormat,
)
from .image import (
    MAX_IMAGE_DIMENSION,
    MAX_IMAGE_PIXELS,
    Binarizer,
    GenericEncoder,
    PackedRasterEncoder,
    RasterImage,
    binarize,
    pack_bits,
)
from .printer import TSPLPrinter
from .tspl import (
    Job,
    PrintJobConfig,
    build_beep_job,
    build_home_job,
    build_image_job,
    build_text_job,
)
from .tspl_commands import Alignment, BitmapMode, Keyword, PrintDirection, TSPLCommands, Unit

__all__ = [
    "TSPLPrinter",
    "PrinterError",
    "ImageError",
    "ImageSizeError",
    "UnsupportedFormat",
    "MalformedPackedRaster",
    "MAX_IMAGE_DIMENSION",
    "MAX_IMAGE_PIXELS",
    "Binarizer",
    "GenericEncoder",
    "PackedRasterEncoder",
    "RasterImage",
    "binarize",
    "pack_bits",
    "Connector",
    "DummyConnector",
    "FileConnector",
    "NetworkConnector",
    "BLEConnector",
    "Job",
    "PrintJobConfig",
    "build_image_job",
    "build_text_job",
    "build_beep_job",
    "build_home_job",
    "TSPLCommands",
    "Keyword",
    "Unit",
    "BitmapMode",
    "PrintDirection",
    "Alignment",
]
