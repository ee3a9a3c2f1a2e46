"""Exception classes shared across the package."""


class PrinterError(Exception):
    """Base exception for all printer errors."""

    pass


class ImageError(PrinterError):
    """Error processing image for printing."""

    pass


class UnsupportedFormat(ImageError):
    """Image source cannot be decoded."""

    pass


class MalformedPackedRaster(ImageError):
    """Packed raster container does not have the expected structure."""

    pass


class ImageSizeError(ImageError, ValueError):
    """Image dimensions exceed safety limits."""

    pass
