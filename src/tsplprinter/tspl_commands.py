"""
TSPL Command Builders.

TSPL (TSC Printer Language) is a line-oriented text command language used by
TSC and compatible label printers. Every directive is one line of the form
``KEYWORD<space><comma-separated fields>``.

The builders here return a single line as bytes with no terminator;
joining lines into a job is done by :mod:`tsplprinter.tspl`.

Reference: TSPL/TSPL2 Programming Manual
"""

from enum import Enum, IntEnum
from typing import Optional, Union

Number = Union[int, float]

LINE_BREAK = b"\r\n"
SEPARATOR = ","
SPACE = " "


class Keyword(str, Enum):
    """Directive keywords, spelled exactly as the firmware expects."""

    SIZE = "SIZE"
    GAP = "GAP"
    REFERENCE = "REFERENCE"
    DIRECTION = "DIRECTION"
    OFFSET = "OFFSET"
    SHIFT = "SHIFT"
    BITMAP = "BITMAP"
    TEXT = "TEXT"
    PRINT = "PRINT"
    CLS = "CLS"
    EOP = "EOP"
    HOME = "HOME"
    BEEP = "BEEP"


class Unit(Enum):
    """Measurement units. The value is the suffix appended to a number."""

    INCH = ""  # Protocol default
    MM = " mm"
    DOT = " dot"


class BitmapMode(IntEnum):
    """Bitmap overlay modes."""
    OVERWRITE = 0  # Replace existing content
    OR = 1         # OR with existing content
    XOR = 2        # XOR with existing content


class PrintDirection(IntEnum):
    """Print direction."""
    FORWARD = 0
    BACKWARD = 1


class Alignment(IntEnum):
    """TEXT alignment."""
    DEFAULT = 0
    LEFT = 1
    CENTER = 2
    RIGHT = 3


def resolve_unit(unit: Optional[Unit], default_unit: Optional[Unit] = None) -> str:
    """
    Resolve the unit suffix for a measurement.

    The explicit unit wins, then the session default, then the protocol
    default (inches, an empty suffix).
    """
    if unit is not None:
        return unit.value
    if default_unit is not None:
        return default_unit.value
    return Unit.INCH.value


def _line(keyword: Keyword, *fields) -> bytes:
    if not fields:
        return keyword.value.encode("ascii")
    body = SEPARATOR.join(str(f) for f in fields)
    return f"{keyword.value}{SPACE}{body}".encode("utf-8")


def _quote(value: str) -> str:
    return f'"{value}"'


class TSPLCommands:
    """
    Pure TSPL line builders.

    Each method maps typed parameters to exactly one directive line.
    Unit-bearing methods take the already-resolved unit suffix.
    """

    @staticmethod
    def size(width: Number, height: Optional[Number] = None, unit: str = "") -> bytes:
        """
        Set label size.

        Args:
            width: Label width
            height: Label height; the clause is omitted when None
            unit: Resolved unit suffix
        """
        if height is None:
            return _line(Keyword.SIZE, f"{width}{unit}")
        return _line(Keyword.SIZE, f"{width}{unit}", f"{height}{unit}")

    @staticmethod
    def gap(distance: Number, offset: Number, unit: str = "") -> bytes:
        """
        Set gap between labels.

        Args:
            distance: Gap height
            offset: Gap offset
            unit: Resolved unit suffix
        """
        return _line(Keyword.GAP, f"{distance}{unit}", f"{offset}{unit}")

    @staticmethod
    def reference(x: int, y: int) -> bytes:
        """Set reference point for coordinates."""
        return _line(Keyword.REFERENCE, x, y)

    @staticmethod
    def direction(direction: int, mirror: Optional[int] = None) -> bytes:
        """
        Set print direction.

        Args:
            direction: 0=forward, 1=backward
            mirror: 0=normal, 1=mirror image; omitted when None
        """
        if mirror is None:
            return _line(Keyword.DIRECTION, int(direction))
        return _line(Keyword.DIRECTION, int(direction), int(mirror))

    @staticmethod
    def offset(value: Number, unit: str = "") -> bytes:
        """Set the peel/cutter stop offset."""
        return _line(Keyword.OFFSET, f"{value}{unit}")

    @staticmethod
    def shift(y: int, x: Optional[int] = None) -> bytes:
        """
        Fine-tune the print position.

        Args:
            y: Vertical shift in dots
            x: Horizontal shift in dots; prefixed only when set
        """
        if x is None:
            return _line(Keyword.SHIFT, y)
        return _line(Keyword.SHIFT, x, y)

    @staticmethod
    def bitmap(x: int, y: int, width_bytes: int, height: int, mode: int, data: bytes) -> bytes:
        """
        Draw a bitmap image.

        Args:
            x: X position in dots
            y: Y position in dots
            width_bytes: Width in bytes (8 pixels per byte)
            height: Height in dots
            mode: BitmapMode value
            data: Packed bitmap, 1 bit per pixel, MSB first

        Note: For TSPL, 0 = black (burn), 1 = white (no burn).
        """
        head = _line(Keyword.BITMAP, x, y, width_bytes, height, int(mode))
        return head + SEPARATOR.encode("ascii") + bytes(data)

    @staticmethod
    def text(x: int, y: int, font: str, rotation: int, x_mul: int, y_mul: int,
             content: str, alignment: Optional[int] = None) -> bytes:
        """
        Draw text.

        Args:
            x, y: Position in dots
            font: Font name (e.g., "1", "2", "TSS24.BF2")
            rotation: 0, 90, 180, or 270 degrees
            x_mul, y_mul: Horizontal and vertical multipliers
            content: Text to print
            alignment: Inserted before the content only when set
        """
        fields = [x, y, _quote(font), rotation, x_mul, y_mul]
        if alignment is not None:
            fields.append(int(alignment))
        fields.append(_quote(content))
        return _line(Keyword.TEXT, *fields)

    @staticmethod
    def print_label(copies: int = 1, sets: Optional[int] = None) -> bytes:
        """
        Execute print command.

        Args:
            copies: Number of copies
            sets: Number of sets; appended only when set
        """
        if sets is None:
            return _line(Keyword.PRINT, copies)
        return _line(Keyword.PRINT, copies, sets)

    @staticmethod
    def cls() -> bytes:
        """Clear the image buffer."""
        return _line(Keyword.CLS)

    @staticmethod
    def eop() -> bytes:
        """End of program."""
        return _line(Keyword.EOP)

    @staticmethod
    def home() -> bytes:
        """Feed label to home position."""
        return _line(Keyword.HOME)

    @staticmethod
    def beep() -> bytes:
        """Sound the printer's beeper."""
        return _line(Keyword.BEEP)
