"""
TSPL Directives and Print Jobs.

Each directive is a frozen dataclass carrying its own typed, possibly
optional fields. A ``Job`` is an ordered tuple of directives rendered in one
pass into the CRLF-terminated byte stream the printer expects.

Every print job follows the same fixed order:

    SIZE, GAP, REFERENCE, DIRECTION, [OFFSET], SHIFT, CLS,
    BITMAP or TEXT, PRINT, EOP

Some firmware keeps state across directives, so this order never changes.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from .image import RasterImage
from .tspl_commands import (
    LINE_BREAK,
    BitmapMode,
    Number,
    TSPLCommands,
    Unit,
    resolve_unit,
)


@dataclass(frozen=True)
class Size:
    """Label size. The height clause is omitted when height is None."""
    width: Number
    height: Optional[Number] = None
    unit: Optional[Unit] = None

    def render(self, default_unit: Optional[Unit] = None) -> bytes:
        return TSPLCommands.size(self.width, self.height, resolve_unit(self.unit, default_unit))


@dataclass(frozen=True)
class Gap:
    """Gap between labels."""
    distance: Number
    offset: Number = 0
    unit: Optional[Unit] = None

    def render(self, default_unit: Optional[Unit] = None) -> bytes:
        return TSPLCommands.gap(self.distance, self.offset, resolve_unit(self.unit, default_unit))


@dataclass(frozen=True)
class Reference:
    """Reference point for coordinates."""
    x: int = 0
    y: int = 0

    def render(self, default_unit: Optional[Unit] = None) -> bytes:
        return TSPLCommands.reference(self.x, self.y)


@dataclass(frozen=True)
class Direction:
    """Print direction, with an optional mirror flag."""
    direction: int = 1
    mirror: Optional[int] = None

    def render(self, default_unit: Optional[Unit] = None) -> bytes:
        return TSPLCommands.direction(self.direction, self.mirror)


@dataclass(frozen=True)
class Offset:
    """Peel/cutter stop offset."""
    value: Number
    unit: Optional[Unit] = None

    def render(self, default_unit: Optional[Unit] = None) -> bytes:
        return TSPLCommands.offset(self.value, resolve_unit(self.unit, default_unit))


@dataclass(frozen=True)
class Shift:
    """Position fine-tuning. x is emitted only when set."""
    y: int = 0
    x: Optional[int] = None

    def render(self, default_unit: Optional[Unit] = None) -> bytes:
        return TSPLCommands.shift(self.y, self.x)


@dataclass(frozen=True)
class Bitmap:
    """Packed bitmap drawn at (x, y)."""
    x: int
    y: int
    width_bytes: int
    height: int
    mode: int
    data: bytes = field(repr=False)

    def render(self, default_unit: Optional[Unit] = None) -> bytes:
        return TSPLCommands.bitmap(
            self.x, self.y, self.width_bytes, self.height, self.mode, self.data
        )


@dataclass(frozen=True)
class Text:
    """Text drawn with a resident font."""
    x: int
    y: int
    font: str
    rotation: int
    x_mul: int
    y_mul: int
    content: str
    alignment: Optional[int] = None

    def render(self, default_unit: Optional[Unit] = None) -> bytes:
        return TSPLCommands.text(
            self.x, self.y, self.font, self.rotation,
            self.x_mul, self.y_mul, self.content, self.alignment,
        )


@dataclass(frozen=True)
class Print:
    """Print the buffer. sets is appended only when set."""
    copies: int = 1
    sets: Optional[int] = None

    def render(self, default_unit: Optional[Unit] = None) -> bytes:
        return TSPLCommands.print_label(self.copies, self.sets)


@dataclass(frozen=True)
class Cls:
    def render(self, default_unit: Optional[Unit] = None) -> bytes:
        return TSPLCommands.cls()


@dataclass(frozen=True)
class Eop:
    def render(self, default_unit: Optional[Unit] = None) -> bytes:
        return TSPLCommands.eop()


@dataclass(frozen=True)
class Home:
    def render(self, default_unit: Optional[Unit] = None) -> bytes:
        return TSPLCommands.home()


@dataclass(frozen=True)
class Beep:
    def render(self, default_unit: Optional[Unit] = None) -> bytes:
        return TSPLCommands.beep()


Directive = Union[
    Size, Gap, Reference, Direction, Offset, Shift,
    Bitmap, Text, Print, Cls, Eop, Home, Beep,
]


@dataclass(frozen=True)
class PrintJobConfig:
    """
    Frozen snapshot of the session settings used to render a job.

    Attributes:
        size: Label size (default 35 x 25)
        gap: Gap between labels (default 5, offset 0)
        reference: Reference point (default 0,0)
        direction: Print direction (default 1)
        shift: Position shift (default y=0, no x)
        offset: Stop offset; OFFSET is only emitted when set
        default_unit: Unit for measurements that carry none
    """
    size: Size = Size(35, 25)
    gap: Gap = Gap(5, 0)
    reference: Reference = Reference(0, 0)
    direction: Direction = Direction(1)
    shift: Shift = Shift(0)
    offset: Optional[Offset] = None
    default_unit: Optional[Unit] = None


@dataclass(frozen=True)
class Job:
    """Ordered directives for one print action."""
    directives: tuple
    default_unit: Optional[Unit] = None

    def lines(self) -> list[bytes]:
        """Render each directive to its line."""
        return [d.render(self.default_unit) for d in self.directives]

    def serialize(self) -> bytes:
        """Join lines with CRLF and append a trailing CRLF."""
        return LINE_BREAK.join(self.lines()) + LINE_BREAK

    def __len__(self) -> int:
        return len(self.directives)


def _setup(config: PrintJobConfig) -> list:
    directives = [config.size, config.gap, config.reference, config.direction]
    if config.offset is not None:
        directives.append(config.offset)
    directives.append(config.shift)
    directives.append(Cls())
    return directives


def build_job(config: PrintJobConfig, action: Directive, copies: int = 1,
              sets: Optional[int] = None) -> Job:
    """
    Wrap one action directive in the canonical setup and print sequence.

    Args:
        config: Session settings snapshot
        action: BITMAP or TEXT directive
        copies: Number of copies
        sets: Number of sets (omitted when None)
    """
    directives = _setup(config)
    directives.append(action)
    directives.append(Print(copies, sets))
    directives.append(Eop())
    return Job(tuple(directives), config.default_unit)


def build_image_job(config: PrintJobConfig, image: RasterImage, x: int = 0, y: int = 0,
                    mode: int = BitmapMode.OVERWRITE, copies: int = 1,
                    sets: Optional[int] = None) -> Job:
    """Build a job that prints a packed raster at (x, y)."""
    bitmap = Bitmap(x, y, image.width_bytes, image.height, int(mode), image.data)
    return build_job(config, bitmap, copies, sets)


def build_text_job(config: PrintJobConfig, text: Text, copies: int = 1,
                   sets: Optional[int] = None) -> Job:
    """Build a job that prints one TEXT directive."""
    return build_job(config, text, copies, sets)


def build_beep_job() -> Job:
    """Single BEEP, no setup."""
    return Job((Beep(),))


def build_home_job() -> Job:
    """Single HOME, no setup."""
    return Job((Home(),))
