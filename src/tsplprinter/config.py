"""
Stored label settings.

Keeps the default print settings in a JSON file so the CLI does not need
the label size, gap and units repeated on every call.
"""

import json
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from .tspl import Direction, Gap, Offset, PrintJobConfig, Reference, Shift, Size
from .tspl_commands import Unit

# Config directory location
CONFIG_DIR = Path.home() / ".config" / "tsplprinter"
CONFIG_FILE = CONFIG_DIR / "config.json"


def _unit_name(unit: Optional[Unit]) -> Optional[str]:
    return unit.name if unit is not None else None


def _unit(name: Optional[str]) -> Optional[Unit]:
    return Unit[name] if name is not None else None


def config_to_dict(config: PrintJobConfig) -> dict:
    """Convert a config to JSON-friendly data. Units are stored by name."""
    data = asdict(config)
    data["size"]["unit"] = _unit_name(config.size.unit)
    data["gap"]["unit"] = _unit_name(config.gap.unit)
    if config.offset is not None:
        data["offset"]["unit"] = _unit_name(config.offset.unit)
    data["default_unit"] = _unit_name(config.default_unit)
    return data


def config_from_dict(data: dict) -> PrintJobConfig:
    """
    Build a config from stored data.

    Missing sections fall back to the built-in defaults.

    Raises:
        KeyError, TypeError: If a section is malformed or a unit is unknown
    """
    defaults = PrintJobConfig()
    size = data.get("size")
    gap = data.get("gap")
    reference = data.get("reference")
    direction = data.get("direction")
    shift = data.get("shift")
    offset = data.get("offset")

    return PrintJobConfig(
        size=Size(size["width"], size.get("height"), _unit(size.get("unit")))
        if size else defaults.size,
        gap=Gap(gap["distance"], gap.get("offset", 0), _unit(gap.get("unit")))
        if gap else defaults.gap,
        reference=Reference(reference["x"], reference["y"])
        if reference else defaults.reference,
        direction=Direction(direction["direction"], direction.get("mirror"))
        if direction else defaults.direction,
        shift=Shift(shift["y"], shift.get("x"))
        if shift else defaults.shift,
        offset=Offset(offset["value"], _unit(offset.get("unit")))
        if offset else None,
        default_unit=_unit(data.get("default_unit")),
    )


def load_config(path: Optional[Path] = None) -> PrintJobConfig:
    """Load stored settings.

    Args:
        path: Config file (default: ~/.config/tsplprinter/config.json)

    Returns:
        Stored PrintJobConfig, or the defaults if the file is missing or invalid.
    """
    path = Path(path) if path is not None else CONFIG_FILE
    if not path.exists():
        return PrintJobConfig()

    try:
        return config_from_dict(json.loads(path.read_text()))
    except (json.JSONDecodeError, KeyError, TypeError, AttributeError):
        # Invalid config file - treat as missing
        return PrintJobConfig()


def save_config(config: PrintJobConfig, path: Optional[Path] = None) -> Path:
    """Save settings, creating the config directory if needed.

    Returns:
        Path written to.
    """
    path = Path(path) if path is not None else CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config_to_dict(config), indent=2))
    return path


def clear_config(path: Optional[Path] = None) -> bool:
    """Delete stored settings.

    Returns:
        True if the file was removed, False if none existed.
    """
    path = Path(path) if path is not None else CONFIG_FILE
    if path.exists():
        path.unlink()
        return True
    return False
