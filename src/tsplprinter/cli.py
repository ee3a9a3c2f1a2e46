"""
Command-Line Interface for TSPL Printers.

Usage:
    tspl image IMAGE --output /dev/usb/lp0     - Print an image
    tspl text "Hello" --host 192.168.1.50      - Print a line of text
    tspl beep --address XX:XX:XX:XX:XX:XX      - Sound the beeper
    tspl config show                           - Show stored settings
"""

import json
import logging
import re
import sys
from dataclasses import replace
from pathlib import Path

import click

from . import config as config_store
from .connection import BLEConnector, Connector, FileConnector, NetworkConnector
from .errors import ImageError, PrinterError
from .printer import TSPLPrinter
from .tspl_commands import BitmapMode, Unit

# Bluetooth MAC address format: XX:XX:XX:XX:XX:XX (hex pairs separated by colons)
BLUETOOTH_MAC_PATTERN = re.compile(r"^([0-9A-Fa-f]{2}:){5}[0-9A-Fa-f]{2}$")

# macOS CoreBluetooth UUID format: XXXXXXXX-XXXX-XXXX-XXXX-XXXXXXXXXXXX
MACOS_UUID_PATTERN = re.compile(
    r"^[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{12}$"
)

UNIT_CHOICES = {"inch": Unit.INCH, "mm": Unit.MM, "dot": Unit.DOT}
MODE_CHOICES = {"overwrite": BitmapMode.OVERWRITE, "or": BitmapMode.OR, "xor": BitmapMode.XOR}


def validate_bluetooth_address(ctx, param, value):
    """Validate Bluetooth address format.

    Accepts:
        - MAC address format: XX:XX:XX:XX:XX:XX (Linux/Windows)
        - UUID format: XXXXXXXX-XXXX-XXXX-XXXX-XXXXXXXXXXXX (macOS)

    Returns:
        The validated address (uppercased for consistency)

    Raises:
        click.BadParameter: If the address format is invalid
    """
    if value is None:
        return None
    if BLUETOOTH_MAC_PATTERN.match(value) or MACOS_UUID_PATTERN.match(value):
        return value.upper()
    raise click.BadParameter(
        f"Invalid Bluetooth address format: '{value}'. "
        "Expected MAC format XX:XX:XX:XX:XX:XX or "
        "macOS UUID format XXXXXXXX-XXXX-XXXX-XXXX-XXXXXXXXXXXX"
    )


def open_connector(output, host, port, address) -> Connector:
    """Open the transport selected on the command line.

    Exactly one of output, host or address must be given.
    """
    chosen = [opt for opt in (output, host, address) if opt]
    if len(chosen) != 1:
        raise click.UsageError("Specify exactly one of --output, --host or --address")
    if output:
        return FileConnector(output)
    if host:
        return NetworkConnector(host, port)
    return BLEConnector(address)


def transport_options(f):
    """Shared transport options."""
    f = click.option(
        "--address",
        "-a",
        callback=validate_bluetooth_address,
        help="Printer Bluetooth address",
    )(f)
    f = click.option("--port", default=NetworkConnector.DEFAULT_PORT, help="TCP port (default 9100)")(f)
    f = click.option("--host", help="Printer host name or IP address")(f)
    f = click.option(
        "--output",
        "-o",
        type=click.Path(dir_okay=False, writable=True),
        help="File or device node to write to (e.g. /dev/usb/lp0)",
    )(f)
    return f


def run_job(ctx, output, host, port, address, action):
    """Open a session, run one print action and report errors."""
    try:
        connector = open_connector(output, host, port, address)
    except OSError as e:
        click.echo(f"Connection error: {e}", err=True)
        sys.exit(1)

    printer = TSPLPrinter(connector, ctx.obj["config"])
    try:
        written = action(printer)
        click.echo(f"Sent {written} bytes")
    except ImageError as e:
        click.echo(f"Image error: {e}", err=True)
        sys.exit(1)
    except PrinterError as e:
        click.echo(f"Printer error: {e}", err=True)
        sys.exit(1)
    except OSError as e:
        click.echo(f"I/O error: {e}", err=True)
        sys.exit(1)
    finally:
        try:
            printer.close()
        except OSError as e:
            click.echo(f"Close error: {e}", err=True)
            sys.exit(1)


@click.group()
@click.option("--debug/--no-debug", default=False, help="Enable debug output")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Settings file (default: ~/.config/tsplprinter/config.json)",
)
@click.pass_context
def main(ctx, debug, config_path):
    """TSPL Label Printer CLI."""
    if debug:
        logging.basicConfig(level=logging.DEBUG, format="[%(name)s] %(message)s")
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = config_path
    ctx.obj["config"] = config_store.load_config(config_path)


@main.command("image")
@click.argument("image", type=click.Path(exists=True, dir_okay=False))
@transport_options
@click.option("--x", "x", default=0, help="X position in dots")
@click.option("--y", "y", default=0, help="Y position in dots")
@click.option(
    "--mode",
    type=click.Choice(list(MODE_CHOICES)),
    default="overwrite",
    help="Bitmap overlay mode",
)
@click.option("--width", "target_width", type=int, help="Printed width in dots (floored to a multiple of 8)")
@click.option("--height", "target_height", type=int, help="Printed height in dots")
@click.option("--copies", default=1, help="Number of copies")
@click.pass_context
def print_image(ctx, image, output, host, port, address, x, y, mode,
                target_width, target_height, copies):
    """Print an image file."""
    run_job(
        ctx, output, host, port, address,
        lambda printer: printer.print_image(
            image, x, y, MODE_CHOICES[mode], target_width, target_height, copies
        ),
    )


@main.command("text")
@click.argument("content")
@transport_options
@click.option("--x", "x", default=0, help="X position in dots")
@click.option("--y", "y", default=0, help="Y position in dots")
@click.option("--font", default="1", help='Resident font name (e.g. "1", "TSS24.BF2")')
@click.option("--rotation", type=click.Choice(["0", "90", "180", "270"]), default="0")
@click.option("--x-mul", default=1, help="Horizontal multiplier")
@click.option("--y-mul", default=1, help="Vertical multiplier")
@click.option("--align", "alignment", type=click.IntRange(0, 3), help="Alignment (0-3)")
@click.option("--copies", default=1, help="Number of copies")
@click.pass_context
def print_text(ctx, content, output, host, port, address, x, y, font, rotation,
               x_mul, y_mul, alignment, copies):
    """Print a line of text."""
    run_job(
        ctx, output, host, port, address,
        lambda printer: printer.print_text(
            content, x, y, font, int(rotation), x_mul, y_mul, alignment, copies
        ),
    )


@main.command()
@transport_options
@click.pass_context
def beep(ctx, output, host, port, address):
    """Sound the printer's beeper."""
    run_job(ctx, output, host, port, address, lambda printer: printer.beep())


@main.command()
@transport_options
@click.pass_context
def home(ctx, output, host, port, address):
    """Feed to the start of the next label."""
    run_job(ctx, output, host, port, address, lambda printer: printer.home())


@main.group("config")
def config_group():
    """Manage stored label settings."""


@config_group.command("show")
@click.pass_context
def config_show(ctx):
    """Show the settings in effect."""
    click.echo(json.dumps(config_store.config_to_dict(ctx.obj["config"]), indent=2))


@config_group.command("save")
@click.option("--width", type=float, help="Label width")
@click.option("--height", type=float, help="Label height")
@click.option("--gap", type=float, help="Gap between labels")
@click.option("--gap-offset", type=float, help="Gap offset")
@click.option("--direction", type=click.IntRange(0, 1), help="Print direction")
@click.option("--unit", type=click.Choice(list(UNIT_CHOICES)), help="Default unit")
@click.pass_context
def config_save(ctx, width, height, gap, gap_offset, direction, unit):
    """Store label settings, starting from the current ones."""
    current = ctx.obj["config"]
    changes = {}

    if width is not None or height is not None:
        changes["size"] = replace(
            current.size,
            width=width if width is not None else current.size.width,
            height=height if height is not None else current.size.height,
        )
    if gap is not None or gap_offset is not None:
        changes["gap"] = replace(
            current.gap,
            distance=gap if gap is not None else current.gap.distance,
            offset=gap_offset if gap_offset is not None else current.gap.offset,
        )
    if direction is not None:
        changes["direction"] = replace(current.direction, direction=direction)
    if unit is not None:
        changes["default_unit"] = UNIT_CHOICES[unit]

    path = config_store.save_config(replace(current, **changes), ctx.obj["config_path"])
    click.echo(f"Saved settings to {path}")


@config_group.command("clear")
@click.pass_context
def config_clear(ctx):
    """Delete stored settings."""
    if config_store.clear_config(ctx.obj["config_path"]):
        click.echo("Settings cleared.")
    else:
        click.echo("No stored settings.")


if __name__ == "__main__":
    main()
