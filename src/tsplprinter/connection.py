"""
Printer Connectors.

A connector receives a finished job buffer with ``write`` and releases the
transport with ``finalize``. Each print action is exactly one write; any
chunking needed by the transport happens inside the connector.
"""

import asyncio
import logging
import socket
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from bleak import BleakClient

logger = logging.getLogger(__name__)


class Connector(ABC):
    """Minimal transport contract."""

    @abstractmethod
    def write(self, data: bytes) -> None:
        """
        Send data to the printer.

        Raises:
            OSError: If the transport fails
        """

    @abstractmethod
    def finalize(self) -> None:
        """
        Release the transport.

        Raises:
            OSError: If the transport fails to close
        """


class DummyConnector(Connector):
    """Collects written data in memory."""

    def __init__(self):
        self._buffer: Optional[list[bytes]] = []

    def write(self, data: bytes) -> None:
        if self._buffer is None:
            raise OSError("Connector already finalized")
        self._buffer.append(bytes(data))

    def get_data(self) -> bytes:
        """Return everything written so far."""
        if self._buffer is None:
            return b""
        return b"".join(self._buffer)

    def finalize(self) -> None:
        self._buffer = None


class FileConnector(Connector):
    """Writes to a file or a printer device node such as /dev/usb/lp0."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._fp = open(self.path, "wb")
        logger.debug("Opened %s", self.path)

    def write(self, data: bytes) -> None:
        if self._fp is None:
            raise OSError(f"{self.path} is already closed")
        self._fp.write(data)
        self._fp.flush()

    def finalize(self) -> None:
        if self._fp is not None:
            self._fp.close()
            self._fp = None
            logger.debug("Closed %s", self.path)


class NetworkConnector(Connector):
    """Raw TCP connection, typically to port 9100."""

    DEFAULT_PORT = 9100

    def __init__(self, host: str, port: int = DEFAULT_PORT, timeout: Optional[float] = None):
        self.host = host
        self.port = port
        self._sock: Optional[socket.socket] = socket.create_connection((host, port), timeout=timeout)
        logger.debug("Connected to %s:%d", host, port)

    def write(self, data: bytes) -> None:
        if self._sock is None:
            raise OSError(f"Connection to {self.host}:{self.port} is closed")
        self._sock.sendall(data)

    def finalize(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None
            logger.debug("Closed connection to %s:%d", self.host, self.port)


class BLEConnector(Connector):
    """
    Bluetooth Low Energy transport using the Bleak library.

    Bleak is asyncio-based; the connector owns a private event loop so that
    ``write`` and ``finalize`` stay synchronous.
    """

    # Using 100 as a safe default that works with most BLE connections
    DEFAULT_CHUNK_SIZE = 100

    def __init__(self, address: str, chunk_size: int = DEFAULT_CHUNK_SIZE,
                 delay_ms: float = 10.0, response: bool = False):
        """
        Connect to a printer.

        Args:
            address: Bluetooth address (MAC, or UUID on macOS)
            chunk_size: Maximum bytes per GATT write
            delay_ms: Delay between chunks in milliseconds
            response: Whether to wait for write responses

        Raises:
            ConnectionError: If the printer cannot be reached or exposes
                no writable characteristic
        """
        self.address = address
        self.chunk_size = chunk_size
        self.delay_ms = delay_ms
        self.response = response
        self.write_char: Optional[str] = None
        self._loop = asyncio.new_event_loop()
        self.client: Optional[BleakClient] = BleakClient(address)

        try:
            self._loop.run_until_complete(self._connect())
        except Exception:
            self._loop.close()
            self.client = None
            raise

    async def _connect(self):
        try:
            await self.client.connect()
        except Exception as e:
            raise ConnectionError(f"Failed to connect to {self.address}: {e}") from e

        self._discover_characteristics()
        if not self.write_char:
            await self.client.disconnect()
            raise ConnectionError(f"No writable characteristic found on {self.address}")
        logger.debug("Connected to %s, writing to %s", self.address, self.write_char)

    def _discover_characteristics(self):
        """Find the first write characteristic."""
        for service in self.client.services:
            for char in service.characteristics:
                props = char.properties
                if "write" in props or "write-without-response" in props:
                    self.write_char = char.uuid
                    return

    async def _write_chunked(self, data: bytes):
        total_chunks = (len(data) + self.chunk_size - 1) // self.chunk_size

        for i in range(0, len(data), self.chunk_size):
            chunk = data[i:i + self.chunk_size]
            chunk_num = i // self.chunk_size + 1

            try:
                await self.client.write_gatt_char(self.write_char, chunk, response=self.response)
            except Exception as e:
                raise ConnectionError(
                    f"Write failed at chunk {chunk_num}/{total_chunks}: {e}"
                ) from e

            # Small delay between chunks to avoid overwhelming the printer
            if self.delay_ms > 0 and i + self.chunk_size < len(data):
                await asyncio.sleep(self.delay_ms / 1000.0)

    def write(self, data: bytes) -> None:
        if self.client is None:
            raise ConnectionError(f"Not connected to {self.address}")
        self._loop.run_until_complete(self._write_chunked(data))

    def finalize(self) -> None:
        if self.client is None:
            return
        try:
            if self.client.is_connected:
                self._loop.run_until_complete(self.client.disconnect())
                logger.debug("Disconnected from %s", self.address)
        finally:
            self.client = None
            self._loop.close()
