"""Host-bound key derivation and AES decryption for encrypted payloads.

Some launchers encrypt their local database with a key derived from the
machine's hardware identifiers, so the file is only readable on the machine
that wrote it. The derivation is fixed::

    hardware = "<board maker>;<board serial>;<bios maker>;<bios serial>;"
               "<volume serial, hex>;<gpu PnP id>;<cpu maker>;<cpu id>;<cpu name>;"
    key      = SHA3-256(prefix + lowercase-hex(SHA1(hardware)))
    iv       = SHA3-256(prefix)[:16]

The ciphertext starts after a fixed-size header and is AES-CBC with PKCS7
padding.
"""

from __future__ import annotations

import hashlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from gamecollector.exceptions import DecryptionError, ToolError
from gamecollector.host.process import ProcessRunner

logger = logging.getLogger(__name__)

KEY_PREFIX = "allUsersGenericIdIS"
HEADER_SIZE = 64


@dataclass(frozen=True)
class HardwareInfo:
    """Hardware identifiers that feed the key derivation."""

    base_board_manufacturer: str = ""
    base_board_serial: str = ""
    bios_manufacturer: str = ""
    bios_serial: str = ""
    volume_serial: int = 0
    video_controller_pnp_id: str = ""
    processor_manufacturer: str = ""
    processor_id: str = ""
    processor_name: str = ""

    def fingerprint(self) -> str:
        """Render the semicolon-terminated hardware string."""
        parts = [
            self.base_board_manufacturer,
            self.base_board_serial,
            self.bios_manufacturer,
            self.bios_serial,
            format(self.volume_serial, "X"),
            self.video_controller_pnp_id,
            self.processor_manufacturer,
            self.processor_id,
            self.processor_name,
        ]
        return "".join(f"{part};" for part in parts)


class HardwareInfoProvider(ABC):
    """Supplies the hardware identifiers of the current machine."""

    @abstractmethod
    def hardware_info(self) -> HardwareInfo:
        """Read the identifiers.

        Raises:
            ToolError: If the identifiers cannot be read.
        """


class StaticHardwareInfoProvider(HardwareInfoProvider):
    """Provider returning fixed identifiers, e.g. captured from another machine."""

    def __init__(self, info: HardwareInfo) -> None:
        self.info = info

    def hardware_info(self) -> HardwareInfo:
        return self.info


# (HardwareInfo field, CIM class, property)
_CIM_QUERIES: tuple[tuple[str, str, str], ...] = (
    ("base_board_manufacturer", "Win32_BaseBoard", "Manufacturer"),
    ("base_board_serial", "Win32_BaseBoard", "SerialNumber"),
    ("bios_manufacturer", "Win32_BIOS", "Manufacturer"),
    ("bios_serial", "Win32_BIOS", "SerialNumber"),
    ("video_controller_pnp_id", "Win32_VideoController", "PNPDeviceId"),
    ("processor_manufacturer", "Win32_Processor", "Manufacturer"),
    ("processor_id", "Win32_Processor", "ProcessorId"),
    ("processor_name", "Win32_Processor", "Name"),
)


class CimHardwareInfoProvider(HardwareInfoProvider):
    """Reads hardware identifiers through PowerShell's ``Get-CimInstance``.

    Args:
        runner: Process capability used to start PowerShell.
        executable: PowerShell executable name or path.
    """

    def __init__(self, runner: ProcessRunner, executable: str = "powershell") -> None:
        self.runner = runner
        self.executable = executable

    def _query(self, cim_class: str, prop: str, where: str = "") -> str:
        filter_arg = f" -Filter \"{where}\"" if where else ""
        script = (
            f"(Get-CimInstance -ClassName {cim_class}{filter_arg} "
            f"| Select-Object -First 1).{prop}"
        )
        result = self.runner.run(
            self.executable, ["-NoProfile", "-NonInteractive", "-Command", script]
        )
        if result.exit_code != 0:
            raise ToolError(f"{cim_class}.{prop} query failed: {result.stderr.strip()}")
        return result.stdout.strip()

    def hardware_info(self) -> HardwareInfo:
        values = {
            name: self._query(cim_class, prop) for name, cim_class, prop in _CIM_QUERIES
        }
        serial = self._query("Win32_LogicalDisk", "VolumeSerialNumber", "DeviceID='C:'")
        try:
            volume_serial = int(serial, 16) if serial else 0
        except ValueError:
            raise ToolError(f"Unexpected volume serial number {serial!r}") from None
        return HardwareInfo(volume_serial=volume_serial, **values)


def derive_key(info: HardwareInfo) -> bytes:
    """Derive the 32-byte AES key from hardware identifiers."""
    digest = hashlib.sha1(info.fingerprint().encode("ascii", errors="replace")).hexdigest()
    return hashlib.sha3_256(f"{KEY_PREFIX}{digest}".encode("ascii")).digest()


def derive_iv() -> bytes:
    """Return the fixed 16-byte IV."""
    return hashlib.sha3_256(KEY_PREFIX.encode("ascii")).digest()[:16]


def decrypt(data: bytes, key: bytes, iv: bytes, header_size: int = HEADER_SIZE) -> bytes:
    """Decrypt an AES-CBC/PKCS7 payload that follows a fixed-size header.

    Raises:
        DecryptionError: If the payload is too short, not block aligned, or
            the padding is invalid (usually a wrong key).
    """
    body = data[header_size:]
    if not body or len(body) % 16:
        raise DecryptionError(
            f"Encrypted payload has {len(body)} bytes after the header, "
            "expected a non-zero multiple of 16"
        )
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(body) + decryptor.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as exc:
        raise DecryptionError("Invalid padding, the key is probably wrong") from exc


def encrypt(
    plaintext: bytes, key: bytes, iv: bytes, header: bytes = b"\x00" * HEADER_SIZE
) -> bytes:
    """Inverse of :func:`decrypt`; used to build fixtures and exports."""
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return header + encryptor.update(padded) + encryptor.finalize()
