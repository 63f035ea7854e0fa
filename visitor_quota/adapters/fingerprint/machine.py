"""Fingerprint provider built from host characteristics."""

import asyncio
import hashlib
import platform
import uuid
from pathlib import Path

from visitor_quota.adapters.fingerprint.base import AbstractFingerprintProvider
from visitor_quota.core.errors import ProviderUnavailableError

MACHINE_ID_PATHS = (
    Path("/etc/machine-id"),
    Path("/var/lib/dbus/machine-id"),
)


def _read_machine_id(paths: tuple[Path, ...]) -> str | None:
    for path in paths:
        try:
            value = path.read_text(encoding="utf-8").strip()
        except OSError:
            continue
        if value:
            return value
    return None


def _hardware_node() -> str | None:
    """MAC-derived node id, or None when uuid had to invent a random one."""
    node = uuid.getnode()
    # Bit 40 set means the value is random (RFC 4122 section 4.5).
    if (node >> 40) & 0x01:
        return None
    return f"{node:012x}"


class MachineFingerprintProvider(AbstractFingerprintProvider):
    """Derive a visitor id from the OS machine id and hardware address.

    The identifier is a SHA-256 digest over the machine id (when readable),
    the hardware node, OS name and architecture. At least one of the first
    two stable sources must be present, otherwise fingerprinting fails.
    """

    def __init__(self, machine_id_paths: tuple[Path, ...] = MACHINE_ID_PATHS) -> None:
        self._machine_id_paths = machine_id_paths

    def _compute(self) -> str:
        machine_id = _read_machine_id(self._machine_id_paths)
        node = _hardware_node()

        if not machine_id and not node:
            raise ProviderUnavailableError(
                code="fingerprint_unavailable",
                message="No stable machine identifier available",
                details={"provider": "machine"},
            )

        parts = [
            machine_id or "",
            node or "",
            platform.system(),
            platform.machine(),
        ]
        return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()[:32]

    async def get_visitor_id(self) -> str:
        # File reads are small but blocking; keep them off the event loop.
        return await asyncio.to_thread(self._compute)
