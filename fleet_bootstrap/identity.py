from __future__ import annotations

import logging
import re
import secrets
import string
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Protocol, Sequence

from .errors import InvalidArgument

logger = logging.getLogger(__name__)

CPUINFO_PATH = "/proc/cpuinfo"
RANDOM_ID_PREFIX = "pi-"
RANDOM_ID_LENGTH = 8
RANDOM_ID_ALPHABET = string.ascii_lowercase + string.digits


class RandomSource(Protocol):
    def choice(self, seq: Sequence[str]) -> str:
        ...


@dataclass(frozen=True)
class DeviceIdentity:
    device_id: str
    hostname: str
    # Empty when no hardware serial could be read.
    serial: str = ""

    @property
    def from_hardware(self) -> bool:
        return bool(self.serial)


def read_cpu_serial(path: str = CPUINFO_PATH) -> Optional[str]:
    """Hardware serial from /proc/cpuinfo (``Serial : ...``), or None."""

    try:
        txt = Path(path).read_text(encoding="utf-8", errors="ignore")
    except OSError:
        return None
    m = re.search(r"^Serial\s*:\s*(\S+)\s*$", txt, flags=re.MULTILINE)
    return m.group(1) if m else None


def random_token(rng: RandomSource, length: int = RANDOM_ID_LENGTH) -> str:
    return "".join(rng.choice(RANDOM_ID_ALPHABET) for _ in range(length))


def derive_identity(
    serial_reader: Callable[[], Optional[str]] = read_cpu_serial,
    random_source: Optional[RandomSource] = None,
    host_prefix: str = "edge",
) -> DeviceIdentity:
    """Derive device id and hostname.

    The hardware serial is used when readable. Otherwise a fresh
    ``pi-<8 chars>`` token is generated, so such ids do not survive a
    re-run. A missing serial is expected and never an error.
    """

    prefix = (host_prefix or "").strip()
    if not prefix:
        raise InvalidArgument("host prefix must not be empty")

    try:
        serial = (serial_reader() or "").strip()
    except OSError as e:
        logger.info("Hardware serial unreadable (%s); using a random device id", e)
        serial = ""

    if serial:
        device_id = serial
    else:
        rng = random_source if random_source is not None else secrets.SystemRandom()
        device_id = RANDOM_ID_PREFIX + random_token(rng)
        logger.info("No hardware serial; generated device id %s", device_id)

    identity = DeviceIdentity(device_id=device_id, hostname=f"{prefix}-{device_id}", serial=serial)
    logger.info("Device identity: id=%s hostname=%s", identity.device_id, identity.hostname)
    return identity
