from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Paths:
    """Fixed on-device locations, all resolved under ``root``.

    ``root`` is ``/`` on a real device; tests point it at a temp dir.
    """

    root: str = "/"
    workdir: str = "/opt/product"
    stack_dirname: str = "compose"
    env_filename: str = ".env"
    boot_config: str = "/boot/firmware/config.txt"
    fstab: str = "/etc/fstab"
    journald_conf: str = "/etc/systemd/journald.conf"
    system_conf: str = "/etc/systemd/system.conf"
    heartbeat_script: str = "/usr/local/bin/edge-heartbeat"
    state_default: str = "/var/lib/fleet-bootstrap/state.json"
    log_default: str = "/var/log/fleet-bootstrap.log"

    def resolve(self, path: str) -> Path:
        return Path(self.root) / path.lstrip("/")

    @property
    def workdir_path(self) -> Path:
        return self.resolve(self.workdir)

    @property
    def stack_dir(self) -> Path:
        return self.workdir_path / self.stack_dirname

    @property
    def env_file(self) -> Path:
        return self.workdir_path / self.env_filename


PATHS = Paths()
