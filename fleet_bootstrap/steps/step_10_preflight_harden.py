from __future__ import annotations

import logging

from ..lib.files import ensure_line_present, set_config_line
from ..lib.pkg import apt_full_upgrade, apt_install, apt_update, reconfigure
from ..lib.system import raspi_config, systemctl, ufw_apply
from ..params import ConfigSnapshot
from ..pipeline import Policy, StepContext, StepResult

logger = logging.getLogger(__name__)

BASE_PACKAGES = [
    "raspi-config",
    "unattended-upgrades",
    "haveged",
    "rng-tools",
    "curl",
    "ca-certificates",
    "gnupg",
    "lsb-release",
    "jq",
    "git",
    "ufw",
    "watchdog",
]

# (line, pattern that means "already configured")
BOOT_CONFIG_LINES = [
    ("dtoverlay=disable-bt", r"^dtoverlay=disable-bt"),
    ("hdmi_blanking=2", r"^hdmi_blanking"),
]
FSTAB_LINES = [
    ("tmpfs /var/log tmpfs defaults,noatime,nosuid,size=100m 0 0", r"^[^#]*\s/var/log\s+tmpfs"),
    ("tmpfs /tmp     tmpfs defaults,noatime,nosuid,size=100m 0 0", r"^[^#]*\s/tmp\s+tmpfs"),
]
FIREWALL_ALLOW = ["22/tcp", "53", "80,443/tcp"]


class PreflightHardenStep:
    step_id = "preflight-harden"
    policy = Policy.FATAL

    def enabled(self, config: ConfigSnapshot) -> bool:
        return True

    def run(self, ctx: StepContext, config: ConfigSnapshot) -> StepResult:
        run = ctx.run
        paths = ctx.paths

        apt_update(run)
        apt_install(run, BASE_PACKAGES)
        reconfigure(run, "unattended-upgrades")
        apt_full_upgrade(run)
        if run(["rpi-eeprom-update", "-a"], check=False).returncode != 0:
            logger.info("Non-fatal: rpi-eeprom-update failed")

        # Headless defaults
        raspi_config(run, "do_change_locale", config.locale)
        raspi_config(run, "do_change_timezone", config.timezone)
        raspi_config(run, "do_hostname", ctx.identity.hostname)
        raspi_config(run, "do_ssh", "0")
        raspi_config(run, "do_i2c", "0")

        for line, pattern in BOOT_CONFIG_LINES:
            ensure_line_present(ctx.path(paths.boot_config), line, pattern=pattern, dry_run=ctx.dry_run)

        # Reduce SD-card writes.
        for line, pattern in FSTAB_LINES:
            ensure_line_present(ctx.path(paths.fstab), line, pattern=pattern, dry_run=ctx.dry_run)
        set_config_line(ctx.path(paths.journald_conf), r"^#?SystemMaxUse", "SystemMaxUse=50M", dry_run=ctx.dry_run)
        systemctl(run, "restart", "systemd-journald", check=False)

        set_config_line(
            ctx.path(paths.system_conf), r"^#?RuntimeWatchdogSec", "RuntimeWatchdogSec=20s", dry_run=ctx.dry_run
        )
        systemctl(run, "enable", "--now", "watchdog", check=False)

        if config.enable_firewall:
            ufw_apply(run, FIREWALL_ALLOW)
        else:
            logger.info("Firewall disabled by configuration")

        logger.info("Preflight done (hostname=%s tz=%s locale=%s)", ctx.identity.hostname, config.timezone, config.locale)
        return StepResult(config=config)
