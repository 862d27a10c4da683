"""Enrollment handshake with the fleet API.

One POST to ``<api>/enroll``; any failure degrades to an empty result so
the pipeline can carry on with the operator's configuration. The response
is handed back raw and merged by :func:`fleet_bootstrap.params.apply_enrollment`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from .errors import DegradedEnrollment
from .identity import DeviceIdentity

logger = logging.getLogger(__name__)

ENROLL_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True)
class EnrollmentResult:
    response: Dict[str, Any] = field(default_factory=dict)
    error: Optional[DegradedEnrollment] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def enroll_payload(identity: DeviceIdentity, tenant: str, channel: str) -> Dict[str, str]:
    return {
        "device_id": identity.device_id,
        "serial": identity.serial,
        "tenant": tenant,
        "channel": channel,
        "hostname": identity.hostname,
    }


def enroll(
    api_base: str,
    identity: DeviceIdentity,
    tenant: str,
    channel: str,
    *,
    session: Optional[requests.Session] = None,
    timeout: float = ENROLL_TIMEOUT_SECONDS,
) -> EnrollmentResult:
    """Register this device. Never raises; failures come back in ``error``."""

    if session is None:
        with requests.Session() as owned:
            return enroll(api_base, identity, tenant, channel, session=owned, timeout=timeout)

    url = f"{api_base.rstrip('/')}/enroll"
    payload = enroll_payload(identity, tenant, channel)

    logger.info("Enrolling %s at %s", identity.device_id, url)
    try:
        r = session.post(url, json=payload, timeout=timeout)
    except requests.RequestException as e:
        return _degraded(f"request to {url} failed: {e}")

    if not r.ok:
        return _degraded(f"{url} returned HTTP {r.status_code}: {r.text[:200]}")

    try:
        data = r.json()
    except ValueError:
        return _degraded(f"{url} returned a body that is not JSON")

    if not isinstance(data, dict):
        return _degraded(f"{url} returned {type(data).__name__}, expected an object")

    logger.info("Enrollment accepted (fields: %s)", ",".join(sorted(map(str, data))) or "none")
    return EnrollmentResult(response=data)


def _degraded(reason: str) -> EnrollmentResult:
    return EnrollmentResult(error=DegradedEnrollment(reason))
