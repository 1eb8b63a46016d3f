"""
Helpers for the device session kept in Flask's signed cookie session.
"""

from __future__ import annotations

from flask import request, session

from tableflow.device_session import DeviceSession, generate_device_fingerprint

DEVICE_SESSION_KEY = "device"

# Request headers that stand in for the browser characteristics a device
# fingerprint is built from.
FINGERPRINT_HEADERS = ("User-Agent", "Accept-Language", "X-Screen-Resolution", "X-Timezone")


def current_fingerprint() -> str:
    return generate_device_fingerprint(
        *(request.headers.get(name, "") for name in FINGERPRINT_HEADERS)
    )


def load_device_session() -> DeviceSession:
    """Load the caller's device session, starting a fresh one when missing or malformed."""
    fingerprint = current_fingerprint()
    device = DeviceSession.from_dict(session.get(DEVICE_SESSION_KEY), fingerprint=fingerprint)
    if not device.fingerprint:
        device.fingerprint = fingerprint
    return device


def save_device_session(device: DeviceSession) -> None:
    session[DEVICE_SESSION_KEY] = device.to_dict()
    session.permanent = True
