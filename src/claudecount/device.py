"""Stable per-installation device identity."""
import logging
import platform
import re
import secrets
import socket
import sys
from typing import Optional

from .config import ConfigStore
from .models import DeviceRecord

logger = logging.getLogger(__name__)

MAX_HOST_PREFIX = 20


def generate_device_id(hostname: Optional[str] = None) -> str:
    """Sanitized hostname prefix plus 4 random bytes in hex."""
    host = re.sub(r"[^a-zA-Z0-9-]", "-", hostname or socket.gethostname())[:MAX_HOST_PREFIX]
    return f"{host}-{secrets.token_hex(4)}"


def get_device_id(store: ConfigStore) -> str:
    """Return the persisted device id, creating it on first use.

    The id must never change once written: the server counts devices by it.
    """
    device_id = store.get("device_id")
    if device_id:
        return device_id

    with store.edit() as config:
        # Another invocation may have written one since our load.
        if not config.get("device_id"):
            config["device_id"] = generate_device_id()
            logger.debug(f"Created device id {config['device_id']}")
        return config["device_id"]


def get_device_metadata(store: ConfigStore) -> DeviceRecord:
    return DeviceRecord(
        device_id=get_device_id(store),
        hostname=socket.gethostname(),
        platform=sys.platform,
        python_version=platform.python_version(),
    )
