from __future__ import annotations

import logging
import socket

from .config import NetworkSettings

logger = logging.getLogger(__name__)


class ConnectivityProbe:
    def __init__(self, settings: NetworkSettings) -> None:
        self.settings = settings

    def is_online(self) -> bool:
        if self.settings.assume_online is not None:
            return self.settings.assume_online
        address = (self.settings.probe_host, self.settings.probe_port)
        try:
            with socket.create_connection(address, timeout=self.settings.probe_timeout_seconds):
                return True
        except OSError as exc:
            logger.info("Device appears offline (%s:%s unreachable: %s)", *address, exc)
            return False
