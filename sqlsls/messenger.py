"""Sending window/showMessage notifications to the client."""

from __future__ import annotations

import logging
from typing import Any, Callable

from sqlsls.protocol import MessageType, ShowMessageParams, to_wire

_log = logging.getLogger(__name__)

SHOW_MESSAGE = "window/showMessage"


class Messenger:
    """Shows messages in the client through a notification callable."""

    def __init__(self, notify: Callable[[str, Any], Any]) -> None:
        self._notify = notify

    def _send(self, kind: MessageType, message: str) -> Any:
        _log.info("Send Message: %s", message)
        params = to_wire(ShowMessageParams(type=kind, message=message))
        return self._notify(SHOW_MESSAGE, params)

    def show_log(self, message: str) -> Any:
        return self._send(MessageType.LOG, message)

    def show_info(self, message: str) -> Any:
        return self._send(MessageType.INFO, message)

    def show_warning(self, message: str) -> Any:
        return self._send(MessageType.WARNING, message)

    def show_error(self, message: str) -> Any:
        return self._send(MessageType.ERROR, message)