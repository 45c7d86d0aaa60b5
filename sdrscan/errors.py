"""Exception taxonomy shared by the protocol client, controller and scanner."""

from __future__ import annotations

from typing import Optional


class SdrScanError(Exception):
    """Base class for all sdrscan errors."""


class ProtocolError(SdrScanError):
    """Receiver did not behave according to the remote-control protocol."""


class ProtocolTimeout(ProtocolError):
    """No reply arrived within the bounded wait."""

    def __init__(self, command: str, timeout_s: float):
        super().__init__(f"No response for command: {command} (waited {timeout_s:.3f}s)")
        self.command = command
        self.timeout_s = timeout_s


class UnexpectedResponse(ProtocolError):
    """Reply did not match the required acknowledgement."""

    def __init__(self, command: str, expected: Optional[str], got: Optional[str]):
        super().__init__(f"Command: {command} Expected Resp: {expected}, Got: {got}")
        self.command = command
        self.expected = expected
        self.got = got


class ConnectionClosed(ProtocolError):
    """Receiver closed the control connection."""


class UnsupportedCapability(SdrScanError):
    """Backend rejected a gain-stage get/set."""

    def __init__(self, command: str, stage: str):
        super().__init__(f"{stage} is not supported by the radio backend (command: {command})")
        self.command = command
        self.stage = stage


class InvalidConfiguration(SdrScanError):
    """Bad option detected before any command was issued."""


class AnalysisFailure(SdrScanError):
    """External analysis collaborator failed or returned nothing."""
