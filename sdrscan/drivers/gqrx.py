"""gqrx remote-control TCP client.

gqrx speaks a small subset of the hamlib rigctl line protocol: one command per
line, one or more reply lines, ``RPRT 0`` / ``RPRT 1`` as acknowledgement.
Only commands this package issues are listed here:

    f / F <hz>                  get / set frequency
    m / M <mode> <passband>     get / set demodulator and passband
    l SQL / L SQL <dbfs>        squelch
    l AF / L AF <db>            audio gain
    l STRENGTH                  signal strength [dBFS]
    l|L RF_GAIN|IF_GAIN|BB_GAIN gain stages (backend dependent)
    u RECORD / U RECORD 0|1     audio recorder
    U RDS 0|1, p RDS_*          RDS decoder
"""

from __future__ import annotations

import logging
import select
import socket
import threading
from dataclasses import dataclass
from typing import List, Optional

from sdrscan.errors import ConnectionClosed, ProtocolTimeout, UnexpectedResponse, UnsupportedCapability
from sdrscan.util.hz import hz_to_display
from sdrscan.util.logging import get_logger

RPRT_OK = "RPRT 0"
RPRT_FAIL = "RPRT 1"
STRENGTH_COMMAND = "l STRENGTH"

GAIN_STAGES = {
    "RF_GAIN": "RF Gain",
    "IF_GAIN": "Intermediate Gain",
    "BB_GAIN": "Baseband Gain",
}


@dataclass(frozen=True)
class ProtocolTimeouts:
    """Bounded waits used while reading replies."""

    initial_s: float = 2.0
    drain_s: float = 0.001
    # Strength replies trickle in slower; trading scan speed for accuracy.
    strength_drain_s: float = 0.04
    connect_s: float = 5.0

    def drain_for(self, command: str) -> float:
        return self.strength_drain_s if command == STRENGTH_COMMAND else self.drain_s


def gain_stage_for(command: str) -> Optional[str]:
    """Return the human name of the gain stage a command touches, if any."""

    parts = command.split()
    if len(parts) >= 2 and parts[0] in ("l", "L"):
        return GAIN_STAGES.get(parts[1].upper())
    return None


class GqrxClient:
    """Serial command/response access to one gqrx control connection."""

    def __init__(
        self,
        sock: socket.socket,
        *,
        timeouts: Optional[ProtocolTimeouts] = None,
        logger: Optional[logging.Logger] = None,
        peer: str = "",
    ):
        self._sock = sock
        self._buf = b""
        self._closed = False
        self._lock = threading.Lock()
        self.timeouts = timeouts or ProtocolTimeouts()
        self.logger = logger or get_logger("drivers.gqrx")
        self.peer = peer

    @classmethod
    def connect(
        cls,
        host: str = "127.0.0.1",
        port: int = 7356,
        *,
        timeouts: Optional[ProtocolTimeouts] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "GqrxClient":
        timeouts = timeouts or ProtocolTimeouts()
        sock = socket.create_connection((host, int(port)), timeout=timeouts.connect_s)
        client = cls(sock, timeouts=timeouts, logger=logger, peer=f"{host}:{port}")
        client.logger.debug("Connected to gqrx at %s:%s", host, port)
        return client

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._sock.close()
        except OSError as exc:
            self.logger.debug("Error while closing %s: %s", self.peer or "connection", exc)

    def __enter__(self) -> "GqrxClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _read_line(self, timeout_s: float) -> Optional[str]:
        """Return the next reply line, or None if nothing arrives within timeout_s."""

        while b"\n" not in self._buf:
            ready, _, _ = select.select([self._sock], [], [], max(0.0, timeout_s))
            if not ready:
                return None
            chunk = self._sock.recv(4096)
            if not chunk:
                raise ConnectionClosed(f"gqrx closed the connection {self.peer}".strip())
            self._buf += chunk
        line, _, self._buf = self._buf.partition(b"\n")
        return line.decode("ascii", errors="replace").rstrip("\r")

    def execute(self, command: str, expect: Optional[str] = None) -> Optional[str]:
        """Send one command and return its (space-joined) reply.

        Raises ProtocolTimeout when nothing arrives within the initial wait and
        UnexpectedResponse when ``expect`` is given and not matched. Gain-stage
        commands the backend rejects log a warning and return None instead.
        """

        if self._closed:
            raise ConnectionClosed(f"Command {command!r} issued on a closed connection")

        with self._lock:
            self._sock.sendall(f"{command}\n".encode("ascii"))
            first = self._read_line(self.timeouts.initial_s)
            if first is None:
                raise ProtocolTimeout(command, self.timeouts.initial_s)
            lines: List[str] = [first]
            drain_s = self.timeouts.drain_for(command)
            while True:
                line = self._read_line(drain_s)
                if line is None:
                    break
                lines.append(line)

        response = " ".join(lines)

        stage = gain_stage_for(command)
        if stage is not None and (response == RPRT_FAIL or (expect is not None and response != expect)):
            self.logger.warning(
                "%s",
                UnsupportedCapability(command, stage),
                extra={"command": command, "error_type": "unsupported_capability"},
            )
            return None

        if expect is not None and response != expect:
            raise UnexpectedResponse(command, expect, response)

        if response.isdigit() and int(response) > 0:
            self.logger.debug("%s -> %s", command, hz_to_display(response), extra={"command": command})
        else:
            self.logger.debug("%s -> %s", command, response, extra={"command": command})
        return response


def connect(
    host: str = "127.0.0.1",
    port: int = 7356,
    *,
    timeouts: Optional[ProtocolTimeouts] = None,
    logger: Optional[logging.Logger] = None,
) -> GqrxClient:
    return GqrxClient.connect(host, port, timeouts=timeouts, logger=logger)
