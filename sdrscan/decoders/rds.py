"""RDS metadata polling over the control connection."""

from __future__ import annotations

import logging
import threading
from typing import Dict, Optional

from sdrscan.drivers.gqrx import RPRT_OK, GqrxClient
from sdrscan.util.logging import get_logger

RDS_EMPTY_PI = "0000"


def rds_complete(rds: Dict[str, str]) -> bool:
    return rds.get("rds_pi", RDS_EMPTY_PI) != RDS_EMPTY_PI and bool(rds.get("rds_ps_name")) and bool(rds.get("rds_radiotext"))


def decode_rds(
    client: GqrxClient,
    *,
    max_attempts: int = 90,
    interval_s: float = 0.1,
    leave_on: bool = True,
    cancel_event: Optional[threading.Event] = None,
    logger: Optional[logging.Logger] = None,
) -> Dict[str, str]:
    """Reset the receiver's RDS decoder and poll PI / PS / RadioText.

    Stops early once all three are populated or when ``cancel_event`` is set.
    With ``leave_on=False`` the receiver decoder is disabled again afterwards.
    Only meaningful in WFM modes.
    """

    logger = logger or get_logger("decoders.rds")
    cancel_event = cancel_event or threading.Event()

    # Toggling resets the decoder state left over from the previous station.
    client.execute("U RDS 0", expect=RPRT_OK)
    client.execute("U RDS 1", expect=RPRT_OK)

    rds = {"rds_pi": RDS_EMPTY_PI, "rds_ps_name": "", "rds_radiotext": ""}
    attempts = 0
    for attempts in range(1, max_attempts + 1):
        rds["rds_pi"] = client.execute("p RDS_PI") or RDS_EMPTY_PI
        rds["rds_ps_name"] = (client.execute("p RDS_PS_NAME") or "").strip()
        rds["rds_radiotext"] = (client.execute("p RDS_RADIOTEXT") or "").strip()
        if rds_complete(rds):
            break
        if cancel_event.wait(interval_s):
            break
    if not leave_on:
        client.execute("U RDS 0", expect=RPRT_OK)
    logger.info("RDS decode finished after %d attempt(s): PI=%s PS=%r", attempts, rds["rds_pi"], rds["rds_ps_name"])
    return rds
