"""Fixed lookup table of recording decoders."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Type

from sdrscan.decoders.base import RecordingDecoder
from sdrscan.decoders.gsm import GsmDecoder
from sdrscan.detection.types import FrequencyState
from sdrscan.errors import InvalidConfiguration

DECODERS: Dict[str, Type[RecordingDecoder]] = {
    "gsm": GsmDecoder,
}


def resolve_decoder(key: str) -> Type[RecordingDecoder]:
    normalized = str(key).strip().lower().lstrip(":")
    try:
        return DECODERS[normalized]
    except KeyError:
        supported = ", ".join(sorted(DECODERS))
        raise InvalidConfiguration(f"Unknown decoder key: {key}. Supported: {supported}") from None


def start_decoder(
    key: str,
    state: FrequencyState,
    record_dir: str,
    *,
    logger: Optional[logging.Logger] = None,
    keep_recording: bool = False,
) -> RecordingDecoder:
    decoder_cls = resolve_decoder(key)
    return decoder_cls(state, record_dir, logger=logger, keep_recording=keep_recording).start()


def stop_decoder(handle: RecordingDecoder) -> Dict[str, Any]:
    """Stop and join the decoder; returns its summary for DetectedSignal.decoder_info."""
    return handle.stop()
