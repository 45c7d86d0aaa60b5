import io
import json
import logging
from urllib import error as urlerr

import pytest

from sdrscan.analysis import introspection
from sdrscan.analysis.introspection import AnalysisClient, analyze_signal
from sdrscan.detection.types import DemodulatorMode, DetectedSignal
from sdrscan.errors import AnalysisFailure
from sdrscan.util.config import load_env_config


class _Response(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


def _signal() -> DetectedSignal:
    return DetectedSignal(
        freq_hz=162_400_000,
        demodulator_mode=DemodulatorMode.FM,
        bandwidth_hz=16_000,
        strength_dbfs=-48.2,
    )


def _capture(monkeypatch, payload):
    seen = {}

    def _urlopen(req, timeout=None):
        seen["url"] = req.full_url
        seen["body"] = json.loads(req.data.decode("utf-8"))
        seen["headers"] = dict(req.header_items())
        if isinstance(payload, Exception):
            raise payload
        return _Response(json.dumps(payload).encode("utf-8"))

    monkeypatch.setattr(introspection.urlreq, "urlopen", _urlopen)
    return seen


def test_openai_style_reply_is_extracted(monkeypatch) -> None:
    seen = _capture(monkeypatch, {"choices": [{"message": {"role": "assistant", "content": " NOAA Weather Radio "}}]})
    client = AnalysisClient("openai", api_key="sk-test")
    text = analyze_signal(client, _signal(), "Seattle, WA")
    assert text == "NOAA Weather Radio"
    assert seen["url"] == "https://api.openai.com/v1/chat/completions"
    assert seen["headers"]["Authorization"] == "Bearer sk-test"
    system, user = seen["body"]["messages"]
    assert "Seattle, WA" in system["content"]
    assert json.loads(user["content"])["freq_hz"] == 162_400_000


def test_ollama_reply_is_extracted(monkeypatch) -> None:
    seen = _capture(monkeypatch, {"message": {"role": "assistant", "content": "Weather broadcast"}})
    client = AnalysisClient("ollama", base_url="http://gpu-box:11434/")
    assert client.reflect_on("{}", "system") == "Weather broadcast"
    assert seen["url"] == "http://gpu-box:11434/api/chat"
    assert seen["body"]["stream"] is False


def test_failures_leave_analysis_absent(monkeypatch, caplog) -> None:
    _capture(monkeypatch, urlerr.URLError("connection refused"))
    client = AnalysisClient("grok")
    with caplog.at_level(logging.WARNING):
        assert analyze_signal(client, _signal(), "Seattle, WA", logger=logging.getLogger("sdrscan.test")) is None
    assert any("analysis failed" in r.getMessage() for r in caplog.records)


def test_empty_reply_is_a_failure(monkeypatch) -> None:
    _capture(monkeypatch, {"choices": [{"message": {"content": "   "}}]})
    with pytest.raises(AnalysisFailure):
        AnalysisClient("openai").reflect_on("{}", "system")


def test_disabled_analysis_is_a_no_op() -> None:
    assert analyze_signal(None, _signal(), "anywhere") is None
    assert AnalysisClient.from_env(load_env_config({})) is None


def test_env_selects_engine_and_defaults() -> None:
    config = load_env_config({"SDRSCAN_AI_ENGINE": "Grok", "SDRSCAN_AI_KEY": "xai-1", "SDRSCAN_AI_TIMEOUT": "5"})
    client = AnalysisClient.from_env(config)
    assert client is not None
    assert client.engine == "grok"
    assert client.base == "https://api.x.ai/v1"
    assert client.timeout_s == 5.0
    assert load_env_config({"SDRSCAN_AI_ENGINE": "bard"}).ai_engine is None


def test_unknown_engine_is_rejected() -> None:
    with pytest.raises(AnalysisFailure):
        AnalysisClient("bard")


@pytest.mark.parametrize(
    "engine, payload",
    [
        ("openai", {"choices": ["just text"]}),
        ("openai", {"choices": [{"message": "just text"}]}),
        ("grok", {"choices": {"message": {"content": "x"}}}),
        ("ollama", {"message": "just text"}),
    ],
)
def test_malformed_reply_leaves_analysis_absent(monkeypatch, caplog, engine, payload) -> None:
    _capture(monkeypatch, payload)
    with caplog.at_level(logging.WARNING):
        assert analyze_signal(AnalysisClient(engine), _signal(), "Seattle, WA", logger=logging.getLogger("sdrscan.test")) is None
    assert any("analysis failed" in r.getMessage() for r in caplog.records)
