"""
Analysis collaborator for confirmed signals.

Provides the AnalysisClient class that forwards signal metadata to a chat
completion endpoint (OpenAI-compatible for openai and grok, native for
ollama), plus analyze_signal(), the best-effort hook the scanner calls once
per confirmed signal.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional
from urllib import error as urlerr
from urllib import request as urlreq

from sdrscan.detection.types import DetectedSignal
from sdrscan.errors import AnalysisFailure
from sdrscan.util.config import AI_DEFAULT_MODELS, AI_DEFAULT_URLS, AI_ENGINES, EnvConfig

SYSTEM_PROMPT = (
    "Analyze signal data captured by a software-defined-radio using GQRX at the "
    "following location: {location}. Respond with just FCC information about the "
    "transmission if available. If the frequency is unlicensed or not found in FCC "
    "records, state that clearly. Be clear and concise in your analysis."
)


def system_prompt(location: str) -> str:
    return SYSTEM_PROMPT.format(location=location)


class AnalysisClient:
    """
    HTTP client for one chat-completion engine.

    Every failure mode (HTTP status, unreachable host, timeout, malformed or
    empty reply) surfaces as AnalysisFailure.
    """

    def __init__(
        self,
        engine: str,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_s: float = 30.0,
    ) -> None:
        """
        Initialize the analysis client.

        Args:
            engine: One of openai, grok, ollama.
            base_url: API root; defaults per engine (e.g., https://api.openai.com/v1).
            model: Model name; defaults per engine.
            api_key: Bearer token for openai/grok.
            timeout_s: Per-request timeout in seconds.
        """
        engine = str(engine).strip().lower()
        if engine not in AI_ENGINES:
            raise AnalysisFailure(f"Unsupported analysis engine '{engine}'. Supported engines are: {', '.join(AI_ENGINES)}")
        self.engine = engine
        self.base = (base_url or AI_DEFAULT_URLS[engine]).rstrip('/')
        self.model = model or AI_DEFAULT_MODELS[engine]
        self.api_key = api_key or ""
        self.timeout_s = float(timeout_s)

    @classmethod
    def from_env(cls, config: EnvConfig) -> Optional["AnalysisClient"]:
        """Build a client from the environment snapshot; None when analysis is disabled."""
        if not config.analysis_enabled or config.ai_engine is None:
            return None
        return cls(
            config.ai_engine,
            base_url=config.ai_url,
            model=config.ai_model,
            api_key=config.ai_key,
            timeout_s=config.ai_timeout_s,
        )

    def _endpoint(self) -> str:
        if self.engine == "ollama":
            return self.base + "/api/chat"
        return self.base + "/chat/completions"

    def _payload(self, request: str, system_role_content: str) -> Dict[str, Any]:
        messages: List[Dict[str, str]] = [
            {"role": "system", "content": system_role_content},
            {"role": "user", "content": request},
        ]
        payload: Dict[str, Any] = {"model": self.model, "messages": messages}
        if self.engine == "ollama":
            payload["stream"] = False
        return payload

    def _post(self, body: Dict[str, Any]) -> Dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        data = json.dumps(body).encode('utf-8')
        req = urlreq.Request(self._endpoint(), data, headers=headers, method="POST")
        try:
            with urlreq.urlopen(req, timeout=self.timeout_s) as resp:
                raw = resp.read()
        except urlerr.HTTPError as e:
            raise AnalysisFailure(f"{self.engine} HTTP {e.code}: {e.read().decode('utf-8', errors='replace')}") from None
        except (urlerr.URLError, OSError) as e:
            raise AnalysisFailure(f"{self.engine} request failed: {e}") from None
        try:
            parsed = json.loads(raw.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise AnalysisFailure(f"{self.engine} returned invalid JSON: {e}") from None
        if not isinstance(parsed, dict):
            raise AnalysisFailure(f"{self.engine} returned an unexpected payload")
        return parsed

    @staticmethod
    def _extract_text(engine: str, payload: Dict[str, Any]) -> Optional[str]:
        if engine == "ollama":
            message = payload.get("message") or {}
            if not isinstance(message, dict):
                raise AnalysisFailure(f"{engine} reply has an unexpected 'message' field")
            return message.get("content")
        choices = payload.get("choices") or []
        if not isinstance(choices, list):
            raise AnalysisFailure(f"{engine} reply has an unexpected 'choices' field")
        if not choices:
            return None
        last = choices[-1]
        if not isinstance(last, dict):
            raise AnalysisFailure(f"{engine} reply has an unexpected choice entry")
        message = last.get("message") or {}
        if not isinstance(message, dict):
            raise AnalysisFailure(f"{engine} reply has an unexpected 'message' field")
        return message.get("content") or last.get("content") or last.get("text")

    def reflect_on(self, request: str, system_role_content: str) -> str:
        """
        Ask the engine about ``request`` and return its text.

        Raises:
            AnalysisFailure: On transport errors or an empty reply.
        """
        if not request.strip():
            raise AnalysisFailure("empty analysis request")
        payload = self._post(self._payload(request.strip(), system_role_content))
        text = self._extract_text(self.engine, payload)
        if not text or not str(text).strip():
            raise AnalysisFailure(f"{self.engine} returned no analysis text")
        return str(text).strip()


def analyze_signal(
    client: Optional[AnalysisClient],
    signal: DetectedSignal,
    location: str,
    logger: Optional[logging.Logger] = None,
) -> Optional[str]:
    """Best-effort annotation: returns None when disabled or when the call fails."""

    if client is None:
        return None
    metadata = signal.to_dict()
    metadata.pop("ai_analysis", None)
    try:
        return client.reflect_on(json.dumps(metadata), system_prompt(location))
    except AnalysisFailure as exc:
        if logger is not None:
            logger.warning(
                "Signal analysis failed for %s Hz: %s",
                signal.freq_hz,
                exc,
                extra={"freq_hz": signal.freq_hz, "error_type": "analysis_failure"},
            )
        return None
