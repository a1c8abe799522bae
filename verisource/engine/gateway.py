"""
Detection Engine Gateway

Contract wrapper around the external media-forensics / fact-check engine.

The engine is a black box: it receives the normalized input and returns a
structured result. The gateway measures wall-clock time for each call and
maps every failure (HTTP error, transport error, timeout, malformed body)
to EngineFailure. There are no retries; each request calls the engine at
most once.

Engine response shape:
    {
        "overall_confidence": 87.5,
        "verdict": "authentic",
        "rationale": ["No splicing artifacts", "..."],
        "processing_time_ms": 1520,
        "algorithms": [...],          # opaque
        "metadata": {...},            # opaque
        "evidence": [{"publisher_id": "snopes", "stance": "refutes", ...}]
    }
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from verisource.errors import EngineFailure

logger = logging.getLogger(__name__)

_KNOWN_FIELDS = {
    "overall_confidence",
    "verdict",
    "rationale",
    "processing_time_ms",
    "processing_time",
    "evidence",
}


@dataclass(frozen=True)
class DetectionResult:
    """Structured verdict returned by the engine. Never mutated."""
    overall_confidence: float
    verdict: str = "unverified"
    rationale: List[str] = field(default_factory=list)
    processing_time_ms: int = 0
    details: Dict[str, Any] = field(default_factory=dict)
    evidence: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], elapsed_ms: int = 0) -> "DetectionResult":
        """
        Build a result from an engine response body.

        Raises:
            EngineFailure: If the body is not a valid result
        """
        if not isinstance(data, dict):
            raise EngineFailure("Detection engine returned a malformed response")

        try:
            confidence = float(data["overall_confidence"])
        except (KeyError, TypeError, ValueError):
            raise EngineFailure("Detection engine response missing overall_confidence")
        if not 0 <= confidence <= 100:
            raise EngineFailure(f"Detection engine returned confidence {confidence} outside 0-100")

        reported = data.get("processing_time_ms", data.get("processing_time"))
        try:
            processing_time_ms = int(reported) if reported is not None else elapsed_ms
        except (TypeError, ValueError):
            processing_time_ms = elapsed_ms

        rationale = data.get("rationale") or []
        if isinstance(rationale, str):
            rationale = [rationale]

        evidence = data.get("evidence") or []
        if not isinstance(evidence, list):
            evidence = []

        return cls(
            overall_confidence=confidence,
            verdict=str(data.get("verdict") or "unverified"),
            rationale=[str(r) for r in rationale],
            processing_time_ms=processing_time_ms,
            details={k: v for k, v in data.items() if k not in _KNOWN_FIELDS},
            evidence=[e for e in evidence if isinstance(e, dict)],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_confidence": self.overall_confidence,
            "verdict": self.verdict,
            "rationale": list(self.rationale),
            "processing_time_ms": self.processing_time_ms,
            "details": dict(self.details),
            "evidence": list(self.evidence),
        }


class DetectionEngineGateway(ABC):
    """Interface the analysis pipeline depends on."""

    @abstractmethod
    async def analyze(
        self,
        input_type: str,
        payload: str,
        file_name: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> DetectionResult:
        """
        Analyze a URL or base64 blob.

        Raises:
            EngineFailure: On any engine-side failure
        """

    async def close(self) -> None:
        """Release resources. No-op by default."""


class HTTPDetectionEngine(DetectionEngineGateway):
    """
    Async HTTP client for a remote detection engine.

    Usage:
        engine = HTTPDetectionEngine("https://engine.internal/v1/analyze", api_key="...")

        result = await engine.analyze("image", base64_blob, file_name="photo.jpg")

        await engine.close()
    """

    def __init__(
        self,
        url: str,
        api_key: Optional[str] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize engine client.

        Args:
            url: Engine analyze endpoint
            api_key: Bearer token for the engine (optional)
            timeout: Upper bound in seconds for a single call
            transport: httpx transport override (tests)
        """
        self.url = url
        self.timeout = timeout

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self._client = httpx.AsyncClient(
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )
        self._closed = False

    async def analyze(
        self,
        input_type: str,
        payload: str,
        file_name: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> DetectionResult:
        if self._closed:
            raise EngineFailure("Detection engine client has been closed")

        body = {
            "input_type": input_type,
            "payload": payload,
            "file_name": file_name,
            "options": options or {},
        }

        start = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self._client.post(self.url, json=body),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Detection engine timed out after {self.timeout}s")
            raise EngineFailure(f"Detection engine timed out after {self.timeout}s")
        except httpx.TimeoutException as e:
            logger.error(f"Detection engine timed out: {e}")
            raise EngineFailure(f"Detection engine timed out after {self.timeout}s")
        except httpx.HTTPError as e:
            logger.error(f"Detection engine request failed: {e}")
            raise EngineFailure("Detection engine unreachable")

        elapsed_ms = int((time.perf_counter() - start) * 1000)

        if response.status_code >= 400:
            logger.error(
                f"Detection engine returned HTTP {response.status_code}: {response.text[:200]}"
            )
            raise EngineFailure(
                f"Detection engine returned HTTP {response.status_code}",
                details={"status_code": response.status_code},
            )

        try:
            data = response.json()
        except ValueError:
            raise EngineFailure("Detection engine returned a malformed response")

        result = DetectionResult.from_dict(data, elapsed_ms=elapsed_ms)
        logger.debug(
            f"Detection engine finished in {elapsed_ms}ms "
            f"(engine reported {result.processing_time_ms}ms)"
        )
        return result

    async def close(self) -> None:
        if not self._closed:
            await self._client.aclose()
            self._closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
