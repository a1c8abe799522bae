"""
Analysis Request Pipeline

Orchestrates one analysis request:

1. Validate input (exactly one of source_url / base64_payload)
2. Caller identity is resolved upstream; invalid credentials arrive anonymous
3. Resolve plan (anonymous callers are free tier)
4. Quota admission (authenticated callers only)
5. Call the detection engine, timed and timeout-bounded
6. Persist the report (authenticated callers only, best-effort)
7. Commit quota with a conditional increment
8. Shape the response

Steps 6 and 7 share one transaction. The report is flushed first; the
quota increment runs after it whether or not the flush succeeded. If the
increment matches no row, a concurrent request consumed the last unit of
quota, so the transaction (report included) is rolled back and the request
is denied.

No database connection is held while the engine runs.
"""

import asyncio
import base64
import binascii
import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from verisource.database.models import AnalysisReport, InputType, PlanTier
from verisource.engine.gateway import DetectionEngineGateway, DetectionResult
from verisource.errors import (
    AccountSuspended,
    EngineFailure,
    PayloadTooLarge,
    PersistenceFailure,
    QuotaExceeded,
    ValidationError,
)
from verisource.quota.ledger import Denied, QuotaLedger, limits_for
from verisource.registry.publishers import PublisherRegistry
from verisource.registry.scoring import rank_evidence, weighted_consensus

logger = logging.getLogger(__name__)

SENSITIVITY_LEVELS = ("low", "medium", "high")


class RequestState(enum.Enum):
    """Lifecycle of a single analysis request."""
    RECEIVED = "received"
    VALIDATED = "validated"
    DENIED = "denied"
    ADMITTED = "admitted"
    ENGINE_CALLED = "engine_called"
    ENGINE_FAILED = "engine_failed"
    ENGINE_SUCCEEDED = "engine_succeeded"
    PERSISTED = "persisted"
    COMMITTED = "committed"
    RESPONDED = "responded"


# =============================================================================
# REQUEST / RESULT TYPES
# =============================================================================

@dataclass
class AnalysisOptions:
    premium: bool = False
    algorithms: List[str] = field(default_factory=list)
    sensitivity: str = "medium"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "premium": self.premium,
            "algorithms": list(self.algorithms),
            "sensitivity": self.sensitivity,
        }


@dataclass
class AnalysisRequest:
    """Normalized analysis input."""
    input_type: InputType
    source_url: Optional[str] = None
    base64_payload: Optional[str] = None
    file_name: Optional[str] = None
    file_hash: Optional[str] = None
    language: str = "en"
    options: AnalysisOptions = field(default_factory=AnalysisOptions)

    def __post_init__(self):
        # Blank URLs count as absent; others are validated and stored stripped
        if self.source_url is not None:
            self.source_url = self.source_url.strip() or None

    @property
    def payload(self) -> str:
        return self.source_url or self.base64_payload or ""


@dataclass
class Requester:
    """Resolved caller. user_id is None for anonymous requests."""
    user_id: Optional[UUID] = None
    plan: PlanTier = PlanTier.FREE
    is_suspended: bool = False

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None


@dataclass
class AnalysisOutcome:
    """Successful pipeline result."""
    detection_summary: Dict[str, Any]
    processing_time: int
    plan: PlanTier
    report_id: Optional[UUID] = None
    quota_committed: bool = False
    states: List[RequestState] = field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "detection_summary": self.detection_summary,
            "processing_time": self.processing_time,
            "user_plan": self.plan.value,
        }


class _Trace:
    """Records state transitions for one request."""

    def __init__(self, request_id: str):
        self.request_id = request_id
        self.states: List[RequestState] = []
        self.advance(RequestState.RECEIVED)

    def advance(self, state: RequestState) -> None:
        self.states.append(state)
        logger.debug(f"[{self.request_id}] {state.value}")


# =============================================================================
# VALIDATION
# =============================================================================

def validate_request(request: AnalysisRequest, plan: PlanTier) -> None:
    """
    Check the request is well-formed for the caller's plan.

    Raises:
        ValidationError: Missing/duplicate data source, bad URL, bad base64
        PayloadTooLarge: Decoded payload exceeds the plan's file size limit
    """
    has_url = bool(request.source_url)
    has_blob = bool(request.base64_payload)

    if not has_url and not has_blob:
        raise ValidationError("Either sourceUrl or base64Data is required")
    if has_url and has_blob:
        raise ValidationError("Provide only one of sourceUrl or base64Data")

    if request.options.sensitivity not in SENSITIVITY_LEVELS:
        raise ValidationError(
            f"sensitivity must be one of {', '.join(SENSITIVITY_LEVELS)}"
        )

    if has_url:
        parsed = urlparse(request.source_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError("sourceUrl must be an absolute http(s) URL")
        return

    _check_payload_size(request.base64_payload, plan)


def _check_payload_size(base64_payload: str, plan: PlanTier) -> None:
    # Accept data URLs ("data:image/png;base64,....")
    data = base64_payload
    if base64_payload.startswith("data:"):
        _, separator, data = base64_payload.partition(",")
        if not separator:
            raise ValidationError("base64Data is not a valid data URL")

    max_bytes = limits_for(plan).max_payload_bytes
    # Estimate from the encoded length so oversized blobs are never decoded
    approx_size = (len(data) * 3) // 4
    if approx_size > max_bytes:
        raise PayloadTooLarge(size_bytes=approx_size, max_bytes=max_bytes)

    try:
        base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("base64Data is not valid base64")


# =============================================================================
# PIPELINE
# =============================================================================

class AnalysisPipeline:
    """
    Request-scoped orchestration over shared, stateless collaborators.

    Usage:
        pipeline = AnalysisPipeline(
            gateway=HTTPDetectionEngine(url),
            session_factory=get_session_factory(),
            registry=default_registry(),
        )
        outcome = await pipeline.run(request, Requester(user_id=..., plan=PlanTier.PRO))
    """

    def __init__(
        self,
        gateway: DetectionEngineGateway,
        session_factory: Callable[[], Session],
        registry: Optional[PublisherRegistry] = None,
        engine_timeout: float = 60.0,
    ):
        self.gateway = gateway
        self.session_factory = session_factory
        self.registry = registry
        self.engine_timeout = engine_timeout

    async def run(
        self,
        request: AnalysisRequest,
        requester: Requester,
        request_id: str = "-",
    ) -> AnalysisOutcome:
        """
        Execute the pipeline.

        Raises:
            ValidationError: Bad input (nothing else has happened)
            AccountSuspended: Suspended profile
            QuotaExceeded: Denied at admission, or lost the commit race
            EngineFailure: Engine errored or timed out (quota untouched)
        """
        trace = _Trace(request_id)
        plan = requester.plan

        validate_request(request, plan)
        trace.advance(RequestState.VALIDATED)

        if requester.is_suspended:
            trace.advance(RequestState.DENIED)
            raise AccountSuspended("This account has been suspended")

        if not requester.is_anonymous:
            self._admit(requester, trace)
        trace.advance(RequestState.ADMITTED)

        result, elapsed_ms = await self._call_engine(request, plan, trace)
        detection_summary = self._summarize(result)

        report_id = None
        quota_committed = False
        if not requester.is_anonymous:
            report_id, quota_committed = self._persist_and_commit(
                request, requester, detection_summary, result, elapsed_ms, trace
            )

        trace.advance(RequestState.RESPONDED)
        return AnalysisOutcome(
            detection_summary=detection_summary,
            processing_time=elapsed_ms,
            plan=plan,
            report_id=report_id,
            quota_committed=quota_committed,
            states=trace.states,
        )

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _admit(self, requester: Requester, trace: _Trace) -> None:
        db = self.session_factory()
        try:
            decision = QuotaLedger(db).check(requester.user_id, requester.plan)
        finally:
            db.close()

        if isinstance(decision, Denied):
            trace.advance(RequestState.DENIED)
            raise QuotaExceeded(current_usage=decision.current, limit=decision.limit)

    async def _call_engine(
        self,
        request: AnalysisRequest,
        plan: PlanTier,
        trace: _Trace,
    ) -> tuple:
        options = request.options.to_dict()
        options["premium"] = limits_for(plan).premium

        trace.advance(RequestState.ENGINE_CALLED)
        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(
                self.gateway.analyze(
                    request.input_type.value,
                    request.payload,
                    file_name=request.file_name,
                    options=options,
                ),
                timeout=self.engine_timeout,
            )
        except asyncio.TimeoutError:
            trace.advance(RequestState.ENGINE_FAILED)
            logger.error(f"[{trace.request_id}] Detection engine timed out after {self.engine_timeout}s")
            raise EngineFailure(f"Detection engine timed out after {self.engine_timeout}s")
        except EngineFailure as e:
            trace.advance(RequestState.ENGINE_FAILED)
            logger.error(f"[{trace.request_id}] Detection engine failed: {e}")
            raise
        except Exception as e:
            trace.advance(RequestState.ENGINE_FAILED)
            logger.error(f"[{trace.request_id}] Detection engine raised {type(e).__name__}: {e}")
            raise EngineFailure("Detection engine failed unexpectedly") from e

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        trace.advance(RequestState.ENGINE_SUCCEEDED)
        return result, elapsed_ms

    def _summarize(self, result: DetectionResult) -> Dict[str, Any]:
        summary = result.to_dict()
        if self.registry is not None and result.evidence:
            ranked = rank_evidence(result.evidence, self.registry)
            consensus = weighted_consensus(result.evidence, self.registry)
            summary["credibility"] = {
                "ranked_evidence": [r.to_dict() for r in ranked],
                "consensus": consensus.to_dict(),
            }
        return summary

    def _persist_and_commit(
        self,
        request: AnalysisRequest,
        requester: Requester,
        detection_summary: Dict[str, Any],
        result: DetectionResult,
        elapsed_ms: int,
        trace: _Trace,
    ) -> tuple:
        db = self.session_factory()
        report_id = None
        try:
            report = AnalysisReport(
                user_id=requester.user_id,
                input_type=request.input_type,
                source_url=request.source_url,
                file_hash=request.file_hash,
                language=request.language,
                detection_summary=detection_summary,
                confidence=int(round(result.overall_confidence)),
                processing_ms=elapsed_ms,
            )
            try:
                db.add(report)
                db.flush()
                report_id = report.id
                trace.advance(RequestState.PERSISTED)
            except SQLAlchemyError as e:
                db.rollback()
                # The quota commit below must not retry the failed insert
                if report in db:
                    db.expunge(report)
                failure = PersistenceFailure(f"Report insert failed: {e}")
                logger.warning(f"[{trace.request_id}] {failure.error}: {failure.message}")

            try:
                committed = QuotaLedger(db).commit(requester.user_id, requester.plan)
            except SQLAlchemyError as e:
                db.rollback()
                logger.warning(
                    f"[{trace.request_id}] {PersistenceFailure.error}: quota commit failed: {e}"
                )
                return None, False

            if not committed:
                db.rollback()
                limit = limits_for(requester.plan).daily_limit
                trace.advance(RequestState.DENIED)
                raise QuotaExceeded(current_usage=limit, limit=limit)

            try:
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                logger.warning(f"[{trace.request_id}] {PersistenceFailure.error}: commit failed: {e}")
                return None, False

            trace.advance(RequestState.COMMITTED)
            return report_id, True
        finally:
            db.close()
