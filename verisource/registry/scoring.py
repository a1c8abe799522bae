"""
Credibility Scoring

Ranks detection-engine evidence by publisher credibility and derives a
weighted consensus verdict.

Evidence items are plain dicts as returned by the engine:

    {"publisher_id": "snopes", "stance": "refutes", "confidence": 88,
     "title": "...", "url": "..."}

Verdict rules, applied in order:
1. Fewer than 2 items: unverified (30)
2. At least 2 high-credibility sources (weight >= 0.85):
   - strict supporting majority: true, min(95, 75 + 5n)
   - strict refuting majority: false, min(95, 75 + 5n)
   - supporting, refuting and neutral all present: misleading (70)
3. Still unverified with at least 3 items, weighted ratios:
   - support >= 0.7: true, min(95, 60 + 40r)
   - refute >= 0.7: false, min(95, 60 + 40r)
   - support >= 0.3 and refute >= 0.3: misleading (65)
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from .publishers import PublisherRegistry

logger = logging.getLogger(__name__)

DEFAULT_PUBLISHER_WEIGHT = 0.5
HIGH_CREDIBILITY_THRESHOLD = 0.85
CONSENSUS_THRESHOLD = 0.7
MIXED_EVIDENCE_THRESHOLD = 0.3


class Stance(enum.Enum):
    SUPPORTS = "supports"
    REFUTES = "refutes"
    NEUTRAL = "neutral"

    @classmethod
    def parse(cls, value: Any) -> "Stance":
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.NEUTRAL


@dataclass(frozen=True)
class RankedEvidence:
    """An evidence item resolved against the registry."""
    publisher_id: str
    publisher_name: str
    weight: float
    stance: Stance
    confidence: float
    known_publisher: bool
    title: str = ""
    url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "publisher_id": self.publisher_id,
            "publisher_name": self.publisher_name,
            "weight": self.weight,
            "stance": self.stance.value,
            "confidence": self.confidence,
            "known_publisher": self.known_publisher,
            "title": self.title,
            "url": self.url,
        }


@dataclass(frozen=True)
class Consensus:
    """Weighted consensus over a set of evidence."""
    verdict: str
    confidence: float
    support_ratio: float = 0.0
    refute_ratio: float = 0.0
    neutral_ratio: float = 0.0
    high_credibility_sources: int = 0
    total: int = 0
    rationale: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "verdict": self.verdict,
            "confidence": round(self.confidence, 2),
            "support_ratio": round(self.support_ratio, 4),
            "refute_ratio": round(self.refute_ratio, 4),
            "neutral_ratio": round(self.neutral_ratio, 4),
            "high_credibility_sources": self.high_credibility_sources,
            "total": self.total,
            "rationale": list(self.rationale),
        }


def rank_evidence(
    evidence: Sequence[Dict[str, Any]],
    registry: PublisherRegistry,
) -> List[RankedEvidence]:
    """
    Resolve evidence publishers and order by (weight desc, confidence desc).

    Unknown publishers get DEFAULT_PUBLISHER_WEIGHT. The sort is stable so
    identical inputs always produce identical rankings.
    """
    resolved = []
    for item in evidence:
        publisher_id = str(item.get("publisher_id") or item.get("source") or "")
        publisher = registry.lookup(publisher_id)

        try:
            confidence = float(item.get("confidence", 0) or 0)
        except (TypeError, ValueError):
            confidence = 0.0

        resolved.append(RankedEvidence(
            publisher_id=publisher_id,
            publisher_name=publisher.name if publisher else publisher_id,
            weight=publisher.weight if publisher else DEFAULT_PUBLISHER_WEIGHT,
            stance=Stance.parse(item.get("stance")),
            confidence=confidence,
            known_publisher=publisher is not None,
            title=str(item.get("title") or ""),
            url=str(item.get("url") or ""),
        ))

    unknown = [r.publisher_id for r in resolved if not r.known_publisher]
    if unknown:
        logger.debug(f"Evidence from unregistered publishers: {unknown}")

    return sorted(resolved, key=lambda r: (-r.weight, -r.confidence))


def weighted_consensus(
    evidence: Sequence[Dict[str, Any]],
    registry: PublisherRegistry,
) -> Consensus:
    """Derive a verdict from credibility-weighted evidence."""
    ranked = rank_evidence(evidence, registry)
    total = len(ranked)

    if total < 2:
        return Consensus(
            verdict="unverified",
            confidence=30,
            total=total,
            rationale=["Insufficient evidence available for verification"],
        )

    high = [r for r in ranked if r.weight >= HIGH_CREDIBILITY_THRESHOLD]
    support_ratio, refute_ratio, neutral_ratio = _weighted_ratios(ranked)

    verdict = "unverified"
    confidence = 50.0
    rationale: List[str] = []

    if len(high) >= 2:
        supporting = sum(1 for r in high if r.stance == Stance.SUPPORTS)
        refuting = sum(1 for r in high if r.stance == Stance.REFUTES)
        neutral = len(high) - supporting - refuting

        if supporting > refuting + neutral:
            verdict = "true"
            confidence = min(95, 75 + supporting * 5)
            rationale.append(f"{supporting} high-credibility sources support the claim")
        elif refuting > supporting + neutral:
            verdict = "false"
            confidence = min(95, 75 + refuting * 5)
            rationale.append(f"{refuting} high-credibility sources refute the claim")
        elif supporting and refuting and neutral:
            verdict = "misleading"
            confidence = 70
            rationale.append("High-credibility sources show mixed evidence")

    if verdict == "unverified" and total >= 3:
        if support_ratio >= CONSENSUS_THRESHOLD:
            verdict = "true"
            confidence = min(95, 60 + support_ratio * 40)
            rationale.append(f"Strong consensus supporting the claim ({support_ratio:.1%} weighted)")
        elif refute_ratio >= CONSENSUS_THRESHOLD:
            verdict = "false"
            confidence = min(95, 60 + refute_ratio * 40)
            rationale.append(f"Strong consensus refuting the claim ({refute_ratio:.1%} weighted)")

        if support_ratio >= MIXED_EVIDENCE_THRESHOLD and refute_ratio >= MIXED_EVIDENCE_THRESHOLD:
            verdict = "misleading"
            confidence = 65
            rationale.append("Significant evidence both supporting and refuting the claim")

    if verdict == "unverified":
        rationale.append("No credibility-weighted consensus")

    return Consensus(
        verdict=verdict,
        confidence=confidence,
        support_ratio=support_ratio,
        refute_ratio=refute_ratio,
        neutral_ratio=neutral_ratio,
        high_credibility_sources=len(high),
        total=total,
        rationale=rationale,
    )


def _weighted_ratios(ranked: Sequence[RankedEvidence]) -> tuple:
    total_weight = sum(r.weight for r in ranked)
    if total_weight <= 0:
        return 0.0, 0.0, 0.0

    support = sum(r.weight for r in ranked if r.stance == Stance.SUPPORTS)
    refute = sum(r.weight for r in ranked if r.stance == Stance.REFUTES)
    neutral = total_weight - support - refute
    return support / total_weight, refute / total_weight, neutral / total_weight
