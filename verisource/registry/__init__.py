"""
Publisher Registry Module

Static catalog of information sources with credibility weights, plus
evidence ranking and weighted-consensus scoring on top of it.

Usage:
    registry = default_registry()

    registry.fact_checkers(region="BD", language="bn")
    weighted_consensus(result.evidence, registry)
"""

from .publishers import (
    Publisher,
    PublisherType,
    PublisherRegistry,
    PUBLISHERS,
    GLOBAL_REGION,
    MULTI_LANGUAGE,
    default_registry,
)
from .scoring import (
    Stance,
    RankedEvidence,
    Consensus,
    rank_evidence,
    weighted_consensus,
    DEFAULT_PUBLISHER_WEIGHT,
    HIGH_CREDIBILITY_THRESHOLD,
)

__all__ = [
    # Catalog
    "Publisher",
    "PublisherType",
    "PublisherRegistry",
    "PUBLISHERS",
    "GLOBAL_REGION",
    "MULTI_LANGUAGE",
    "default_registry",
    # Scoring
    "Stance",
    "RankedEvidence",
    "Consensus",
    "rank_evidence",
    "weighted_consensus",
    "DEFAULT_PUBLISHER_WEIGHT",
    "HIGH_CREDIBILITY_THRESHOLD",
]
