"""
Publisher Credibility Registry

Immutable catalog of known information sources with credibility weights.
Used to rank fact-check evidence by how much each source can be trusted.

Filtering rules:
- Region filters match the exact region OR publishers marked "global"
- Language filters match the exact language OR publishers marked "multi"
- Ranked queries sort descending by weight; ties keep catalog order

The registry is built once and handed to whatever needs it. It is never
mutated after construction, so concurrent readers need no locking.
"""

import enum
from dataclasses import dataclass, asdict
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

GLOBAL_REGION = "global"
MULTI_LANGUAGE = "multi"


class PublisherType(enum.Enum):
    """Kind of information source."""
    FACT_CHECKER = "fact_checker"
    NEWS = "news"
    GOVERNMENT = "government"
    ACADEMIC = "academic"
    INTERNATIONAL = "international"


@dataclass(frozen=True)
class Publisher:
    """A single catalog entry."""
    id: str
    name: str
    weight: float
    region: str
    lang: str
    type: PublisherType
    url: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        return data


PUBLISHERS = (
    # International fact-checkers
    Publisher(
        id="ifcn_generic",
        name="IFCN Network",
        weight=1.0,
        region=GLOBAL_REGION,
        lang=MULTI_LANGUAGE,
        url="https://www.poynter.org/ifcn/",
        description="International Fact-Checking Network",
        type=PublisherType.INTERNATIONAL,
    ),
    Publisher(
        id="snopes",
        name="Snopes",
        weight=0.95,
        region=GLOBAL_REGION,
        lang="en",
        url="https://www.snopes.com/",
        description="Fact-checking website",
        type=PublisherType.FACT_CHECKER,
    ),
    Publisher(
        id="factcheck_org",
        name="FactCheck.org",
        weight=0.92,
        region=GLOBAL_REGION,
        lang="en",
        url="https://www.factcheck.org/",
        description="Nonpartisan fact-checking organization",
        type=PublisherType.FACT_CHECKER,
    ),

    # Bangladesh fact-checkers
    Publisher(
        id="rumorscanner_bd",
        name="Rumor Scanner Bangladesh",
        weight=0.9,
        region="BD",
        lang="bn",
        url="https://www.rumorscanner.com/",
        description="Leading fact-checking organization in Bangladesh",
        type=PublisherType.FACT_CHECKER,
    ),
    Publisher(
        id="factwatch_ulab",
        name="FactWatch (ULAB)",
        weight=0.85,
        region="BD",
        lang="bn",
        url="https://factwatch.org/",
        description="University of Liberal Arts Bangladesh fact-checking initiative",
        type=PublisherType.FACT_CHECKER,
    ),
    Publisher(
        id="boom_bangladesh",
        name="BOOM Bangladesh",
        weight=0.82,
        region="BD",
        lang="bn",
        url="https://www.boomlive.in/bangladesh",
        description="BOOM fact-checking for Bangladesh",
        type=PublisherType.FACT_CHECKER,
    ),

    # Bangladesh news
    Publisher(
        id="prothom_alo",
        name="Prothom Alo",
        weight=0.88,
        region="BD",
        lang="bn",
        url="https://www.prothomalo.com/",
        description="Leading Bengali daily newspaper",
        type=PublisherType.NEWS,
    ),
    Publisher(
        id="daily_star",
        name="The Daily Star",
        weight=0.86,
        region="BD",
        lang="en",
        url="https://www.thedailystar.net/",
        description="Leading English daily in Bangladesh",
        type=PublisherType.NEWS,
    ),
    Publisher(
        id="dhaka_tribune",
        name="Dhaka Tribune",
        weight=0.83,
        region="BD",
        lang="en",
        url="https://www.dhakatribune.com/",
        description="English daily newspaper",
        type=PublisherType.NEWS,
    ),
    Publisher(
        id="bdnews24",
        name="bdnews24.com",
        weight=0.81,
        region="BD",
        lang=MULTI_LANGUAGE,
        url="https://bdnews24.com/",
        description="Online news portal",
        type=PublisherType.NEWS,
    ),

    # Government
    Publisher(
        id="bbs_gov_bd",
        name="Bangladesh Bureau of Statistics",
        weight=0.95,
        region="BD",
        lang=MULTI_LANGUAGE,
        url="https://bbs.gov.bd/",
        description="Official statistics agency of Bangladesh",
        type=PublisherType.GOVERNMENT,
    ),
    Publisher(
        id="mof_gov_bd",
        name="Ministry of Finance, Bangladesh",
        weight=0.92,
        region="BD",
        lang=MULTI_LANGUAGE,
        url="https://mof.gov.bd/",
        description="Ministry of Finance official website",
        type=PublisherType.GOVERNMENT,
    ),

    # International broadcasters
    Publisher(
        id="bbc_bangla",
        name="BBC Bangla",
        weight=0.94,
        region="BD",
        lang="bn",
        url="https://www.bbc.com/bangla",
        description="BBC Bengali service",
        type=PublisherType.INTERNATIONAL,
    ),
    Publisher(
        id="dw_bangla",
        name="Deutsche Welle Bangla",
        weight=0.89,
        region="BD",
        lang="bn",
        url="https://www.dw.com/bn",
        description="Deutsche Welle Bengali service",
        type=PublisherType.INTERNATIONAL,
    ),
    Publisher(
        id="voa_bangla",
        name="Voice of America Bangla",
        weight=0.87,
        region="BD",
        lang="bn",
        url="https://www.voabangla.com/",
        description="VOA Bengali service",
        type=PublisherType.INTERNATIONAL,
    ),

    # Academic and research
    Publisher(
        id="transparency_bd",
        name="Transparency International Bangladesh",
        weight=0.88,
        region="BD",
        lang=MULTI_LANGUAGE,
        url="https://www.ti-bangladesh.org/",
        description="Anti-corruption organization",
        type=PublisherType.ACADEMIC,
    ),
    Publisher(
        id="cpd_bd",
        name="Centre for Policy Dialogue",
        weight=0.85,
        region="BD",
        lang=MULTI_LANGUAGE,
        url="https://cpd.org.bd/",
        description="Policy research institute",
        type=PublisherType.ACADEMIC,
    ),
)


def _by_weight(publishers: Iterable[Publisher]) -> List[Publisher]:
    # sorted() is stable, so equal weights keep catalog order
    return sorted(publishers, key=lambda p: -p.weight)


class PublisherRegistry:
    """
    Read-only lookups over a publisher catalog.

    Usage:
        registry = PublisherRegistry(PUBLISHERS)

        registry.lookup("snopes")
        registry.fact_checkers(region="BD", language="bn")
    """

    def __init__(self, publishers: Iterable[Publisher]):
        catalog = tuple(publishers)
        index: Dict[str, Publisher] = {}

        for publisher in catalog:
            if publisher.id in index:
                raise ValueError(f"Duplicate publisher id: {publisher.id}")
            if not 0.0 <= publisher.weight <= 1.0:
                raise ValueError(
                    f"Publisher {publisher.id} has weight {publisher.weight}, expected [0, 1]"
                )
            index[publisher.id] = publisher

        self._catalog = catalog
        self._index = MappingProxyType(index)

    def __len__(self) -> int:
        return len(self._catalog)

    def __iter__(self) -> Iterator[Publisher]:
        return iter(self._catalog)

    def __contains__(self, publisher_id: object) -> bool:
        return publisher_id in self._index

    # -------------------------------------------------------------------------
    # Unordered filters
    # -------------------------------------------------------------------------

    def lookup(self, publisher_id: str) -> Optional[Publisher]:
        """Get a publisher by id, or None when unknown."""
        return self._index.get(publisher_id)

    def by_region(self, region: str) -> List[Publisher]:
        return [p for p in self._catalog if _matches_region(p, region)]

    def by_language(self, language: str) -> List[Publisher]:
        return [p for p in self._catalog if _matches_language(p, language)]

    def by_type(self, publisher_type: Union[PublisherType, str]) -> List[Publisher]:
        publisher_type = PublisherType(publisher_type)
        return [p for p in self._catalog if p.type == publisher_type]

    # -------------------------------------------------------------------------
    # Ranked queries
    # -------------------------------------------------------------------------

    def fact_checkers(
        self,
        region: Optional[str] = None,
        language: Optional[str] = None,
    ) -> List[Publisher]:
        """Fact-checkers and international outlets, highest weight first."""
        return self._ranked(
            {PublisherType.FACT_CHECKER, PublisherType.INTERNATIONAL}, region, language
        )

    def news_sources(
        self,
        region: Optional[str] = None,
        language: Optional[str] = None,
    ) -> List[Publisher]:
        """News and international outlets, highest weight first."""
        return self._ranked(
            {PublisherType.NEWS, PublisherType.INTERNATIONAL}, region, language
        )

    def government_sources(self, region: Optional[str] = None) -> List[Publisher]:
        """
        Government sources, highest weight first.

        Unlike the other region filters this is an exact match: a national
        statistics office is never "global".
        """
        matches = [p for p in self._catalog if p.type == PublisherType.GOVERNMENT]
        if region:
            matches = [p for p in matches if p.region == region]
        return _by_weight(matches)

    def all_publishers(self) -> List[Publisher]:
        return _by_weight(self._catalog)

    def search(self, query: str) -> List[Publisher]:
        """Case-insensitive substring match on name and description."""
        needle = query.lower()
        matches = [
            p for p in self._catalog
            if needle in p.name.lower() or needle in (p.description or "").lower()
        ]
        return _by_weight(matches)

    def _ranked(
        self,
        types: set,
        region: Optional[str],
        language: Optional[str],
    ) -> List[Publisher]:
        matches = [p for p in self._catalog if p.type in types]
        if region:
            matches = [p for p in matches if _matches_region(p, region)]
        if language:
            matches = [p for p in matches if _matches_language(p, language)]
        return _by_weight(matches)


def _matches_region(publisher: Publisher, region: str) -> bool:
    return publisher.region == region or publisher.region == GLOBAL_REGION


def _matches_language(publisher: Publisher, language: str) -> bool:
    return publisher.lang == language or publisher.lang == MULTI_LANGUAGE


def default_registry() -> PublisherRegistry:
    """Build a registry over the stock catalog."""
    return PublisherRegistry(PUBLISHERS)
