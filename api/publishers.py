"""
Publisher Registry API

Read-only views over the publisher credibility catalog.

Endpoints:
- GET /api/publishers - Catalog, optionally filtered (region, language, type, q)
- GET /api/publishers/fact-checkers - Ranked fact-checkers
- GET /api/publishers/news - Ranked news sources
- GET /api/publishers/government - Ranked government sources
- GET /api/publishers/{publisher_id} - Single publisher
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel

from verisource.registry import Publisher, PublisherRegistry, PublisherType

router = APIRouter(prefix="/api/publishers", tags=["Publishers"])

PUBLISHER_TYPE_PATTERN = "^(" + "|".join(t.value for t in PublisherType) + ")$"


class PublisherResponse(BaseModel):
    id: str
    name: str
    weight: float
    region: str
    lang: str
    type: str
    url: Optional[str]
    description: Optional[str]

    @classmethod
    def from_publisher(cls, publisher: Publisher) -> "PublisherResponse":
        return cls(**publisher.to_dict())


def get_registry(request: Request) -> PublisherRegistry:
    return request.app.state.registry


def _respond(publishers: List[Publisher]) -> List[PublisherResponse]:
    return [PublisherResponse.from_publisher(p) for p in publishers]


@router.get("", response_model=List[PublisherResponse])
def list_publishers(
    region: Optional[str] = Query(None, max_length=20),
    language: Optional[str] = Query(None, max_length=10),
    type: Optional[str] = Query(None, pattern=PUBLISHER_TYPE_PATTERN),
    q: Optional[str] = Query(None, max_length=100),
    registry: PublisherRegistry = Depends(get_registry),
):
    """
    List publishers, highest weight first.

    Filters combine; region and language also match "global" / "multi".
    """
    publishers = registry.search(q) if q else registry.all_publishers()

    if region:
        allowed = {p.id for p in registry.by_region(region)}
        publishers = [p for p in publishers if p.id in allowed]
    if language:
        allowed = {p.id for p in registry.by_language(language)}
        publishers = [p for p in publishers if p.id in allowed]
    if type:
        publishers = [p for p in publishers if p.type == PublisherType(type)]

    return _respond(publishers)


@router.get("/fact-checkers", response_model=List[PublisherResponse])
def list_fact_checkers(
    region: Optional[str] = Query(None, max_length=20),
    language: Optional[str] = Query(None, max_length=10),
    registry: PublisherRegistry = Depends(get_registry),
):
    return _respond(registry.fact_checkers(region=region, language=language))


@router.get("/news", response_model=List[PublisherResponse])
def list_news_sources(
    region: Optional[str] = Query(None, max_length=20),
    language: Optional[str] = Query(None, max_length=10),
    registry: PublisherRegistry = Depends(get_registry),
):
    return _respond(registry.news_sources(region=region, language=language))


@router.get("/government", response_model=List[PublisherResponse])
def list_government_sources(
    region: Optional[str] = Query(None, max_length=20),
    registry: PublisherRegistry = Depends(get_registry),
):
    return _respond(registry.government_sources(region=region))


@router.get("/{publisher_id}", response_model=PublisherResponse)
def get_publisher(
    publisher_id: str,
    registry: PublisherRegistry = Depends(get_registry),
):
    publisher = registry.lookup(publisher_id)
    if publisher is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Publisher not found",
        )
    return PublisherResponse.from_publisher(publisher)
