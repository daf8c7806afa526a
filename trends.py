"""
Aggregation and normalization of trend data.

Turns raw provider payloads into ``TrendRecord`` objects and merges
per-term lookups into a single ``TrendReport``.
"""
import logging
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote

from api_integrations import ParseFailure, TrendsAPIError
from models import MAX_RELATED_QUERIES, TimelinePoint, TrendRecord, TrendReport

logger = logging.getLogger(__name__)

GOOGLE_TRENDS_EXPLORE_URL = "https://trends.google.com/trends/explore"

FALLBACK_TEMPLATES = [
    "{term} near me",
    "{term} price",
    "{term} reviews",
    "best {term}",
    "{term} how to",
    "{term} vs",
]


def _to_number(value: Any):
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        # "<1" and similar markers carry no usable magnitude
        digits = re.sub(r"[^\d]", "", value)
        if value.strip().startswith("<") or not digits:
            return 0
        return int(digits)
    return 0


def _point_date(entry: Dict[str, Any]) -> str:
    timestamp = entry.get("timestamp")
    if timestamp is not None:
        try:
            return datetime.fromtimestamp(int(timestamp), timezone.utc).date().isoformat()
        except (TypeError, ValueError, OverflowError):
            pass
    return str(entry.get("date", ""))


def normalize_timeline(payload: Dict[str, Any]) -> List[TimelinePoint]:
    """Extract the interest-over-time series from a TIMESERIES payload."""
    interest = payload.get("interest_over_time")
    if not isinstance(interest, dict):
        raise ParseFailure("Error parsing trend data", "Missing interest_over_time in response")
    timeline = interest.get("timeline_data")
    if not isinstance(timeline, list):
        raise ParseFailure("Error parsing trend data", "Missing timeline_data in response")

    points = []
    for entry in timeline:
        if not isinstance(entry, dict):
            raise ParseFailure("Error parsing trend data", "Malformed timeline entry")
        values = entry.get("values")
        first = values[0] if isinstance(values, list) and values and isinstance(values[0], dict) else {}
        value = first.get("extracted_value")
        if value is None:
            value = first.get("value")
        if value is not None and not isinstance(value, (int, float, str)):
            raise ParseFailure("Error parsing trend data", f"Malformed timeline value: {value!r}")
        value = _to_number(value)
        points.append(TimelinePoint(_point_date(entry), value))
    return points


def traffic_from_timeline(points: List[TimelinePoint]) -> int:
    if not points:
        return 0
    return max(0, round(sum(point.value for point in points) / len(points)))


def normalize_related_queries(payload: Dict[str, Any], term: str) -> List[str]:
    """Pick up to three related queries, preferring "top" over "rising"."""
    related = payload.get("related_queries")
    if not isinstance(related, dict):
        raise ParseFailure("Error parsing related queries", "Missing related_queries in response")

    queries = []
    seen = {term.strip().lower()}
    for bucket in ("top", "rising"):
        items = related.get(bucket) or []
        if not isinstance(items, list):
            raise ParseFailure("Error parsing related queries", f"Malformed '{bucket}' list")
        for item in items:
            if not isinstance(item, dict):
                continue
            query = item.get("query") or item.get("topic_title")
            if not isinstance(query, str) or not query.strip() or query.strip().lower() in seen:
                continue
            seen.add(query.strip().lower())
            queries.append(query)
            if len(queries) == MAX_RELATED_QUERIES:
                return queries
    return queries


def generate_fallback_queries(term: str, count: int = MAX_RELATED_QUERIES) -> List[str]:
    """Synthesize related phrases for a term when the provider has none."""
    return [template.format(term=term) for template in FALLBACK_TEMPLATES[:count]]


def fetch_term_trend(client, term: str) -> TrendRecord:
    """Fetch and normalize the timeline and related queries for one term."""
    timeline = normalize_timeline(client.interest_over_time(term))

    try:
        related = normalize_related_queries(client.related_queries(term), term)
    except TrendsAPIError as e:
        logger.warning(f"Related queries unavailable for '{term}', using fallback: {e.details or e.message}")
        related = []
    if not related:
        related = generate_fallback_queries(term)

    return TrendRecord(
        title=term,
        traffic=traffic_from_timeline(timeline),
        related_queries=related,
        timeline_data=timeline,
    )


def normalize_trending_now(payload: Dict[str, Any]) -> List[TrendRecord]:
    searches = payload.get("trending_searches")
    if not isinstance(searches, list):
        raise ParseFailure("Error parsing trend data", "Missing trending_searches in response")

    records = []
    for item in searches:
        if not isinstance(item, dict) or not isinstance(item.get("query"), str) or not item["query"]:
            continue
        title = item["query"]
        breakdown = item.get("trend_breakdown")
        breakdown = [
            q for q in (breakdown if isinstance(breakdown, list) else [])
            if isinstance(q, str) and q.lower() != title.lower()
        ]
        records.append(TrendRecord(
            title=title,
            traffic=_to_number(item.get("search_volume")),
            related_queries=breakdown,
        ))
    return records


def unique_terms(terms: Iterable[str]) -> List[str]:
    result = []
    for term in terms:
        term = (term or "").strip()
        if term and term not in result:
            result.append(term)
    return result


def explore_url(terms: List[str], geo: str = "US") -> Optional[str]:
    if not terms:
        return None
    encoded = ",".join(quote(term, safe="") for term in terms)
    return f"{GOOGLE_TRENDS_EXPLORE_URL}?q={encoded}&geo={quote(geo, safe='')}"


def fetch_trending_products(client, terms: Iterable[str], max_workers: int = 5) -> TrendReport:
    """
    Build a trend report for the given terms.

    With no terms the provider's "trending now" list is returned as-is.
    Otherwise each term is fetched concurrently; a failing term is reported
    in ``errors`` without affecting the others. If every term fails, the
    first failure is raised.
    """
    terms = unique_terms(terms)
    geo = getattr(client, "geo", "US")

    if not terms:
        records = normalize_trending_now(client.trending_now())
        records.sort(key=lambda record: record.traffic, reverse=True)
        logger.info(f"Returning {len(records)} trending searches")
        return TrendReport(records)

    results = {}
    failures = {}
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(terms)))) as executor:
        futures = {executor.submit(fetch_term_trend, client, term): term for term in terms}
        for future in as_completed(futures):
            term = futures[future]
            try:
                results[term] = future.result()
            except TrendsAPIError as e:
                logger.error(f"Error fetching trend data for '{term}': {e.details or e.message}")
                failures[term] = e

    if not results:
        raise failures[terms[0]]

    records = [results[term] for term in terms if term in results]
    records.sort(key=lambda record: record.traffic, reverse=True)
    errors = [
        dict(term=term, **failures[term].to_dict())
        for term in terms if term in failures
    ]
    logger.info(f"Returning {len(records)} product trends ({len(errors)} failed)")
    return TrendReport(records, errors=errors, explore_url=explore_url(terms, geo))
