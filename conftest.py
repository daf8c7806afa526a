import pytest

from api_integrations import UpstreamFailure
from app import create_app
from config import TestingConfig
from rate_limiter import RateLimiter


def timeseries_payload(values, start=1704067200):
    """Build a SerpAPI TIMESERIES payload with one weekly point per value."""
    return {
        "interest_over_time": {
            "timeline_data": [
                {
                    "date": f"Week {i + 1}",
                    "timestamp": str(start + i * 7 * 86400),
                    "values": [{"value": str(v), "extracted_value": v}],
                }
                for i, v in enumerate(values)
            ]
        }
    }


def related_payload(top=(), rising=()):
    return {
        "related_queries": {
            "top": [{"query": q, "value": "100"} for q in top],
            "rising": [{"query": q, "value": "Breakout"} for q in rising],
        }
    }


class FakeTrendsClient:
    """In-memory stand-in for SerpApiTrendsClient."""

    geo = "US"

    def __init__(self, timelines=None, related=None, trending=None):
        self.timelines = timelines or {}
        self.related = related or {}
        self.trending = trending
        self.calls = []

    def interest_over_time(self, term):
        self.calls.append(("interest_over_time", term))
        result = self.timelines.get(term)
        if isinstance(result, Exception):
            raise result
        if result is None:
            raise UpstreamFailure("Error fetching trend data", f"No data for {term}")
        return result

    def related_queries(self, term):
        self.calls.append(("related_queries", term))
        result = self.related.get(term)
        if isinstance(result, Exception):
            raise result
        if result is None:
            raise UpstreamFailure("Error fetching related queries", f"No related queries for {term}")
        return result

    def trending_now(self):
        self.calls.append(("trending_now", None))
        if isinstance(self.trending, Exception):
            raise self.trending
        return self.trending or {"trending_searches": []}


@pytest.fixture
def trends_client():
    return FakeTrendsClient(
        timelines={
            "coffee": timeseries_payload([40, 50, 60]),
            "tea": timeseries_payload([70, 80, 90]),
            "shoes": timeseries_payload([10, 20]),
        },
        related={
            "coffee": related_payload(top=["coffee beans", "coffee maker", "iced coffee", "coffee shop"]),
            "tea": related_payload(top=["green tea"], rising=["matcha tea", "bubble tea"]),
        },
        trending={
            "trending_searches": [
                {"query": "air fryer", "search_volume": 5000, "trend_breakdown": ["air fryer recipes"]},
                {"query": "standing desk", "search_volume": 20000, "trend_breakdown": []},
            ]
        },
    )


@pytest.fixture
def rate_limiter():
    return RateLimiter(limit=10, window=60, maxsize=100)


@pytest.fixture
def app(trends_client, rate_limiter):
    return create_app(TestingConfig, trends_client=trends_client, rate_limiter=rate_limiter)


@pytest.fixture
def client(app):
    return app.test_client()
