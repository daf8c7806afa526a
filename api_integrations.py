import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

SERPAPI_URL = "https://serpapi.com/search.json"


class TrendsAPIError(Exception):
    """Base class for failures talking to the trends provider."""
    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, str]:
        payload = {'error': self.message}
        if self.details:
            payload['details'] = self.details
        return payload


class UpstreamFailure(TrendsAPIError):
    """The provider could not be reached, answered non-2xx, or reported an error."""


class ParseFailure(TrendsAPIError):
    """The provider answered with a payload we cannot read."""


class SerpApiTrendsClient:
    """Thin client for the SerpAPI Google Trends engines."""

    def __init__(self, api_key: str, base_url: str = SERPAPI_URL, geo: str = "US",
                 date_range: str = "today 12-m", timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.base_url = base_url
        self.geo = geo
        self.date_range = date_range
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config) -> "SerpApiTrendsClient":
        return cls(
            api_key=config['SERPAPI_KEY'],
            base_url=config['SERPAPI_URL'],
            geo=config['TRENDS_GEO'],
            date_range=config['TRENDS_DATE'],
            timeout=config['UPSTREAM_TIMEOUT'],
        )

    def _call_serp(self, params: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            logger.error("SerpAPI key not configured")
            raise UpstreamFailure("Trends provider is not configured", "SERPAPI_KEY is empty")

        params = dict(params, api_key=self.api_key, geo=self.geo)
        engine = params.get('engine')
        try:
            response = self.session.get(self.base_url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Request to {engine} failed: {str(e)}")
            raise UpstreamFailure("Error fetching trend data", str(e)) from e

        if not response.ok:
            logger.error(f"{engine} returned HTTP {response.status_code}")
            raise UpstreamFailure(
                "Error fetching trend data",
                f"Upstream responded with HTTP {response.status_code}",
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Could not decode {engine} response: {str(e)}")
            raise ParseFailure("Error parsing trend data", str(e)) from e

        if not isinstance(data, dict):
            raise ParseFailure("Error parsing trend data", f"Expected a JSON object, got {type(data).__name__}")

        if data.get('error'):
            logger.error(f"{engine} reported an error: {data['error']}")
            raise UpstreamFailure("Error fetching trend data", str(data['error']))

        return data

    def interest_over_time(self, term: str) -> Dict[str, Any]:
        logger.info(f"Fetching interest over time for: {term}")
        return self._call_serp({
            "engine": "google_trends",
            "data_type": "TIMESERIES",
            "q": term,
            "date": self.date_range,
        })

    def related_queries(self, term: str) -> Dict[str, Any]:
        logger.info(f"Fetching related queries for: {term}")
        return self._call_serp({
            "engine": "google_trends",
            "data_type": "RELATED_QUERIES",
            "q": term,
            "date": self.date_range,
        })

    def trending_now(self) -> Dict[str, Any]:
        logger.info(f"Fetching trending searches for region: {self.geo}")
        return self._call_serp({"engine": "google_trends_trending_now"})


# For direct testing
if __name__ == "__main__":
    import json
    import sys

    from app import setup_logging
    from config import Config
    from trends import fetch_trending_products

    setup_logging(Config.LOG_LEVEL, '')
    client = SerpApiTrendsClient(
        api_key=Config.SERPAPI_KEY,
        base_url=Config.SERPAPI_URL,
        geo=Config.TRENDS_GEO,
        date_range=Config.TRENDS_DATE,
        timeout=Config.UPSTREAM_TIMEOUT,
    )
    report = fetch_trending_products(client, sys.argv[1:], max_workers=Config.MAX_WORKERS)
    print(json.dumps(report.to_dict(), indent=2))
