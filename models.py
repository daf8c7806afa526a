from datetime import datetime, timezone

# In-memory shapes for the trending-products response. Nothing here is
# persisted; records are built fresh for every request.

MAX_RELATED_QUERIES = 3


class TimelinePoint:
    """A single interest-over-time sample."""
    def __init__(self, date, value):
        self.date = date
        self.value = value

    def to_dict(self):
        return {'date': self.date, 'value': self.value}


class TrendRecord:
    """Normalized trend data for one search term."""
    def __init__(self, title, traffic=0, related_queries=None, timeline_data=None):
        self.title = title
        self.traffic = max(0, int(traffic or 0))
        self.related_queries = list(related_queries or [])[:MAX_RELATED_QUERIES]
        self.timeline_data = list(timeline_data or [])

    def to_dict(self):
        return {
            'title': self.title,
            'traffic': self.traffic,
            'relatedQueries': list(self.related_queries),
            'timelineData': [point.to_dict() for point in self.timeline_data],
        }

    def __repr__(self):
        return f"TrendRecord(title={self.title!r}, traffic={self.traffic})"


class TrendReport:
    """Result of one aggregation pass: records, per-term errors and a timestamp."""
    def __init__(self, trends, errors=None, explore_url=None):
        self.trends = trends
        self.errors = errors or []
        self.explore_url = explore_url
        self.last_updated = datetime.now(timezone.utc)

    def to_dict(self):
        return {
            'trends': [record.to_dict() for record in self.trends],
            'lastUpdated': self.last_updated.isoformat(),
            'errors': list(self.errors),
            'exploreUrl': self.explore_url,
        }
