import logging
import re
from typing import Dict, List, Optional

import requests

from flowplanner.core.categories import is_attraction
from flowplanner.models.domain import Candidate

logger = logging.getLogger(__name__)

_LAT_LON = re.compile(r"^\s*(-?\d{1,2}(?:\.\d+)?)\s*,\s*(-?\d{1,3}(?:\.\d+)?)\s*$")


class YelpVenueSearchTool:
    """
    VenueSearchTool implementation using the Yelp Fusion business search.
    Requires an API key from Yelp (set via env/config).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.yelp.com/v3",
        timeout: float = 8.0,
        limit: int = 10,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.limit = limit

    def build_params(
        self,
        location: str,
        category: str,
        term: Optional[str] = None,
        price_filter: Optional[str] = None,
    ) -> Dict[str, str]:
        params: Dict[str, str] = {
            "categories": category,
            "limit": str(self.limit),
            "sort_by": "rating",
        }
        match = _LAT_LON.match(location)
        if match:
            params["latitude"], params["longitude"] = match.group(1), match.group(2)
        else:
            params["location"] = location
        if term:
            params["term"] = term
        if price_filter and not is_attraction(category):
            params["price"] = price_filter
        return params

    def search(
        self,
        location: str,
        category: str,
        term: Optional[str] = None,
        price_filter: Optional[str] = None,
    ) -> List[Candidate]:
        params = self.build_params(location, category, term, price_filter)
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }

        try:
            resp = requests.get(
                f"{self.base_url}/businesses/search",
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Yelp search for %s failed: %s", category, exc)
            return []

        if not resp.ok:
            logger.warning("Yelp API error for %s: %s", category, resp.status_code)
            return []

        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            logger.warning("Yelp returned a non-JSON body for %s", category)
            return []

        if not isinstance(data, dict) or not isinstance(data.get("businesses") or [], list):
            logger.warning("Unexpected Yelp response shape for %s", category)
            return []
        businesses = data.get("businesses") or []

        candidates: List[Candidate] = []
        for b in businesses:
            if not isinstance(b, dict) or not b.get("name"):
                continue
            candidates.append(self._to_candidate(b))
        return candidates

    @staticmethod
    def _to_candidate(b: dict) -> Candidate:
        try:
            rating = float(b["rating"]) if b.get("rating") is not None else None
        except (TypeError, ValueError):
            rating = None
        try:
            review_count = int(b.get("review_count") or 0)
        except (TypeError, ValueError):
            review_count = 0

        return Candidate(
            id=str(b.get("id") or ""),
            name=b["name"],
            rating=rating,
            price=b.get("price"),
            categories=[
                c["title"]
                for c in b.get("categories") or []
                if isinstance(c, dict) and c.get("title")
            ],
            url=b.get("url"),
            image_url=b.get("image_url") or None,
            review_count=review_count,
        )
