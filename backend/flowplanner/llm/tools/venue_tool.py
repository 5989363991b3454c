from typing import List, Optional, Protocol

from flowplanner.models.domain import Candidate


class VenueSearchTool(Protocol):
    """Venue search abstraction to allow swapping place providers.

    Implementations return an empty list on any provider failure; callers treat
    empty as a normal outcome.
    """

    def search(
        self,
        location: str,
        category: str,
        term: Optional[str] = None,
        price_filter: Optional[str] = None,
    ) -> List[Candidate]:
        ...
