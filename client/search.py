"""Search form state and the search request/outcome contract.

``SearchForm`` holds what the user typed. ``PropertySearch.submit`` turns it
into a request against ``/api/properties/search`` and reduces the response to
a ``SearchOutcome``: a page to navigate to, an empty-state message, or a
single error string.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlencode

import aiohttp

from client.http import api_url, fetch_json, session_scope
from config import Config
from errors import UpstreamRequestFailed
from models import ALL_TYPES, Category, SearchQuery
from utils.validator import optional_price

logger = logging.getLogger(__name__)

SEARCH_PATH = "/api/properties/search"


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def no_results_message(category: Category, term: str = "") -> str:
    if term:
        return f'No properties found for "{term}" in {category.label}'
    return f"No properties found in {category.label}"


class SearchForm:

    def __init__(
        self,
        category: Union[Category, str] = Category.FOR_SALE,
        free_text: str = "",
        property_type: str = ALL_TYPES,
        max_price: Union[str, float, None] = "",
    ):
        self.category = Category(category)
        self.free_text = free_text
        self.property_type = property_type or ALL_TYPES
        self.max_price = max_price
        self.error: Optional[str] = None

    def set_category(self, category: Union[Category, str]) -> None:
        self.category = Category(category)
        self.max_price = ""
        self.error = None

    def to_query(self) -> SearchQuery:
        return SearchQuery(
            category=self.category,
            free_text=self.free_text.strip() or None,
            property_type=None if self.property_type == ALL_TYPES else self.property_type,
            max_price=optional_price(self.max_price),
        )

    def build_params(self) -> Dict[str, str]:
        query = self.to_query()
        params = {"category": query.category.value}
        if query.free_text:
            params["q"] = query.free_text
        if query.property_type:
            params["type"] = query.property_type
        if query.max_price is not None:
            params["maxPrice"] = _format_number(query.max_price)
        return params


@dataclass
class SearchOutcome:
    params: Dict[str, str]
    total: int = 0
    listings: List[Dict[str, Any]] = field(default_factory=list)
    message: Optional[str] = None
    error: Optional[str] = None
    navigate_to: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PropertySearch:

    def __init__(self, config: Optional[Config] = None, session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self._session = session

    @staticmethod
    def results_path(params: Dict[str, str]) -> str:
        filters = {k: v for k, v in params.items() if k != "category"}
        path = f"/properties/{params['category']}"
        return f"{path}?{urlencode(filters)}" if filters else path

    async def submit(self, form: SearchForm) -> SearchOutcome:
        params = form.build_params()
        outcome = SearchOutcome(params=params)

        try:
            async with session_scope(self._session) as session:
                payload = await fetch_json(
                    session, "GET", api_url(SEARCH_PATH, self.config), failure="Search failed", params=params
                )
        except UpstreamRequestFailed as e:
            logger.error("Search request failed", extra={"params": params, "error": str(e)})
            outcome.error = form.error = str(e)
            return outcome

        if not isinstance(payload, dict):
            outcome.error = form.error = "Search failed: malformed response from server"
            return outcome

        form.error = None
        outcome.listings = list(payload.get("data") or [])
        outcome.total = int(payload.get("total", payload.get("count", len(outcome.listings))) or 0)

        if outcome.total == 0:
            outcome.message = no_results_message(form.category, params.get("q", ""))
        else:
            outcome.navigate_to = self.results_path(params)
        return outcome
