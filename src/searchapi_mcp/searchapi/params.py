"""Outbound query parameters and their defaults."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

DEFAULT_COUNTRY = "us"
DEFAULT_LANGUAGE = "en"
DEFAULT_LOCATION = "United States"
DEFAULT_NUM_RESULTS = 10

SEARCH_DEFAULTS: dict[str, Any] = {
    "gl": DEFAULT_COUNTRY,
    "hl": DEFAULT_LANGUAGE,
    "location": DEFAULT_LOCATION,
    "num": DEFAULT_NUM_RESULTS,
}


class GoogleShoppingSearchParams(BaseModel):
    """Query string of a Google Shopping search, minus the engine and API key."""

    model_config = ConfigDict(extra="forbid")

    q: str
    gl: str | None = None
    hl: str | None = None
    location: str | None = None
    num: int | None = None
    start: int | None = None
    tbm: str | None = None
    tbs: str | None = None
    safe: str | None = None
    nfpr: str | None = None
    filter: str | None = None

    def to_query(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def resolve_search_params(query: str, **options: Any) -> GoogleShoppingSearchParams:
    """Fill in the search defaults.

    An option given explicitly always wins over its default; ``None`` counts
    as not given. Unknown option names are rejected.
    """
    supplied = {name: value for name, value in options.items() if value is not None}
    unknown = sorted(supplied.keys() - GoogleShoppingSearchParams.model_fields.keys())
    if unknown:
        raise TypeError(f"Unknown search option(s): {', '.join(unknown)}")
    if "q" in supplied:
        raise TypeError("The query is passed positionally, not as an option")
    return GoogleShoppingSearchParams(q=query, **{**SEARCH_DEFAULTS, **supplied})
