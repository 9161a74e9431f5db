"""Response shapes of the SearchAPI.io Google Shopping engine.

Only the fields the server reads are declared. Everything else upstream sends
is kept as extra data so the metadata output reproduces the full response.
"""

from pydantic import BaseModel, ConfigDict


class SearchApiModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class InstallmentInfo(SearchApiModel):
    down_payment: str | None = None
    extracted_down_payment: float | None = None
    months: str | None = None
    extracted_months: int | None = None
    cost_per_month: str | None = None
    extracted_cost_per_month: float | None = None


class ShoppingResult(SearchApiModel):
    position: int | None = None
    product_id: str | None = None
    title: str | None = None
    product_link: str | None = None
    seller: str | None = None
    offers: str | None = None
    extracted_offers: int | None = None
    offers_link: str | None = None
    price: str | None = None
    extracted_price: float | None = None
    installment: InstallmentInfo | None = None
    rating: float | None = None
    reviews: int | None = None
    delivery: str | None = None
    thumbnail: str | None = None


class SearchMetadata(SearchApiModel):
    id: str | None = None
    status: str | None = None
    json_endpoint: str | None = None
    created_at: str | None = None
    processed_at: str | None = None
    google_shopping_url: str | None = None
    raw_html_file: str | None = None
    total_time_taken: float | None = None


class SearchParameters(SearchApiModel):
    engine: str | None = None
    q: str | None = None
    gl: str | None = None
    hl: str | None = None
    location: str | None = None


class SearchInformation(SearchApiModel):
    total_results: int | None = None
    time_taken_displayed: float | None = None
    query_displayed: str | None = None


class SearchApiResponse(SearchApiModel):
    shopping_results: list[ShoppingResult] | None = None
    search_metadata: SearchMetadata | None = None
    search_parameters: SearchParameters | None = None
    search_information: SearchInformation | None = None
