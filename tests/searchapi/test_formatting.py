import json

from searchapi_mcp.searchapi.formatting import format_full_response, format_shopping_results
from searchapi_mcp.searchapi.models import InstallmentInfo, SearchApiResponse, ShoppingResult


def _result(position: int, **overrides) -> ShoppingResult:
    fields = {
        "position": position,
        "title": f"Product {position}",
        "seller": f"Store {position}",
        "price": f"${position}9.99",
        "product_link": f"https://shop.example/{position}",
        "offers": "3",
    }
    fields.update(overrides)
    return ShoppingResult(**fields)


def test_empty_results() -> None:
    assert format_shopping_results([]) == "No shopping results found."


def test_minimal_entry() -> None:
    assert format_shopping_results([_result(1)]) == (
        "1. **Product 1**\n"
        "   Seller: Store 1\n"
        "   Price: $19.99\n"
        "   Product Link: https://shop.example/1\n"
        "   Offers: 3 available"
    )


def test_optional_lines_in_order() -> None:
    result = _result(
        1,
        rating=4.5,
        reviews=12345,
        delivery="Free delivery",
        installment=InstallmentInfo(down_payment="$0", cost_per_month="$41.63", months="24"),
    )

    lines = format_shopping_results([result]).splitlines()

    assert lines[3:6] == [
        "   Rating: 4.5/5 (12,345 reviews)",
        "   Delivery: Free delivery",
        "   Installment: $0 + $41.63 for 24 months",
    ]


def test_whole_number_rating_and_missing_reviews() -> None:
    text = format_shopping_results([_result(1, rating=4.0)])

    assert "   Rating: 4/5 (0 reviews)" in text


def test_zero_rating_is_omitted() -> None:
    assert "Rating" not in format_shopping_results([_result(1, rating=0)])


def test_entries_are_numbered_and_separated_by_blank_lines() -> None:
    text = format_shopping_results([_result(1), _result(2), _result(3)])
    blocks = text.split("\n\n")

    assert len(blocks) == 3
    assert [block.splitlines()[0] for block in blocks] == [
        "1. **Product 1**",
        "2. **Product 2**",
        "3. **Product 3**",
    ]


def test_full_response_is_pretty_json_of_upstream_fields_only() -> None:
    payload = {
        "search_metadata": {"id": "abc", "status": "Success"},
        "shopping_results": [{"title": "A", "price": "$1", "badge": "Sale"}],
    }
    text = format_full_response(SearchApiResponse.model_validate(payload))

    assert json.loads(text) == payload
    assert text.startswith("{\n  ")
