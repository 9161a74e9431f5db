"""Human-readable rendering of shopping results."""

from collections.abc import Sequence

from searchapi_mcp.searchapi.models import SearchApiResponse, ShoppingResult

NO_RESULTS_MESSAGE = "No shopping results found."


def _format_rating(rating: float) -> str:
    return f"{rating:g}"


def format_shopping_result(index: int, result: ShoppingResult) -> str:
    lines = [
        f"{index}. **{result.title}**",
        f"   Seller: {result.seller}",
        f"   Price: {result.price}",
    ]
    if result.rating:
        lines.append(f"   Rating: {_format_rating(result.rating)}/5 ({result.reviews or 0:,} reviews)")
    if result.delivery:
        lines.append(f"   Delivery: {result.delivery}")
    if result.installment:
        installment = result.installment
        lines.append(
            f"   Installment: {installment.down_payment} + {installment.cost_per_month} for {installment.months} months"
        )
    lines.append(f"   Product Link: {result.product_link}")
    lines.append(f"   Offers: {result.offers} available")
    return "\n".join(lines)


def format_shopping_results(results: Sequence[ShoppingResult]) -> str:
    """Numbered blocks, one per product, separated by a blank line."""
    if not results:
        return NO_RESULTS_MESSAGE
    return "\n\n".join(format_shopping_result(index, result) for index, result in enumerate(results, start=1))


def format_full_response(response: SearchApiResponse) -> str:
    """The response as pretty-printed JSON, limited to the fields upstream actually sent."""
    return response.model_dump_json(indent=2, exclude_unset=True)
