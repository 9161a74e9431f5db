import pytest

from searchapi_mcp.searchapi.params import GoogleShoppingSearchParams, resolve_search_params


def test_defaults_fill_missing_options() -> None:
    params = resolve_search_params("iPhone 15")

    assert params == GoogleShoppingSearchParams(q="iPhone 15", gl="us", hl="en", location="United States", num=10)


def test_explicit_options_override_defaults() -> None:
    params = resolve_search_params("iPhone 15", gl="uk", hl="fr", location="London", num=3)

    assert params.to_query() == {"q": "iPhone 15", "gl": "uk", "hl": "fr", "location": "London", "num": 3}


def test_none_means_not_supplied() -> None:
    params = resolve_search_params("shoes", gl=None, location=None, num=None)

    assert params.gl == "us"
    assert params.location == "United States"
    assert params.num == 10


def test_passthrough_parameters_are_kept() -> None:
    params = resolve_search_params("shoes", start=20, tbs="mr:1", safe="active", nfpr="1", filter="0")

    query = params.to_query()
    assert query["start"] == 20
    assert query["tbs"] == "mr:1"
    assert query["safe"] == "active"
    assert query["nfpr"] == "1"
    assert query["filter"] == "0"


def test_unset_passthrough_parameters_are_omitted() -> None:
    assert set(resolve_search_params("shoes").to_query()) == {"q", "gl", "hl", "location", "num"}


def test_unknown_options_are_rejected() -> None:
    with pytest.raises(TypeError, match="colour"):
        resolve_search_params("shoes", colour="red")


def test_query_cannot_be_overridden_by_options() -> None:
    with pytest.raises(TypeError):
        resolve_search_params("shoes", q="boots")
