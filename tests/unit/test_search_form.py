"""Tests for the search form state and query building."""

import pytest

from client.search import PropertySearch, SearchForm, no_results_message
from models import Category


@pytest.mark.unit
def test_category_always_included():
    assert SearchForm().build_params() == {"category": "for-sale"}


@pytest.mark.unit
def test_all_filters_included_when_set():
    form = SearchForm(category="for-rent", free_text="  villa ", property_type="villa", max_price="150000")

    assert form.build_params() == {
        "category": "for-rent",
        "q": "villa",
        "type": "villa",
        "maxPrice": "150000",
    }


@pytest.mark.unit
def test_type_all_is_omitted():
    params = SearchForm(property_type="all").build_params()

    assert "type" not in params


@pytest.mark.unit
def test_non_numeric_max_price_is_silently_dropped():
    """maxPrice=abc never reaches the request and raises nothing."""
    form = SearchForm(free_text="villa", max_price="abc")

    params = form.build_params()

    assert "maxPrice" not in params
    assert params["q"] == "villa"
    assert form.error is None


@pytest.mark.unit
def test_fractional_max_price_keeps_decimals():
    assert SearchForm(max_price="99.5").build_params()["maxPrice"] == "99.5"


@pytest.mark.unit
def test_set_category_resets_price_and_error():
    form = SearchForm(max_price="500000")
    form.error = "Search failed: 500 Internal Server Error"

    form.set_category(Category.LAND)

    assert form.category is Category.LAND
    assert form.max_price == ""
    assert form.error is None
    assert form.build_params() == {"category": "land"}


@pytest.mark.unit
def test_no_results_message_uses_category_label():
    assert no_results_message(Category.FOR_SALE, "villa") == 'No properties found for "villa" in for sale'
    assert no_results_message(Category.FOR_RENT) == "No properties found in for rent"


@pytest.mark.unit
def test_results_path_carries_filters():
    path = PropertySearch.results_path({"category": "for-sale", "q": "sea view", "type": "villa"})

    assert path == "/properties/for-sale?q=sea+view&type=villa"
    assert PropertySearch.results_path({"category": "land"}) == "/properties/land"
