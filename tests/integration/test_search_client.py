"""Tests for the search client against a local HTTP server."""

import aiohttp
import pytest

from client.search import PropertySearch, SearchForm
from config import Config


@pytest.mark.integration
@pytest.mark.asyncio
async def test_no_results_message_names_term_and_category(portal_config):
    form = SearchForm(category="for-sale", free_text="villa")

    outcome = await PropertySearch(portal_config).submit(form)

    assert outcome.ok
    assert outcome.total == 0
    assert outcome.message == 'No properties found for "villa" in for sale'
    assert outcome.navigate_to is None


@pytest.mark.integration
@pytest.mark.asyncio
async def test_matches_navigate_to_results_page(portal_config, fake_portal):
    form = SearchForm(category="for-sale", free_text="sea", property_type="villa", max_price="abc")

    outcome = await PropertySearch(portal_config).submit(form)

    assert outcome.total == 2
    assert [item["title"] for item in outcome.listings] == ["Beach villa", "City apartment"]
    assert outcome.navigate_to == "/properties/for-sale?q=sea&type=villa"
    assert outcome.message is None
    assert ("GET", "/api/properties/search") in fake_portal.app["requests"]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_server_error_surfaces_single_message(portal_config):
    """A non-2xx response becomes one readable error carrying the server's message."""
    form = SearchForm(free_text="boom")

    outcome = await PropertySearch(portal_config).submit(form)

    assert not outcome.ok
    assert outcome.error == "Search failed: Database exploded (HTTP 500)"
    assert form.error == outcome.error


@pytest.mark.integration
@pytest.mark.asyncio
async def test_non_json_response_is_an_error(portal_config):
    outcome = await PropertySearch(portal_config).submit(SearchForm(free_text="html"))

    assert "expected JSON but received text/html" in outcome.error


@pytest.mark.integration
@pytest.mark.asyncio
async def test_invalid_json_body_is_reported_as_malformed(portal_config):
    outcome = await PropertySearch(portal_config).submit(SearchForm(free_text="garbled"))

    assert outcome.error == "Search failed: malformed JSON in response body (HTTP 200)"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_network_failure_is_an_error():
    config = Config(api_base_url="http://127.0.0.1:1")
    form = SearchForm(free_text="villa")

    outcome = await PropertySearch(config).submit(form)

    assert outcome.error.startswith("Search failed: ")
    assert form.error == outcome.error
    assert outcome.listings == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_injected_session_is_reused_and_left_open(portal_config):
    async with aiohttp.ClientSession() as session:
        search = PropertySearch(portal_config, session=session)

        await search.submit(SearchForm(free_text="villa"))
        await search.submit(SearchForm(free_text="sea"))

        assert not session.closed


@pytest.mark.integration
@pytest.mark.asyncio
async def test_successful_search_clears_previous_error(portal_config):
    form = SearchForm(free_text="boom")
    search = PropertySearch(portal_config)
    await search.submit(form)

    form.free_text = "sea"
    outcome = await search.submit(form)

    assert outcome.ok
    assert form.error is None
