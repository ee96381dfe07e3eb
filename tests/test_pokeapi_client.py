import httpx
import pytest

from pokedex_api.errors import MalformedUpstreamData, UpstreamUnavailable
from pokedex_api.pokeapi_client import PokeApiClient

from conftest import UPSTREAM_BASE, make_detail

pytestmark = pytest.mark.anyio


async def test_list_species_returns_page_in_order(upstream, pokeapi):
    for i, name in enumerate(["bulbasaur", "ivysaur", "venusaur"], start=1):
        upstream.add(make_detail(i, name))

    results = await pokeapi.list_species(limit=2, offset=1)

    assert [r["name"] for r in results] == ["ivysaur", "venusaur"]
    assert upstream.calls["/pokemon"] == 1


async def test_fetch_detail_and_species(upstream, pokeapi):
    upstream.add(make_detail(25, "pikachu"))

    detail = await pokeapi.fetch_detail(25)
    by_name = await pokeapi.fetch_detail("pikachu")
    species = await pokeapi.fetch_species(25)

    assert detail["name"] == "pikachu"
    assert by_name["id"] == 25
    assert "flavor_text_entries" in species


async def test_non_success_raises_with_identifier(pokeapi):
    with pytest.raises(UpstreamUnavailable) as exc_info:
        await pokeapi.fetch_detail(9999)
    assert exc_info.value.identifier == 9999
    assert "404" in str(exc_info.value)


async def test_server_error_raises(upstream, pokeapi):
    upstream.add(make_detail(25, "pikachu"))
    upstream.failing.add("25")
    with pytest.raises(UpstreamUnavailable):
        await pokeapi.fetch_species(25)


async def test_transport_error_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = PokeApiClient(UPSTREAM_BASE, httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with pytest.raises(UpstreamUnavailable) as exc_info:
        await client.fetch_detail("mew")
    assert exc_info.value.identifier == "mew"
    await client.aclose()


async def test_invalid_json_raises_malformed():
    def handler(request):
        return httpx.Response(200, text="<html>not json</html>")

    client = PokeApiClient(UPSTREAM_BASE, httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with pytest.raises(MalformedUpstreamData):
        await client.fetch_detail(1)
    await client.aclose()


async def test_list_without_results_is_malformed():
    def handler(request):
        return httpx.Response(200, json={"count": 0})

    client = PokeApiClient(UPSTREAM_BASE, httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with pytest.raises(MalformedUpstreamData):
        await client.list_species(limit=10)
    await client.aclose()
