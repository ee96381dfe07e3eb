import logging
from typing import Any, Dict, List, Union

import httpx

from pokedex_api.errors import MalformedUpstreamData, UpstreamUnavailable

logger = logging.getLogger(__name__)

Identifier = Union[int, str]


class PokeApiClient:
    """
    Thin read-only client for the upstream Pokemon API.

    Holds no state besides the shared httpx.AsyncClient; every call goes to
    the network. No retries: a failed call raises UpstreamUnavailable and the
    caller decides what to do.
    """

    def __init__(self, base_url: str, client: httpx.AsyncClient):
        self.base_url = base_url.rstrip("/")
        self.client = client

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _get_json(self, path: str, identifier: Identifier, params=None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = await self.client.get(url, params=params)
        except httpx.HTTPError as e:
            logger.warning("Upstream request for %s failed: %s", identifier, e)
            raise UpstreamUnavailable(identifier, str(e) or type(e).__name__) from e

        if not resp.is_success:
            logger.warning(
                "Upstream returned %s for %s (%s)", resp.status_code, identifier, url
            )
            raise UpstreamUnavailable(identifier, f"upstream status {resp.status_code}")

        try:
            return resp.json()
        except ValueError as e:
            raise MalformedUpstreamData(f"invalid JSON for {identifier}") from e

    async def list_species(self, limit: int, offset: int = 0) -> List[Dict[str, Any]]:
        """
        Fetch one page of the species list.

        Calls:
            GET {base}/pokemon?limit={limit}&offset={offset}

        Returns:
            The page's `results` entries ({name, url}), in upstream order.
        """
        data = await self._get_json(
            "/pokemon",
            "pokemon list",
            params={"limit": limit, "offset": offset},
        )
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise MalformedUpstreamData("pokemon list has no results")
        return results

    async def fetch_detail(self, identifier: Identifier) -> Dict[str, Any]:
        """GET {base}/pokemon/{id or name}"""
        return await self._get_json(f"/pokemon/{identifier}", identifier)

    async def fetch_species(self, identifier: Identifier) -> Dict[str, Any]:
        """GET {base}/pokemon-species/{id or name} (flavor text, evolution lineage)"""
        return await self._get_json(f"/pokemon-species/{identifier}", identifier)
