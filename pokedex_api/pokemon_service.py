"""
Read-through cache over the upstream API.

Detail lookups check the local store first and only go upstream on a miss,
writing the normalized record back. List requests merge one upstream page
with every locally stored record.
"""
import asyncio
import logging
from typing import List, Union

from sqlalchemy.ext.asyncio import AsyncSession

from pokedex_api import store
from pokedex_api.errors import MalformedUpstreamData, UpstreamUnavailable
from pokedex_api.models import ORIGIN_UPSTREAM
from pokedex_api.normalizer import ImageBases, normalize, summarize
from pokedex_api.pokeapi_client import PokeApiClient
from pokedex_api.schemas import PokemonRecord, PokemonSummary

logger = logging.getLogger(__name__)


def is_cache_hit(stored: store.StoredPokemon) -> bool:
    """
    Whether a stored record can be served without going upstream.

    Client-submitted records are always served as stored, whatever they leave
    out. Write-backs from an older version may lack fields added since; those
    are refreshed.
    """
    if not stored.from_upstream:
        return True
    record = stored.record
    return record.image is not None and record.flavor_text is not None


async def get_pokemon(
    db: AsyncSession,
    pokeapi: PokeApiClient,
    bases: ImageBases,
    pokemon_id: int,
) -> PokemonRecord:
    """
    Serve one record, fetching and writing it back on a cache miss.

    Raises UpstreamUnavailable / MalformedUpstreamData when the record is not
    stored and cannot be fetched, StoreFailure on database errors.
    """
    stored = await store.find_stored_pokemon(db, pokemon_id)
    if stored is not None and is_cache_hit(stored):
        return stored.record

    if stored is not None:
        logger.info("Stored record %s is incomplete, refreshing from upstream", pokemon_id)

    try:
        detail, species = await asyncio.gather(
            pokeapi.fetch_detail(pokemon_id),
            pokeapi.fetch_species(pokemon_id),
        )
        record = normalize(detail, species, bases)
    except (UpstreamUnavailable, MalformedUpstreamData) as e:
        if stored is None:
            raise
        logger.warning("Refresh of %s failed, serving stored record: %s", pokemon_id, e)
        return stored.record

    await store.upsert_pokemon(db, pokemon_id, record, origin=ORIGIN_UPSTREAM)
    await store.commit(db)
    logger.info("Wrote back pokemon %s (%s)", pokemon_id, record.name)
    return record


async def _upstream_summaries(
    pokeapi: PokeApiClient,
    bases: ImageBases,
    limit: int,
    offset: int,
) -> List[PokemonSummary]:
    species = await pokeapi.list_species(limit=limit, offset=offset)
    names = [entry.get("name") for entry in species]
    if not all(names):
        raise MalformedUpstreamData("pokemon list entry without a name")

    # one detail call per name, all at once; any failure fails the list
    details = await asyncio.gather(*(pokeapi.fetch_detail(name) for name in names))
    return [summarize(detail, bases) for detail in details]


async def list_pokemon(
    db: AsyncSession,
    pokeapi: PokeApiClient,
    bases: ImageBases,
    limit: int,
    offset: int = 0,
) -> List[Union[PokemonSummary, PokemonRecord]]:
    """
    Upstream page projections (in page order) followed by every stored record.

    Ids come from each detail payload, never from the position in the page.
    Nothing is de-duplicated: a stored record sharing an id with an upstream
    entry shows up twice.
    """
    # return_exceptions so the store read has finished before anything propagates
    remote, local = await asyncio.gather(
        _upstream_summaries(pokeapi, bases, limit, offset),
        store.list_all_custom_pokemon(db),
        return_exceptions=True,
    )
    for outcome in (remote, local):
        if isinstance(outcome, BaseException):
            raise outcome

    return [*remote, *local]
