"""
Turns raw PokeAPI payloads into the records this service stores and serves.

Everything here is pure: no I/O, no configuration lookups. Image bases are
passed in explicitly.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from pokedex_api.errors import MalformedUpstreamData
from pokedex_api.schemas import BaseStats, PokemonRecord, PokemonSummary

NO_FLAVOR_TEXT = "No flavor text available"

# Upstream stat order: hp, attack, defense, special-attack, special-defense, speed
STAT_FIELDS = (
    "hp",
    "attack",
    "defense",
    "special_attack",
    "special_defense",
    "speed",
)

# The primary artwork set stops at 1017 and skips 1013
PRIMARY_ARTWORK_LAST_ID = 1017
PRIMARY_ARTWORK_GAPS = frozenset({1013})


@dataclass(frozen=True)
class ImageBases:
    primary: str
    alternate: str


def image_url_for(pokemon_id: int, bases: ImageBases) -> str:
    if pokemon_id <= PRIMARY_ARTWORK_LAST_ID and pokemon_id not in PRIMARY_ARTWORK_GAPS:
        return f"{bases.primary}/{pokemon_id}.png"
    return f"{bases.alternate}/{pokemon_id}.png"


def split_abilities(entries: List[Dict[str, Any]]) -> Tuple[List[str], Optional[str]]:
    """
    Partition upstream ability entries by their hidden flag.

    Returns the regular ability names in upstream order, and the first
    hidden ability (or None).
    """
    regular: List[str] = []
    hidden: List[str] = []

    for entry in entries:
        name = entry["ability"]["name"]
        if entry.get("is_hidden"):
            hidden.append(name)
        else:
            regular.append(name)

    return regular, (hidden[0] if hidden else None)


def clean_flavor_text(text: str) -> str:
    # upstream text carries escaped line breaks and page-break characters
    return (
        text.replace("\\n", "")
        .replace("\\f", "")
        .replace("\f", "")
    )


def english_flavor_text(entries: List[Dict[str, Any]]) -> str:
    for entry in entries:
        language = entry.get("language") or {}
        if language.get("name") == "en":
            return clean_flavor_text(entry.get("flavor_text", ""))
    return NO_FLAVOR_TEXT


def base_stats_from(stats: List[Dict[str, Any]]) -> BaseStats:
    if len(stats) < len(STAT_FIELDS):
        raise MalformedUpstreamData(
            f"expected {len(STAT_FIELDS)} base stats, got {len(stats)}"
        )
    return BaseStats(
        **{field: stats[i]["base_stat"] for i, field in enumerate(STAT_FIELDS)}
    )


def normalize(
    detail: Dict[str, Any],
    species: Dict[str, Any],
    bases: ImageBases,
) -> PokemonRecord:
    """
    Build the canonical record from a /pokemon/{id} payload and the matching
    /pokemon-species/{id} payload.

    Raises MalformedUpstreamData when a field the record needs is missing.
    """
    try:
        pokemon_id = detail["id"]
        abilities, hidden_ability = split_abilities(detail["abilities"])
        predecessor = species.get("evolves_from_species")

        return PokemonRecord(
            id=pokemon_id,
            name=detail["name"],
            types=[t["type"]["name"] for t in detail["types"]],
            abilities=abilities,
            hidden_ability=hidden_ability,
            evolves_from=predecessor["name"] if predecessor else None,
            base_stats=base_stats_from(detail["stats"]),
            image=image_url_for(pokemon_id, bases),
            flavor_text=english_flavor_text(species.get("flavor_text_entries", [])),
        )
    except (KeyError, TypeError, AttributeError, ValueError) as e:
        raise MalformedUpstreamData(f"invalid upstream payload: {e}") from e


def summarize(detail: Dict[str, Any], bases: ImageBases) -> PokemonSummary:
    """The {id, name, image} projection used by the list endpoint."""
    try:
        pokemon_id = detail["id"]
        return PokemonSummary(
            id=pokemon_id,
            name=detail["name"],
            image=image_url_for(pokemon_id, bases),
        )
    except (KeyError, TypeError, AttributeError, ValueError) as e:
        raise MalformedUpstreamData(f"invalid upstream payload: {e}") from e
