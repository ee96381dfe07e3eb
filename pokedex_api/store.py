"""
Persistence gateway for custom Pokemon records, games and user identities.

Functions take an AsyncSession and never commit: the request handler (or the
service function) owns the unit of work and calls `commit`/`rollback`.
Every SQLAlchemy error surfaces as StoreFailure.
"""
import functools
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pokedex_api.errors import NotFound, StoreFailure
from pokedex_api.models import ORIGIN_CLIENT, ORIGIN_UPSTREAM, Game, Pokemon, User
from pokedex_api.schemas import (
    BaseStats,
    GameIn,
    GameRecord,
    PokemonRecord,
    UserIdentity,
)

logger = logging.getLogger(__name__)

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _store_errors(func):
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.exception("Store operation %s failed", func.__name__)
            raise StoreFailure(str(e)) from e

    return wrapper


def _insert_for(db: AsyncSession):
    """Dialect-specific INSERT construct (both support ON CONFLICT DO UPDATE)."""
    dialect = db.bind.dialect.name
    try:
        return _INSERTS[dialect]
    except KeyError:
        raise StoreFailure(f"upsert is not supported on {dialect}") from None


# ---- row <-> record mapping ----

def _pokemon_row(record: PokemonRecord) -> dict:
    return {
        "id": record.id,
        "name": record.name,
        "types": list(record.types),
        "abilities": list(record.abilities),
        "hidden_ability": record.hidden_ability,
        "evolves_from": record.evolves_from,
        "base_stats": record.base_stats.model_dump(by_alias=True),
        "image": record.image,
        "flavor_text": record.flavor_text,
        "owner_id": record.owner,
    }


def _pokemon_record(row: Pokemon) -> PokemonRecord:
    # internal columns (owner_id) are mapped to their public names here
    return PokemonRecord(
        id=row.id,
        name=row.name,
        types=row.types,
        abilities=row.abilities,
        hidden_ability=row.hidden_ability,
        evolves_from=row.evolves_from,
        base_stats=BaseStats.model_validate(row.base_stats),
        image=row.image,
        flavor_text=row.flavor_text,
        owner=row.owner_id,
    )


def _game_record(row: Game) -> GameRecord:
    return GameRecord(
        id=row.id,
        generation=row.generation,
        games_released=row.games_released,
        platforms=row.platforms,
        year_released=row.year_released,
        region=row.region,
        well_known_pokemon=row.well_known_pokemon,
        image=row.image,
    )


# ---- units of work ----

@_store_errors
async def commit(db: AsyncSession) -> None:
    await db.commit()


async def rollback(db: AsyncSession) -> None:
    try:
        await db.rollback()
    except SQLAlchemyError:
        logger.exception("Rollback failed")


# ---- pokemon ----

@dataclass(frozen=True)
class StoredPokemon:
    record: PokemonRecord
    origin: str

    @property
    def from_upstream(self) -> bool:
        return self.origin == ORIGIN_UPSTREAM


@_store_errors
async def find_pokemon_by_id(db: AsyncSession, pokemon_id: int) -> Optional[PokemonRecord]:
    result = await db.execute(select(Pokemon).where(Pokemon.id == pokemon_id))
    row = result.scalar_one_or_none()
    return _pokemon_record(row) if row is not None else None


@_store_errors
async def find_stored_pokemon(db: AsyncSession, pokemon_id: int) -> Optional[StoredPokemon]:
    """Like find_pokemon_by_id, but also says where the row came from."""
    result = await db.execute(select(Pokemon).where(Pokemon.id == pokemon_id))
    row = result.scalar_one_or_none()
    if row is None:
        return None
    return StoredPokemon(record=_pokemon_record(row), origin=row.origin)


@_store_errors
async def upsert_pokemon(
    db: AsyncSession,
    pokemon_id: int,
    record: PokemonRecord,
    origin: str = ORIGIN_CLIENT,
) -> None:
    """
    Replace-or-insert keyed by the species id.

    `origin` is ORIGIN_UPSTREAM only for write-backs. An unowned record leaves
    an existing owner in place.
    """
    values = _pokemon_row(record)
    values["id"] = pokemon_id
    values["origin"] = origin

    insert = _insert_for(db)
    stmt = insert(Pokemon).values(**values)

    updatable = [k for k in values if k != "id"]
    if record.owner is None:
        updatable.remove("owner_id")

    stmt = stmt.on_conflict_do_update(
        index_elements=[Pokemon.id],
        set_={k: stmt.excluded[k] for k in updatable},
    )
    await db.execute(stmt)


@_store_errors
async def list_all_custom_pokemon(db: AsyncSession) -> List[PokemonRecord]:
    result = await db.execute(select(Pokemon))
    return [_pokemon_record(row) for row in result.scalars().all()]


@_store_errors
async def delete_pokemon_by_id(db: AsyncSession, pokemon_id: int) -> bool:
    result = await db.execute(delete(Pokemon).where(Pokemon.id == pokemon_id))
    # drop dangling back-references in the same transaction
    await db.execute(
        update(User).where(User.pokemon_id == pokemon_id).values(pokemon_id=None)
    )
    return result.rowcount > 0


@_store_errors
async def update_pokemon_by_id(db: AsyncSession, pokemon_id: int, record: PokemonRecord) -> bool:
    result = await db.execute(
        update(Pokemon)
        .where(Pokemon.id == pokemon_id)
        .values(**_pokemon_row(record), origin=ORIGIN_CLIENT)
    )
    return result.rowcount > 0


# ---- users ----

@_store_errors
async def find_user_by_email(db: AsyncSession, email: str) -> Optional[UserIdentity]:
    result = await db.execute(select(User).where(User.email == email))
    row = result.scalar_one_or_none()
    if row is None:
        return None
    return UserIdentity(
        id=row.id,
        email=row.email,
        last_login=row.last_login,
        pokemon_id=row.pokemon_id,
    )


@_store_errors
async def upsert_login_by_email(db: AsyncSession, email: str, now: datetime) -> None:
    """Insert the identity if absent, otherwise only bump last_login."""
    insert = _insert_for(db)
    stmt = insert(User).values(email=email, last_login=now)
    stmt = stmt.on_conflict_do_update(
        index_elements=[User.email],
        set_={"last_login": stmt.excluded.last_login},
    )
    await db.execute(stmt)


@_store_errors
async def link_user_pokemon(db: AsyncSession, user_id: int, pokemon_id: int) -> bool:
    result = await db.execute(
        update(User).where(User.id == user_id).values(pokemon_id=pokemon_id)
    )
    return result.rowcount > 0


# ---- games ----

@_store_errors
async def list_games(db: AsyncSession) -> List[GameRecord]:
    result = await db.execute(select(Game).order_by(Game.generation.asc(), Game.id.asc()))
    return [_game_record(row) for row in result.scalars().all()]


@_store_errors
async def get_game(db: AsyncSession, game_id: int) -> Optional[GameRecord]:
    row = await db.get(Game, game_id)
    return _game_record(row) if row is not None else None


@_store_errors
async def create_game(db: AsyncSession, game: GameIn) -> GameRecord:
    row = Game(**game.model_dump())
    db.add(row)
    await db.flush()
    return _game_record(row)


@_store_errors
async def update_game(db: AsyncSession, game_id: int, game: GameIn) -> GameRecord:
    row = await db.get(Game, game_id)
    if row is None:
        raise NotFound("Game")
    for key, value in game.model_dump().items():
        setattr(row, key, value)
    await db.flush()
    return _game_record(row)


@_store_errors
async def delete_game(db: AsyncSession, game_id: int) -> None:
    result = await db.execute(delete(Game).where(Game.id == game_id))
    if result.rowcount == 0:
        raise NotFound("Game")
