import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Path, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from pokedex_api import pokemon_service, store
from pokedex_api.auth import authenticate
from pokedex_api.config import MAX_LIST_LIMIT, Settings
from pokedex_api.db import get_db
from pokedex_api.errors import (
    MalformedUpstreamData,
    NotFound,
    PokedexError,
    StoreFailure,
    UpstreamUnavailable,
)
from pokedex_api.pokeapi_client import PokeApiClient
from pokedex_api.schemas import (
    ErrorResponse,
    GameIn,
    LoginRequest,
    MessageResponse,
    PokemonAddedResponse,
    PokemonRecord,
    PokemonSubmission,
)
from pokedex_api.utils import parse_limit_offset

logger = logging.getLogger(__name__)

router = APIRouter()

GAME_NOT_FOUND = {"message": "Game not found"}


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_pokeapi(request: Request) -> PokeApiClient:
    return request.app.state.pokeapi


def _internal_error(e: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"error": "Internal Server Error", "details": str(e)},
    )


def _user_not_found(user) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"error": "User not found", "details": f"no user {user}"},
    )


@router.get("/")
async def welcome():
    return {"message": "Welcome to the Pokedex"}


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health endpoint.

    Checks:
    - App is running
    - Database is reachable (simple SELECT 1)
    """
    try:
        await db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        db_status = f"error: {e!s}"

    return {
        "status": "ok",
        "db": db_status,
    }


# ---- pokemon ----

@router.get("/pokemon", responses={500: {"model": ErrorResponse}})
async def list_pokemon(
    limit: str | None = None,
    offset: str | None = None,
    db: AsyncSession = Depends(get_db),
    pokeapi: PokeApiClient = Depends(get_pokeapi),
    settings: Settings = Depends(get_settings),
):
    """
    Upstream species page (as {id, name, image}) followed by every stored record.

    Query params:
      - limit: optional, default from settings, must be 1–1025
      - offset: optional, default 0, must be >= 0
    """
    try:
        limit_value, offset_value = parse_limit_offset(
            limit_str=limit,
            offset_str=offset,
            default_limit=settings.list_limit,
            max_limit=MAX_LIST_LIMIT,
        )
    except ValueError:
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid limit or offset parameter"},
        )

    try:
        items = await pokemon_service.list_pokemon(
            db, pokeapi, settings.image_bases, limit_value, offset_value
        )
    except PokedexError as e:
        logger.error("Pokemon list failed: %s", e)
        return _internal_error(e)

    return [item.to_json() for item in items]


@router.get(
    "/pokemon/{pokemon_id}",
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_pokemon(
    pokemon_id: int = Path(gt=0),
    db: AsyncSession = Depends(get_db),
    pokeapi: PokeApiClient = Depends(get_pokeapi),
    settings: Settings = Depends(get_settings),
):
    try:
        record = await pokemon_service.get_pokemon(
            db, pokeapi, settings.image_bases, pokemon_id
        )
    except (UpstreamUnavailable, MalformedUpstreamData) as e:
        return JSONResponse(
            status_code=404,
            content={"error": "Pokémon not found", "details": str(e)},
        )
    except StoreFailure as e:
        await store.rollback(db)
        return _internal_error(e)

    return record.to_json()


@router.post(
    "/pokemon/add",
    status_code=201,
    dependencies=[Depends(authenticate)],
    responses={
        201: {"model": PokemonAddedResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def add_pokemon(
    submission: PokemonSubmission,
    db: AsyncSession = Depends(get_db),
):
    """
    Store a user-submitted record.

    The submitter may be given as `userId` or `userEmail`; an unknown user is
    a 404 and nothing is stored. The record and the submitter's back-reference
    are written in one transaction.
    """
    record = submission.to_record()
    try:
        if record.owner is None and submission.user_email is not None:
            user = await store.find_user_by_email(db, submission.user_email)
            if user is None:
                return _user_not_found(submission.user_email)
            record = record.model_copy(update={"owner": user.id})

        # link first: users.pokemon_id has no foreign key, pokemon.owner_id does
        if record.owner is not None and not await store.link_user_pokemon(db, record.owner, record.id):
            await store.rollback(db)
            return _user_not_found(record.owner)

        await store.upsert_pokemon(db, record.id, record)
        await store.commit(db)
    except StoreFailure as e:
        await store.rollback(db)
        return _internal_error(e)

    return JSONResponse(
        status_code=201,
        content={"message": "Pokemon added successfully", "pokemon": record.to_json()},
    )


@router.put("/pokemon/{pokemon_id}", dependencies=[Depends(authenticate)])
async def replace_pokemon(
    record: PokemonRecord,
    pokemon_id: int = Path(gt=0),
    db: AsyncSession = Depends(get_db),
):
    try:
        await store.update_pokemon_by_id(db, pokemon_id, record)
        await store.commit(db)
    except StoreFailure as e:
        await store.rollback(db)
        return _internal_error(e)
    return Response(status_code=200)


@router.delete("/pokemon/{pokemon_id}", dependencies=[Depends(authenticate)])
async def delete_pokemon(
    pokemon_id: int = Path(gt=0),
    db: AsyncSession = Depends(get_db),
):
    try:
        await store.delete_pokemon_by_id(db, pokemon_id)
        await store.commit(db)
    except StoreFailure as e:
        await store.rollback(db)
        return _internal_error(e)
    return Response(status_code=200)


# ---- users ----

@router.post("/user/login")
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    now = datetime.now(timezone.utc)
    try:
        await store.upsert_login_by_email(db, body.user_email, now)
        await store.commit(db)
    except StoreFailure:
        await store.rollback(db)
        return Response(status_code=500)
    return Response(status_code=200)


# ---- games ----

@router.get("/games")
async def list_games(db: AsyncSession = Depends(get_db)):
    try:
        games = await store.list_games(db)
    except StoreFailure as e:
        return _internal_error(e)
    return [game.to_json() for game in games]


@router.get("/games/{game_id}", responses={404: {"model": MessageResponse}})
async def get_game(game_id: int, db: AsyncSession = Depends(get_db)):
    try:
        game = await store.get_game(db, game_id)
    except StoreFailure as e:
        return _internal_error(e)
    if game is None:
        return JSONResponse(status_code=404, content=GAME_NOT_FOUND)
    return game.to_json()


@router.post("/games/add", dependencies=[Depends(authenticate)])
async def add_game(body: GameIn, db: AsyncSession = Depends(get_db)):
    try:
        game = await store.create_game(db, body)
        await store.commit(db)
    except StoreFailure as e:
        await store.rollback(db)
        return _internal_error(e)
    logger.info("Added game generation %s (id %s)", game.generation, game.id)
    return game.to_json()


@router.put(
    "/games/{game_id}",
    dependencies=[Depends(authenticate)],
    responses={404: {"model": MessageResponse}},
)
async def replace_game(game_id: int, body: GameIn, db: AsyncSession = Depends(get_db)):
    try:
        game = await store.update_game(db, game_id, body)
        await store.commit(db)
    except NotFound:
        await store.rollback(db)
        return JSONResponse(status_code=404, content=GAME_NOT_FOUND)
    except StoreFailure as e:
        await store.rollback(db)
        return _internal_error(e)
    return game.to_json()


@router.delete(
    "/games/{game_id}",
    dependencies=[Depends(authenticate)],
    responses={404: {"model": MessageResponse}},
)
async def delete_game(game_id: int, db: AsyncSession = Depends(get_db)):
    try:
        await store.delete_game(db, game_id)
        await store.commit(db)
    except NotFound:
        await store.rollback(db)
        return JSONResponse(status_code=404, content=GAME_NOT_FOUND)
    except StoreFailure as e:
        await store.rollback(db)
        return _internal_error(e)
    return Response(status_code=200)
