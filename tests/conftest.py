from collections import Counter

import httpx
import jwt
import pytest
from fastapi.testclient import TestClient

from pokedex_api.config import Settings
from pokedex_api.db import create_engine, create_sessionmaker, run_migrations
from pokedex_api.main import create_app
from pokedex_api.pokeapi_client import PokeApiClient
from pokedex_api.routes import get_pokeapi

UPSTREAM_BASE = "https://pokeapi.test/api/v2"
PRIMARY_IMAGES = "https://img.test/primary"
ALT_IMAGES = "https://img.test/alt"
SECRET = "pokedex-test-secret-0123456789abcdef"

STAT_NAMES = ("hp", "attack", "defense", "special-attack", "special-defense", "speed")


def make_detail(pokemon_id, name, types=("electric",), abilities=None, stats=(35, 55, 40, 50, 50, 90)):
    if abilities is None:
        abilities = [("static", False), ("lightning-rod", True)]
    return {
        "id": pokemon_id,
        "name": name,
        "types": [{"slot": i + 1, "type": {"name": t}} for i, t in enumerate(types)],
        "abilities": [
            {"ability": {"name": a}, "is_hidden": hidden, "slot": i + 1}
            for i, (a, hidden) in enumerate(abilities)
        ],
        "stats": [
            {"base_stat": value, "stat": {"name": STAT_NAMES[i]}}
            for i, value in enumerate(stats)
        ],
    }


def make_species(evolves_from=None, flavor="It stores electricity\\nin its cheeks.\f"):
    entries = [
        {"flavor_text": "Il stocke l'electricite.", "language": {"name": "fr"}},
    ]
    if flavor is not None:
        entries.append({"flavor_text": flavor, "language": {"name": "en"}})
    return {
        "evolves_from_species": {"name": evolves_from} if evolves_from else None,
        "flavor_text_entries": entries,
    }


def make_record(pokemon_id=25, name="pikachu", **overrides):
    record = {
        "id": pokemon_id,
        "name": name,
        "types": ["electric"],
        "abilities": ["static"],
        "hiddenAbility": "lightning-rod",
        "evolvesFrom": "pichu",
        "baseStats": {
            "hp": 35,
            "attack": 55,
            "defense": 40,
            "specialAttack": 50,
            "specialDefense": 50,
            "speed": 90,
        },
        "image": f"{PRIMARY_IMAGES}/{pokemon_id}.png",
        "flavorText": "A stored description.",
    }
    record.update(overrides)
    return record


class FakeUpstream:
    """
    In-memory stand-in for the upstream API, served through httpx.MockTransport.

    Counts every request by path so tests can assert on upstream traffic.
    """

    def __init__(self):
        self.details = {}
        self.species = {}
        self.order = []
        self.failing = set()
        self.calls = Counter()

    def add(self, detail, species=None):
        self.order.append(detail["name"])
        for key in (str(detail["id"]), detail["name"]):
            self.details[key] = detail
            self.species[key] = species if species is not None else make_species()

    @property
    def total_calls(self):
        return sum(self.calls.values())

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path[len("/api/v2"):]
        self.calls[path] += 1

        parts = path.strip("/").split("/")
        if parts == ["pokemon"]:
            limit = int(request.url.params.get("limit", 20))
            offset = int(request.url.params.get("offset", 0))
            names = self.order[offset:offset + limit]
            return httpx.Response(200, json={
                "count": len(self.order),
                "results": [
                    {"name": n, "url": f"{UPSTREAM_BASE}/pokemon/{self.details[n]['id']}/"}
                    for n in names
                ],
            })

        if len(parts) == 2 and parts[0] in ("pokemon", "pokemon-species"):
            key = parts[1]
            if key in self.failing:
                return httpx.Response(500, text="upstream exploded")
            source = self.details if parts[0] == "pokemon" else self.species
            if key in source:
                return httpx.Response(200, json=source[key])

        return httpx.Response(404, text="Not Found")


@pytest.fixture
def settings(tmp_path):
    return Settings(
        secret_key=SECRET,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'pokedex.db'}",
        pokeapi_base_url=UPSTREAM_BASE,
        image_url=PRIMARY_IMAGES,
        alt_image_url=ALT_IMAGES,
    )


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def pokeapi(upstream):
    return PokeApiClient(
        UPSTREAM_BASE,
        httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler)),
    )


@pytest.fixture
def app(settings, pokeapi):
    app = create_app(settings)
    app.dependency_overrides[get_pokeapi] = lambda: pokeapi
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers():
    token = jwt.encode({"sub": "ash@example.com"}, SECRET, algorithm="HS256")
    return {"authorization": token}


@pytest.fixture
async def db(settings):
    engine = create_engine(settings.database_url)
    await run_migrations(engine, max_retries=1)
    async with create_sessionmaker(engine)() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def anyio_backend():
    return "asyncio"
