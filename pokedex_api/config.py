import os
from dataclasses import dataclass, field

from pokedex_api.errors import ConfigError
from pokedex_api.normalizer import ImageBases

DEFAULT_DATABASE_URL = "postgresql+asyncpg://postgres:postgres@db:5432/pokedex"
DEFAULT_POKEAPI_BASE_URL = "https://pokeapi.co/api/v2"
DEFAULT_IMAGE_URL = (
    "https://raw.githubusercontent.com/PokeAPI/sprites/master/"
    "sprites/pokemon/other/official-artwork"
)
DEFAULT_ALT_IMAGE_URL = (
    "https://raw.githubusercontent.com/PokeAPI/sprites/master/"
    "sprites/pokemon/other/home"
)

# Upstream currently exposes 1025 species on the first page
MAX_LIST_LIMIT = 1025


@dataclass(frozen=True)
class Settings:
    """
    Process configuration.

    Built once at startup (usually via `Settings.from_env()`) and handed to
    the app factory; components read what they need from it instead of from
    module-level globals.
    """

    secret_key: str
    database_url: str = DEFAULT_DATABASE_URL
    pokeapi_base_url: str = DEFAULT_POKEAPI_BASE_URL
    image_url: str = DEFAULT_IMAGE_URL
    alt_image_url: str = DEFAULT_ALT_IMAGE_URL
    jwt_algorithm: str = "HS256"
    port: int = 4000
    api_prefix: str = ""
    list_limit: int = MAX_LIST_LIMIT
    request_timeout: float = 10.0
    cors_origins: tuple[str, ...] = field(default=("*",))
    log_level: str = "INFO"

    @property
    def image_bases(self) -> ImageBases:
        return ImageBases(primary=self.image_url, alternate=self.alt_image_url)

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ

        secret_key = env.get("SECRET_KEY")
        if not secret_key:
            raise ConfigError("SECRET_KEY must be set")

        list_limit = _int_from(env, "POKEMON_LIST_LIMIT", MAX_LIST_LIMIT)
        if not 1 <= list_limit <= MAX_LIST_LIMIT:
            raise ConfigError(
                f"POKEMON_LIST_LIMIT must be between 1 and {MAX_LIST_LIMIT}"
            )

        origins = env.get("CORS_ORIGINS", "*")

        return cls(
            secret_key=secret_key,
            database_url=env.get("DATABASE_URL", DEFAULT_DATABASE_URL),
            pokeapi_base_url=env.get(
                "POKEDATABASE_URL", DEFAULT_POKEAPI_BASE_URL
            ).rstrip("/"),
            image_url=env.get("IMAGE_URL", DEFAULT_IMAGE_URL).rstrip("/"),
            alt_image_url=env.get("ALT_IMAGE_URL", DEFAULT_ALT_IMAGE_URL).rstrip("/"),
            jwt_algorithm=env.get("JWT_ALGORITHM", "HS256"),
            port=_int_from(env, "PORT", 4000),
            api_prefix=env.get("API_PREFIX", "").rstrip("/"),
            list_limit=list_limit,
            request_timeout=_float_from(env, "UPSTREAM_TIMEOUT", 10.0),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )


def _int_from(env, name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _float_from(env, name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
