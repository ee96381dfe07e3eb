# pokedex_api/schemas.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base for every public payload.

    Fields are snake_case in Python and camelCase on the wire
    (hiddenAbility, baseStats, ...). Input accepts either spelling.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# ---- Shared error models (for docs / consistency) ----
class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


# ---- Pokemon ----
class BaseStats(CamelModel):
    hp: int
    attack: int
    defense: int
    special_attack: int
    special_defense: int
    speed: int


class PokemonRecord(CamelModel):
    id: int = Field(gt=0)
    name: str
    types: List[str] = Field(min_length=1, max_length=2)
    abilities: List[str] = Field(default_factory=list)
    hidden_ability: Optional[str] = None
    evolves_from: Optional[str] = None
    base_stats: BaseStats
    image: Optional[str] = None
    flavor_text: Optional[str] = None
    # users.id of the submitter; None for records written back from upstream
    owner: Optional[int] = None


class PokemonSubmission(PokemonRecord):
    """
    Body of POST /pokemon/add: a full record plus the submitting user.

    The submitter is named by users.id or, since login never hands the id
    out, by the email they logged in with. userId wins when both are given.
    """

    user_id: Optional[int] = None
    user_email: Optional[str] = None

    def to_record(self) -> PokemonRecord:
        data = self.model_dump(exclude={"user_id", "user_email"})
        if self.user_id is not None:
            data["owner"] = self.user_id
        return PokemonRecord(**data)


# ---- /pokemon (list projection) ----
class PokemonSummary(CamelModel):
    id: int
    name: str
    image: str


class PokemonAddedResponse(BaseModel):
    message: str
    pokemon: PokemonRecord


# ---- /user/login ----
class LoginRequest(CamelModel):
    user_email: str = Field(min_length=1)


class UserIdentity(CamelModel):
    id: int
    email: str
    last_login: datetime
    pokemon_id: Optional[int] = None


# ---- /games ----
class GameIn(CamelModel):
    generation: int
    games_released: List[str] = Field(default_factory=list)
    platforms: Optional[str] = None
    year_released: Optional[str] = None
    region: Optional[str] = None
    well_known_pokemon: Optional[str] = None
    image: Optional[str] = None


class GameRecord(GameIn):
    id: int
