from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

ORIGIN_CLIENT = "client"
ORIGIN_UPSTREAM = "upstream"


class Base(DeclarativeBase):
    """
    Base class for all ORM models.

    SQLAlchemy uses this to keep track of tables and mappings.
    """
    pass


class Pokemon(Base):
    """
    ORM model for the 'pokemon' table.

    Holds both records written back from the upstream API (origin "upstream")
    and records submitted by clients (origin "client"). The primary key is the
    species id itself, never a generated value, so upserts are keyed by it.
    """
    __tablename__ = "pokemon"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    types: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    abilities: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    hidden_ability: Mapped[str | None] = mapped_column(String)
    evolves_from: Mapped[str | None] = mapped_column(String)
    # {"hp": .., "attack": .., "defense": .., "specialAttack": .., ...}
    base_stats: Mapped[dict] = mapped_column(JSON, nullable=False)
    image: Mapped[str | None] = mapped_column(Text)
    flavor_text: Mapped[str | None] = mapped_column(Text)
    owner_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
    )
    # only upstream write-backs may be refreshed from upstream
    origin: Mapped[str] = mapped_column(
        String, nullable=False, default=ORIGIN_CLIENT, server_default=ORIGIN_CLIENT,
    )


class User(Base):
    """
    ORM model for the 'users' table.

    One row per email; login only bumps last_login.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    last_login: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # Plain column rather than a foreign key: pokemon.owner_id already points
    # the other way and a cycle would need ALTER TABLE support.
    pokemon_id: Mapped[int | None] = mapped_column(Integer)


class Game(Base):
    __tablename__ = "games"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    generation: Mapped[int] = mapped_column(Integer, nullable=False)
    games_released: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    platforms: Mapped[str | None] = mapped_column(String)
    year_released: Mapped[str | None] = mapped_column(String)
    region: Mapped[str | None] = mapped_column(String)
    well_known_pokemon: Mapped[str | None] = mapped_column(Text)
    image: Mapped[str | None] = mapped_column(Text)
