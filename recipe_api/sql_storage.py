from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, DateTime, Integer, String, create_engine, func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from .migrations import run_migrations
from .models import Ingredient, Recipe
from .storage import RecipeRepository, StorageError

logger = logging.getLogger(__name__)

IN_MEMORY_URL = "sqlite://"

# Driver bind errors (out-of-range ints, lone surrogates) are not SQLAlchemyErrors.
WRITE_ERRORS = (SQLAlchemyError, OverflowError, UnicodeEncodeError)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class RecipeRow(Base):
    """Row of the ``recipes`` table created by the ``CreateRecipesTable`` migration."""

    __tablename__ = "recipes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str] = mapped_column(String(500))
    ingredients: Mapped[List[Dict[str, Any]]] = mapped_column(JSON)
    instructions: Mapped[List[str]] = mapped_column(JSON)
    prep_time_minutes: Mapped[int] = mapped_column("prepTimeMinutes", Integer)
    cook_time_minutes: Mapped[int] = mapped_column("cookTimeMinutes", Integer)
    servings: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(
        "createdAt",
        DateTime,
        default=_utcnow,
        server_default=func.current_timestamp(),
    )


def create_storage_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine for ``url``.

    In-memory SQLite shares a single connection so every session sees the
    same database. For file-backed SQLite the parent directory is created.
    """

    if url in (IN_MEMORY_URL, "sqlite:///:memory:"):
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    if url.startswith("sqlite:///"):
        Path(url.replace("sqlite:///", "", 1)).parent.mkdir(parents=True, exist_ok=True)

    return create_engine(url, echo=echo)


class SqlRecipeStorage(RecipeRepository):
    """Recipe storage backed by a relational database through SQLAlchemy."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @property
    def engine(self) -> Engine:
        return self._engine

    @classmethod
    def from_url(cls, url: str, *, echo: bool = False, migrate: bool = True) -> "SqlRecipeStorage":
        engine = create_storage_engine(url, echo=echo)
        if migrate:
            run_migrations(engine)
        return cls(engine)

    @classmethod
    def from_env(cls, *, migrate: bool = True) -> "SqlRecipeStorage":
        """Build a storage instance from environment variables."""

        url = database_url_from_env()
        echo = os.environ.get("DB_LOGGING", "").lower() == "true"
        logger.info("Using recipe database %s", _redact(url))
        return cls.from_url(url, echo=echo, migrate=migrate)

    def add_recipe(self, recipe: Recipe) -> Recipe:
        row = RecipeRow(
            id=recipe.id,
            title=recipe.title,
            description=recipe.description,
            ingredients=[ingredient.to_dict() for ingredient in recipe.ingredients],
            instructions=list(recipe.instructions),
            prep_time_minutes=recipe.prep_time_minutes,
            cook_time_minutes=recipe.cook_time_minutes,
            servings=recipe.servings,
        )
        if recipe.created_at is not None:
            row.created_at = recipe.created_at

        try:
            with self._session_factory() as session:
                with session.begin():
                    session.add(row)
                session.refresh(row)
                return self._row_to_recipe(row)
        except WRITE_ERRORS as exc:
            raise StorageError(f"Failed to save recipe '{recipe.id}'.") from exc

    def get_recipe(self, recipe_id: str) -> Recipe:
        try:
            with self._session_factory() as session:
                row = session.get(RecipeRow, recipe_id)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to load recipe '{recipe_id}'.") from exc

        if row is None:
            raise KeyError(f"Recipe '{recipe_id}' does not exist.")
        return self._row_to_recipe(row)

    def _row_to_recipe(self, row: RecipeRow) -> Recipe:
        return Recipe(
            id=row.id,
            title=row.title,
            description=row.description,
            ingredients=[Ingredient.from_dict(item) for item in row.ingredients],
            instructions=list(row.instructions),
            prep_time_minutes=row.prep_time_minutes,
            cook_time_minutes=row.cook_time_minutes,
            servings=row.servings,
            created_at=row.created_at,
        )


def database_url_from_env() -> str:
    """Resolve the database URL.

    ``APP_ENV=test`` always selects an in-memory database. Otherwise
    ``DATABASE_URL`` is used, falling back to ``data/recipe-api.db`` under the
    working directory.
    """

    if os.environ.get("APP_ENV") == "test":
        return IN_MEMORY_URL

    url: Optional[str] = os.environ.get("DATABASE_URL")
    if url:
        return url
    return f"sqlite:///{Path.cwd() / 'data' / 'recipe-api.db'}"


def _redact(url: str) -> str:
    if "@" not in url:
        return url
    scheme, _, rest = url.partition("://")
    return f"{scheme}://***@{rest.split('@', 1)[1]}"


__all__ = [
    "IN_MEMORY_URL",
    "RecipeRow",
    "SqlRecipeStorage",
    "create_storage_engine",
    "database_url_from_env",
]
