import logging
import threading
from typing import Iterable, Optional, Tuple

import click
from flask import Flask, Response, jsonify, request
from sqlalchemy.engine import Engine
from werkzeug.exceptions import HTTPException

from .migrations import revert_last_migration, run_migrations
from .models import Ingredient, Recipe, RecipeSubmission
from .service import RecipeService
from .sql_storage import SqlRecipeStorage, create_storage_engine, database_url_from_env
from .storage import RecipeRepository, StorageError
from .validation import Violation, validate_submission

API_PREFIX = "/api"
MAX_BODY_BYTES = 1024 * 1024

logger = logging.getLogger(__name__)


def create_app(storage: Optional[RecipeRepository] = None) -> Flask:
    """Create and configure the Flask application.

    Parameters
    ----------
    storage:
        Optional recipe repository. When ``None`` the application will use
        :class:`SqlRecipeStorage` configured through environment variables and
        apply pending migrations before serving its first request. CLI
        commands never trigger that step, so ``migrate`` and
        ``migrate-revert`` see the schema as it is on disk.
    """

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MAX_BODY_BYTES
    app.json.sort_keys = False

    if storage is None:
        storage = SqlRecipeStorage.from_env(migrate=False)
        _migrate_before_first_request(app, storage.engine)
    app.config["RECIPE_SERVICE"] = RecipeService(storage)

    @app.get(f"{API_PREFIX}/health")
    def health() -> Response:
        return jsonify(status="ok")

    @app.post(f"{API_PREFIX}/recipes")
    def create_recipe() -> Tuple[Response, int]:
        service: RecipeService = app.config["RECIPE_SERVICE"]

        result = validate_submission(request.get_json(silent=True))
        if not result.is_valid:
            fields = sorted({violation.field for violation in result.violations})
            logger.warning("Rejected recipe submission; invalid fields: %s", ", ".join(fields))
            return _bad_request(result.violations)

        try:
            recipe = service.create(result.submission)
        except StorageError:
            logger.exception("Failed to save recipe")
            return _server_error()
        except Exception:  # pragma: no cover - defensive programming
            logger.exception("Unexpected error while saving recipe")
            return _server_error()

        return jsonify(recipe.to_dict()), 201

    @app.errorhandler(HTTPException)
    def http_error(exc: HTTPException) -> Tuple[Response, int]:
        status = exc.code or 500
        body = {"statusCode": status, "error": exc.name, "message": exc.description}
        return jsonify(body), status

    @app.cli.command("migrate")
    def migrate_command() -> None:
        """Apply pending database migrations."""

        ran = run_migrations(_engine_for(storage))
        if not ran:
            click.echo("No pending migrations.")
        for migration in ran:
            click.echo(f"Applied {migration.name}")

    @app.cli.command("migrate-revert")
    def migrate_revert_command() -> None:
        """Revert the most recently applied migration."""

        migration = revert_last_migration(_engine_for(storage))
        if migration is None:
            click.echo("No migrations to revert.")
        else:
            click.echo(f"Reverted {migration.name}")

    return app


def _migrate_before_first_request(app: Flask, engine: Engine) -> None:
    lock = threading.Lock()
    migrated = False

    @app.before_request
    def apply_pending_migrations() -> None:
        nonlocal migrated
        if migrated:
            return
        with lock:
            if not migrated:
                run_migrations(engine)
                migrated = True


def _engine_for(storage: RecipeRepository) -> Engine:
    engine = getattr(storage, "engine", None)
    if isinstance(engine, Engine):
        return engine
    return create_storage_engine(database_url_from_env())


def _bad_request(violations: Iterable[Violation]) -> Tuple[Response, int]:
    violations = list(violations)
    body = {
        "statusCode": 400,
        "error": "Bad Request",
        "message": [violation.message for violation in violations],
        "violations": [violation.to_dict() for violation in violations],
    }
    return jsonify(body), 400


def _server_error() -> Tuple[Response, int]:
    body = {
        "statusCode": 500,
        "error": "Internal Server Error",
        "message": "Internal server error",
    }
    return jsonify(body), 500


__all__ = ["create_app", "Ingredient", "Recipe", "RecipeService", "RecipeSubmission"]
