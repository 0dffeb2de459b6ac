"""WSGI entrypoint for the recipe API.

Serve with a WSGI server such as Gunicorn (``gunicorn main:app``). Local
development can use ``flask --app main run``, which imports the ``app``
object defined below. Set ``LOG_LEVEL`` to change verbosity.
"""

import logging
import os

from recipe_api import create_app

logging.basicConfig(
    level=getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = create_app()


__all__ = ["app"]
