"""Run the notes app with uvicorn: ``python -m notes_backend``."""
import logging

import uvicorn

from notes_backend import config
from notes_database.init_db import init_db


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    init_db()
    uvicorn.run("notes_backend.main:app", host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
