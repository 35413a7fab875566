from __future__ import annotations

import logging

import uvicorn

from .settings import SETTINGS


def main() -> None:
    logging.basicConfig(
        level=SETTINGS.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger(__name__).info("visreg listening on http://%s:%s", SETTINGS.host, SETTINGS.port)
    uvicorn.run("visreg.app.main:app", host=SETTINGS.host, port=SETTINGS.port)


if __name__ == "__main__":
    main()
