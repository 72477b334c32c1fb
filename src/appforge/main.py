"""Console entry point: serve the API with uvicorn."""

from __future__ import annotations

import uvicorn

from appforge.config.settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "appforge.api.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
