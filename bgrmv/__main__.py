"""Run the API with uvicorn: `python -m bgrmv` or the `bgrmv` script."""

from __future__ import annotations

import uvicorn

from bgrmv.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "bgrmv.api.main:app",
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
