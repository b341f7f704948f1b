"""
Run the API with uvicorn: ``python -m rewards_backend``.
"""

from __future__ import annotations

import uvicorn

from rewards_backend.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "rewards_backend.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
