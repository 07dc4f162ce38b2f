"""Run the gateway with uvicorn: ``python -m legion``."""

import uvicorn

from legion.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run("legion.main:app", host=settings.host, port=settings.port, reload=False)


if __name__ == "__main__":
    main()
