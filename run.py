"""Entry point for the User Service API.

Starts the FastAPI application under Uvicorn.  Host, port and log
level come from the environment (see ``user_service_api.app.core.config``),
for example::

    DATABASE_URL=/var/lib/users/users.db PORT=8080 python run.py
"""
import asyncio
import logging

from uvicorn import Config, Server

from user_service_api.app.core.config import settings
from user_service_api.app.main import app


async def run_api() -> None:
    """Serve the API until the process is interrupted."""
    config = Config(
        app=app,
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
    server = Server(config)
    await server.serve()


async def main() -> None:
    try:
        await run_api()
    except Exception:
        logging.getLogger(__name__).exception("User service stopped with an error")
        raise


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
