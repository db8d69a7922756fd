import asyncio
import logging

import uvicorn

from oicp_bridge.config import get_settings


async def run_http_api() -> None:
    settings = get_settings()
    config = uvicorn.Config(
        "oicp_bridge.api:app",
        host=settings.HOST,
        port=settings.PORT,
        loop="asyncio",
        log_level=settings.LOG_LEVEL.lower(),
    )
    server = uvicorn.Server(config)
    await server.serve()


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.info(
        "⚡ OICP bridge listening on http://%s:%s | allowed identifications: %d",
        settings.HOST,
        settings.PORT,
        len(settings.ALLOWED_IDENTIFICATIONS),
    )
    asyncio.run(run_http_api())


if __name__ == "__main__":
    main()
