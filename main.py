import logging

import uvicorn

from app.config import settings


logger = logging.getLogger("epg_service.main")


def main() -> None:
    """Run the EPG service with uvicorn"""
    logger.info("Listening on %s:%s", settings.listen_host, settings.listen_port)
    uvicorn.run(
        "app.main:app",
        host=settings.listen_host,
        port=settings.listen_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
