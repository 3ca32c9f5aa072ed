import logging

from app import build_app
from config import configure_logging, get_settings


logger = logging.getLogger(__name__)


def main():
    configure_logging()
    settings = get_settings()

    logger.info("Starting price allocation app on port %s", settings.port)

    demo = build_app()

    demo.launch(
        server_name="0.0.0.0",
        server_port=settings.port,
        share=False,
        show_error=True,
    )


if __name__ == "__main__":
    main()
