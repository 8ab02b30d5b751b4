import os
import logging
import uvicorn

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

if os.environ.get("DEBUG", "0") == "1":
    logging.getLogger().setLevel(logging.DEBUG)

from talkcut.api import create_app  # noqa: E402
from talkcut.config import get_config  # noqa: E402

config = get_config()
app = create_app()


def run() -> None:
    logger.info(f"Starting talkcut on {config.host}:{config.port}")
    logging.getLogger("httpx").setLevel(logging.WARNING)
    uvicorn.run(app, host=config.host, port=config.port)


if __name__ == "__main__":
    run()
