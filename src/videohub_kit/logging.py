import logging
from rich.logging import RichHandler
def setup_logging(level: str = "INFO"):
    logging.basicConfig(level=level.upper(), format="%(message)s", datefmt="[%X]", handlers=[RichHandler(rich_tracebacks=True)])
    return logging.getLogger("videohub_kit")
