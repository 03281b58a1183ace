# metabase_mcp/core/logging_setup.py
import logging
from typing import Optional

ACCESS_LOGGER = "metabase_mcp.access"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def access_line(method: str, path: str, status: int, content_length: Optional[str], elapsed_ms: float) -> str:
    """One line per request, the way morgan's "tiny" format prints it."""
    return f"{method} {path} {status} {content_length or '-'} - {elapsed_ms:.3f} ms"
