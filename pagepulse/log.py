import logging
import os

_configured = False


def setup_logging(level=None):
    """
    Configures the root logger once per process.
    Streamlit re-executes the script on every interaction, so repeat calls are no-ops.
    """
    global _configured
    if _configured:
        return

    level = level or os.getenv("LOG_LEVEL", "INFO")
    logging.basicConfig(
        level=level.upper() if isinstance(level, str) else level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    _configured = True
