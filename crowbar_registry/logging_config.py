"""
Logging configuration for the crowbar registry.

Every module logs through ``logging.getLogger(__name__)``; this module only
decides where the records go.
"""

import logging
import sys


def setup_logging(
    log_level: str = "INFO",
    service_name: str = "crowbar-registry",
) -> None:
    """
    Configure logging for command line use.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        service_name: Name included in every record
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=f"%(asctime)s - {service_name} - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
