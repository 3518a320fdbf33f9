"""
Logging configuration shared by the coordinator and storage node services.
"""
import logging
import sys


def setup_logging(component_name: str, level=logging.INFO):
    """
    Configure the root logger for a service process.

    Args:
        component_name: Component identifier (e.g. 'coordinator', 'node-9001')
        level: Logging level name or number
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    format_string = f"[%(asctime)s] [{component_name.upper()}] %(levelname)s %(name)s - %(message)s"
    logging.basicConfig(
        level=level,
        format=format_string,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logger = logging.getLogger(component_name)
    logger.info(f"{component_name} logging initialized (level={logging.getLevelName(level)})")
    return logger
