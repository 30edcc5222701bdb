"""
Logging setup shared by the CLI and the web monitor
"""

import logging


def configure_logging(config, level=None) -> None:
    """
    Configure root logging from a config class

    Args:
        config: Config class providing LOG_LEVEL, LOG_FORMAT and LOG_FILE
        level: Optional level name overriding config.LOG_LEVEL
    """
    level_name = (level or config.LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=config.LOG_FORMAT
    )

    if config.LOG_FILE:
        file_handler = logging.FileHandler(config.LOG_FILE)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s | %(name)s | %(levelname)s | %(funcName)s | %(message)s'
        ))
        logging.getLogger().addHandler(file_handler)
