from logging.config import dictConfig
from typing import Any

import structlog

from tipjar_common.logging.std_logging_config import StdLoggingConfig, common_logger_config
from tipjar_common.utils.utils import deep_merge


def setup_logging(logging_config: dict[str, Any] | None = None) -> None:
    dictConfig(deep_merge(common_logger_config, logging_config or {}))

    structlog.configure(
        processors=StdLoggingConfig.structlog_processors,
        # Imitates the API of `logging.Logger`
        wrapper_class=structlog.stdlib.BoundLogger,
        # Hands the rendered event to a stdlib logger, so handlers and filters from dictConfig apply
        logger_factory=StdLoggingConfig.logger_factory,
        cache_logger_on_first_use=True,
    )
