from neuralmetrics.core.config import settings
from neuralmetrics.core.logger import configure_logging, get_logger

logger = get_logger("neuralmetrics.startup")


def initialize_application():
    configure_logging()
    logger.info(
        "application_initialized",
        extra={
            "service": settings.service_name,
            "environment": settings.app_environment,
            "stream_update_interval_seconds": settings.stream_update_interval_seconds,
            "stream_heartbeat_interval_seconds": (
                settings.stream_heartbeat_interval_seconds
            ),
        },
    )
