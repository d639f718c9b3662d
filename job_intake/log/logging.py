"""
Loguru logger configuration.

Every module imports ``logger`` from here. Structured context is passed as
keyword arguments (``logger.info("Resume stored", blob_id=...)``) and ends up
in ``record["extra"]``, which the JSON sink serializes and the text sink
renders after the message.
"""
import logging.handlers
import sys

from loguru import logger

from job_intake.core.config import settings

TEXT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level> | {extra}"
)


def configure_logging(config: dict) -> None:
    """
    (Re)configure the global loguru logger.

    Args:
        config: Output of ``Settings.logging_config``.
    """
    logger.remove()
    logger.configure(extra={"service": config["app_name"]})

    if config["json_logs"]:
        logger.add(sys.stderr, level=config["log_level"], serialize=True, backtrace=False)
    else:
        logger.add(sys.stderr, level=config["log_level"], format=TEXT_FORMAT, backtrace=False)

    if config.get("enable_logstash") and config.get("syslog_host"):
        handler = logging.handlers.SysLogHandler(
            address=(config["syslog_host"], config["syslog_port"])
        )
        logger.add(handler, level=config["log_level"], serialize=True)


configure_logging(settings.logging_config)

__all__ = ["configure_logging", "logger"]
