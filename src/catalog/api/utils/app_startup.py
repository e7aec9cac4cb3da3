import logging
import sys
from pathlib import Path

from loguru import logger

from src.catalog.runtime.config.config_data import LoggingConfig
from src.catalog.runtime.context import get_config

# Modules whose records follow ``logging.store_level`` instead of ``logging.level``
STORE_MODULES = ("src.catalog.core.storage", "src.catalog.entities.service.product.repository")

# stdlib loggers that are chatty at INFO while serving
QUIET_LOGGERS = {
    "uvicorn": logging.INFO,
    "uvicorn.error": logging.INFO,
    "uvicorn.access": logging.CRITICAL,
    "watchfiles.main": logging.WARNING,
    "multipart": logging.WARNING,
}

FMT_PLAIN = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "[<cyan>{extra[request_id]}</cyan>] | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def level_filter(cfg: LoggingConfig) -> dict[str, str]:
    """Per-module minimum levels: the store modules get their own threshold."""
    levels = {"": cfg.level.upper()}
    for module in STORE_MODULES:
        levels[module] = cfg.store_level.upper()
    return levels


class InterceptHandler(logging.Handler):
    """Forward stdlib ``logging`` records (uvicorn, starlette) into Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        # The request middleware writes one line per request already
        if record.name == "uvicorn.access":
            return

        # ...and logs unhandled errors with the request id, so skip uvicorn's copy
        if record.name == "uvicorn.error" and record.levelno >= logging.ERROR:
            return

        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # depth=2: stdlib -> this handler -> caller
        logger.opt(depth=2, exception=record.exc_info).bind(
            logger_name=record.name
        ).log(level, record.getMessage())


def configure_logging() -> None:
    main_config = get_config()
    cfg = main_config.logging
    env = main_config.app.environment
    store_path = main_config.store.path

    # 1) Start from a clean Loguru with a request_id on every record
    logger.remove()
    logger.configure(extra={"request_id": "-"})

    def _ensure_request_id(record):
        record["extra"].setdefault("request_id", "-")

    log = logger.patch(_ensure_request_id)

    verbose_errors = env != "production"
    levels = level_filter(cfg)

    # 2) Console: human-readable, same thresholds as the file
    log.add(
        sys.stderr,
        level="TRACE",
        filter=levels,
        format=FMT_PLAIN,
        colorize=True,
        backtrace=verbose_errors,
        diagnose=verbose_errors,
    )

    # 3) File: rotated, JSON lines unless format is plain
    if cfg.file:
        path = Path(cfg.file)
        path.parent.mkdir(parents=True, exist_ok=True)
        serialize = cfg.format == "json"
        log.add(
            str(path),
            level="TRACE",
            filter=levels,
            format="{message}" if serialize else FMT_PLAIN,
            serialize=serialize,
            rotation=f"{cfg.max_size_mb} MB",
            retention=cfg.backup_count,
            compression="zip",
            enqueue=True,
            backtrace=verbose_errors,
            diagnose=verbose_errors,
        )

    # 4) Route every stdlib logger through the interceptor on the root logger
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in list(logging.root.manager.loggerDict.keys()):
        stdlog = logging.getLogger(name)
        stdlog.handlers = []
        stdlog.propagate = True

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    log.info(
        "Logging configured",
        app_level=cfg.level,
        store_level=cfg.store_level,
        store=store_path,
        app_format=cfg.format,
        app_file=cfg.file,
        environment=env,
    )
