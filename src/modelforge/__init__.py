# ModelForge package init
import logging
import os

# Subsystem loggers that can be tuned apart from MODELFORGE_LOG_LEVEL.
_SUBSYSTEM_LEVEL_ENV = {
    "modelforge.llm": "MODELFORGE_LLM_LOG_LEVEL",
    "modelforge.store": "MODELFORGE_STORE_LOG_LEVEL",
    "modelforge.orchestrator": "MODELFORGE_ORCHESTRATOR_LOG_LEVEL",
}


def _level(name: str, fallback: int) -> int:
    return getattr(logging, name.upper(), fallback) if name else fallback


def _configure_logging() -> None:
    level = _level(os.getenv("MODELFORGE_LOG_LEVEL") or "INFO", logging.INFO)
    logger = logging.getLogger("modelforge")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[MODELFORGE][%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(level)

    for name, env in _SUBSYSTEM_LEVEL_ENV.items():
        # Unset means inherit from the package logger.
        logging.getLogger(name).setLevel(_level(os.getenv(env) or "", logging.NOTSET))

    # The driver logs every heartbeat at DEBUG; follow the package level but never below INFO.
    logging.getLogger("pymongo").setLevel(max(level, logging.INFO))


_configure_logging()
