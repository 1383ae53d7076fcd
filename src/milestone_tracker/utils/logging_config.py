"""
Centralized logging configuration for Milestone Tracker.
Provides component-specific loggers with separate log files.
"""

import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any

from ..config import get_config


DETAILED_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - "
    "%(funcName)s() - %(message)s"
)
SIMPLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


class ComponentLogger:
    """Manages component-specific logging with separate files."""

    _loggers: Dict[str, logging.Logger] = {}
    _initialized = False
    _log_dir: Optional[Path] = None
    _debug = False
    _to_file = True

    # Component definitions with their log levels
    COMPONENTS = {
        "api": {"level": logging.INFO, "file": "api.log"},
        "database": {"level": logging.INFO, "file": "database.log"},
        "engine": {"level": logging.INFO, "file": "engine.log"},
        "auth": {"level": logging.INFO, "file": "auth.log"},
        "notifications": {"level": logging.INFO, "file": "notifications.log"},
        "main": {"level": logging.INFO, "file": "main.log"},
        "error": {"level": logging.ERROR, "file": "errors.log"},  # Centralized error log
    }

    # Module path segment -> component
    MODULE_COMPONENTS = {
        "api": "api",
        "auth": "auth",
        "db": "database",
        "store": "database",
        "repositories": "database",
        "core": "engine",
        "main": "main",
        "launcher": "main",
    }

    @classmethod
    def initialize(
        cls, log_dir: Optional[str] = None, debug: Optional[bool] = None
    ) -> None:
        """
        Initialize the logging system with component-specific loggers.

        Args:
            log_dir: Directory for log files. Defaults to config.app.log_dir
            debug: Enable debug logging for all components. Defaults to config.server.debug
        """
        if cls._initialized:
            return

        config = get_config()
        cls._debug = config.server.debug if debug is None else debug
        cls._to_file = config.app.log_to_file

        if cls._to_file:
            base_dir = Path(log_dir or config.app.log_dir)
            # Session-specific subdirectory
            session_dir = datetime.now().strftime("%Y%m%d_%H%M%S")
            cls._log_dir = base_dir / session_dir
            cls._log_dir.mkdir(parents=True, exist_ok=True)

        root_level = logging.DEBUG if cls._debug else logging.INFO
        logging.getLogger().setLevel(root_level)

        for component_name in cls.COMPONENTS:
            cls._create_component_logger(component_name)

        cls._initialized = True

        main_logger = cls._loggers.get("main")
        if main_logger:
            main_logger.info("Milestone Tracker logging initialized")
            if cls._log_dir:
                main_logger.info(f"Log directory: {cls._log_dir}")
            main_logger.debug(f"Database: {config.database.url}")

    @classmethod
    def _create_component_logger(cls, component: str) -> logging.Logger:
        """Create (or return) the logger for a component."""
        if component in cls._loggers:
            return cls._loggers[component]

        component_config = cls.COMPONENTS.get(
            component, {"level": logging.INFO, "file": f"{component}.log"}
        )
        level = logging.DEBUG if cls._debug else component_config["level"]

        logger = logging.getLogger(f"milestone_tracker.{component}")
        logger.handlers.clear()
        logger.propagate = False
        logger.setLevel(level)

        if cls._to_file and cls._log_dir is not None:
            file_handler = logging.handlers.RotatingFileHandler(
                cls._log_dir / component_config["file"],
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
            logger.addHandler(file_handler)

            # Console handler for errors only when writing to files
            if component in ("error", "main"):
                console_handler = logging.StreamHandler(sys.stderr)
                console_handler.setLevel(logging.ERROR)
                console_handler.setFormatter(logging.Formatter(SIMPLE_FORMAT, datefmt="%H:%M:%S"))
                logger.addHandler(console_handler)
        else:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(level)
            console_handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            logger.addHandler(console_handler)

        cls._loggers[component] = logger
        return logger

    @classmethod
    def resolve_component(cls, name: str) -> str:
        """Map a component name or a module ``__name__`` to a component."""
        if not name.startswith("milestone_tracker."):
            return name
        parts = name.split(".")
        if parts[-1] == "notification_emitter":
            return "notifications"
        return cls.MODULE_COMPONENTS.get(parts[1], "main")

    @classmethod
    def get_logger(cls, component: str) -> logging.Logger:
        """
        Get a logger for a specific component.

        Args:
            component: Component name (api, database, engine, auth, ...)
                      or a module path like 'milestone_tracker.api.tracking'

        Returns:
            Logger instance for the component
        """
        if not cls._initialized:
            cls.initialize()

        return cls._create_component_logger(cls.resolve_component(component))

    @classmethod
    def log_exception(
        cls, component: str, exc: Exception, context: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Log an exception with context to both component and error logs.

        Args:
            component: Component where the exception occurred
            exc: The exception to log
            context: Additional context information
        """
        component_logger = cls.get_logger(component)
        error_logger = cls.get_logger("error")

        context_str = ""
        if context:
            context_str = " | Context: " + ", ".join(f"{k}={v}" for k, v in context.items())

        component_logger.error(
            f"Exception in {component}: {type(exc).__name__}: {exc}{context_str}",
            exc_info=exc,
        )
        error_logger.error(
            f"[{component}] {type(exc).__name__}: {exc}{context_str}", exc_info=exc
        )

    @classmethod
    def get_log_directory(cls) -> Optional[Path]:
        """Get the current log directory path."""
        return cls._log_dir


def get_logger(component: str) -> logging.Logger:
    """Get a logger for a specific component."""
    return ComponentLogger.get_logger(component)


def initialize_logging(log_dir: Optional[str] = None, debug: Optional[bool] = None) -> None:
    """Initialize the logging system."""
    ComponentLogger.initialize(log_dir=log_dir, debug=debug)


def log_exception(
    component: str, exc: Exception, context: Optional[Dict[str, Any]] = None
) -> None:
    """Log an exception with context."""
    ComponentLogger.log_exception(component, exc, context)


def get_log_directory() -> Optional[Path]:
    """Get the current log directory path."""
    return ComponentLogger.get_log_directory()
