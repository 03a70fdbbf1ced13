"""
Component logging helpers for VoiceSync.

Every module gets the same five log functions with a component prefix,
eliminating the need to build logger names and prefixes by hand:

    from shared.log import create_logger
    log_trace, log_debug, log_info, log_warn, log_error = create_logger("Worker")
    log_info("Uploaded 3f2a")  # -> [VoiceSync Worker] Uploaded 3f2a

The functions are thin wrappers over the stdlib logger ``VoiceSync.<component>``,
so handlers, levels and formatting are controlled by configure_logging() (or
by the host application's own logging setup).
"""

import logging

from pythonjsonlogger import json as jsonlogger

TRACE = 5
logging.addLevelName(TRACE, "TRACE")


def create_logger(component: str = ""):
    """Create log functions for a component.

    Args:
        component: Component name suffix. If provided, prefix becomes
                   "[VoiceSync {component}]", otherwise "[VoiceSync]".

    Returns:
        Tuple of (log_trace, log_debug, log_info, log_warn, log_error) functions.
    """
    prefix = f"[VoiceSync {component}]" if component else "[VoiceSync]"
    logger = logging.getLogger(f"VoiceSync.{component}" if component else "VoiceSync")

    def log_trace(msg): logger.log(TRACE, f"{prefix} {msg}")
    def log_debug(msg): logger.debug(f"{prefix} {msg}")
    def log_info(msg): logger.info(f"{prefix} {msg}")
    def log_warn(msg): logger.warning(f"{prefix} {msg}")
    def log_error(msg): logger.error(f"{prefix} {msg}")

    return log_trace, log_debug, log_info, log_warn, log_error


def configure_logging(
    log_level: str = "info",
    json_output: bool = False,
    debug_logging: bool = False,
) -> None:
    """Configure the root logger.

    Plain output: "HH:MM:SS [LEVEL] message". JSON output:
    {"ts": "...", "level": "...", "name": "...", "msg": "..."}

    Args:
        log_level: Logging level string (e.g., "info", "debug", "trace").
        json_output: Emit structured JSON lines instead of plain text.
        debug_logging: Log every VoiceSync record down to TRACE (each queue
                       transition), whatever log_level says.
    """
    if log_level.lower() == "trace":
        level = TRACE
    else:
        level = getattr(logging, log_level.upper(), logging.INFO)

    if json_output:
        formatter = jsonlogger.JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={
                "asctime": "ts",
                "levelname": "level",
                "message": "msg",
            },
        )
    else:
        formatter = logging.Formatter(
            fmt='%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%H:%M:%S',
        )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    # Clear any existing handlers to avoid duplicate output
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    logging.getLogger("VoiceSync").setLevel(TRACE if debug_logging else logging.NOTSET)
