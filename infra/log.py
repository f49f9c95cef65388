from __future__ import annotations

import sys

from loguru import logger

_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <7} | {message}"
_configured = False


def configure_logging(level: str = "INFO", *, sink=None) -> None:
    """
    Log de diagnóstico (stderr). O stdout fica reservado para o CSV.
    Executa só uma vez por processo.
    """
    global _configured
    if _configured:
        return

    logger.remove()
    logger.add(
        sink if sink is not None else sys.stderr,
        level=level.upper(),
        format=_FORMAT,
        backtrace=False,
        diagnose=False,
    )
    _configured = True
