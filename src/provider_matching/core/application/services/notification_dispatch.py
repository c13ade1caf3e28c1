from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


def notify_safely(call: Callable[..., None], *args: Any, **context: Any) -> bool:
    """
    Dispara uma notificação sem deixar erro de entrega escapar.
    Retorna False quando o gateway falhou (já logado).
    """
    try:
        call(*args)
        return True
    except Exception as exc:  # noqa: BLE001
        logger.error(
            "notification.dispatch_failed",
            notification=getattr(call, "__name__", repr(call)),
            error=str(exc),
            **context,
        )
        return False
