from __future__ import annotations

import structlog
from celery import Task, shared_task

from provider_matching.adapters.config import composition_root

log = structlog.get_logger(__name__)

# ──────────────────────────────────────────────────────────────────────────
# Constantes de filas e parâmetros
# ──────────────────────────────────────────────────────────────────────────
QUEUE_SCHEDULING = "scheduling"
BATCH_LIMIT      = 500


# ──────────────────────────────────────────────────────────────────────────
# Base Task com DLQ
# ──────────────────────────────────────────────────────────────────────────
class BaseTaskWithDLQ(Task):
    """
    Envia p/ Dead Letter Queue quando falhar após todas as retentativas.
    Evita enviar na configuração 'task_always_eager'.
    """
    def on_failure(self, exc, task_id, args, kwargs, einfo):
        is_eager = bool(getattr(self.app.conf, "task_always_eager", False))
        if is_eager:
            log.critical(
                "task.failed_eager_mode",
                task=self.name, task_id=task_id, error=str(exc),
            )
        else:
            log.critical(
                "task.failed_dlq_redirect",
                task=self.name, task_id=task_id, error=str(exc),
                queue="dead_letter",
            )
            self.app.send_task(
                self.name,
                args=args,
                kwargs=kwargs,
                queue="dead_letter",
                routing_key="dead_letter",
            )
        super().on_failure(exc, task_id, args, kwargs, einfo)


# ──────────────────────────────────────────────────────────────────────────
# Agendamento de UMA solicitação
# ──────────────────────────────────────────────────────────────────────────
@shared_task(
    base=BaseTaskWithDLQ, bind=True, max_retries=3, default_retry_delay=60,
    acks_late=True, queue=QUEUE_SCHEDULING
)
def schedule_solicitation_task(self, solicitation_id: int) -> dict:
    """
    [Granular] Executa o agendamento automático de uma solicitação.
    O orquestrador já converte falhas de negócio em desfecho; só chega
    aqui exceção de infraestrutura (ex.: banco fora do ar).
    """
    try:
        facade = composition_root.container.scheduling_facade_service()
        outcome = facade.schedule(solicitation_id)
    except Exception as exc:
        log.error("scheduling.task_error", solicitation_id=solicitation_id, error=str(exc))
        raise self.retry(exc=exc)  # noqa: B904
    return {
        "solicitation_id": solicitation_id,
        "status": outcome.status,
        "reason": outcome.reason.value,
        "appointment_id": outcome.appointment_id,
        "duplicate": outcome.duplicate,
    }


# ──────────────────────────────────────────────────────────────────────────
# Orquestração periódica (beat)
# ──────────────────────────────────────────────────────────────────────────
@shared_task(queue=QUEUE_SCHEDULING)
def schedule_pending_solicitations_task(limit: int = BATCH_LIMIT) -> int:
    """[Orquestração] Enfileira uma task por solicitação pendente."""
    batch = composition_root.container.batch_scheduling_service()
    ids = batch.pending_ids(limit)
    for sid in ids:
        schedule_solicitation_task.delay(sid)
    log.info("scheduling.enqueued", total=len(ids))
    return len(ids)


@shared_task(queue=QUEUE_SCHEDULING)
def requeue_stale_processing_task(limit: int = BATCH_LIMIT) -> int:
    """
    [Watchdog] Reenfileira solicitações presas em `processing` além do
    limite configurado. A reivindicação aceita `processing`, então a
    nova tentativa retoma de onde a anterior morreu.
    """
    batch = composition_root.container.batch_scheduling_service()
    ids = batch.stale_ids(limit)
    for sid in ids:
        schedule_solicitation_task.delay(sid)
    log.info("scheduling.requeued_stale", total=len(ids))
    return len(ids)
