from django.http import HttpResponse
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

registry = CollectorRegistry()

SCHEDULING_ATTEMPTS = Counter(
    "scheduling_attempts_total",
    "Tentativas de agendamento automatico por desfecho",
    ["outcome", "reason"],
    registry=registry,
)

SCHEDULING_DURATION = Histogram(
    "scheduling_attempt_duration_seconds",
    "Duracao de uma tentativa de agendamento automatico",
    registry=registry,
)

GEOCODING_REQUESTS = Counter(
    "geocoding_requests_total",
    "Consultas de geocodificacao (cache, provedor, falha)",
    ["result"],
    registry=registry,
)

SCHEDULING_EXCEPTIONS = Counter(
    "scheduling_exceptions_total",
    "Excecoes de agendamento por acao",
    ["action"],
    registry=registry,
)

NOTIFIER_LATENCY = Histogram(
    "notifier_request_seconds",
    "Latencia das chamadas do gateway de notificacao",
    ["provider", "event"],
    registry=registry,
)

NOTIFIER_SUCCESS = Counter(
    "notifier_success_total",
    "Notificacoes entregues",
    ["provider", "event"],
    registry=registry,
)

NOTIFIER_FAILURE = Counter(
    "notifier_failure_total",
    "Notificacoes com falha",
    ["provider", "event"],
    registry=registry,
)


def metrics(request):
    data = generate_latest(registry)
    return HttpResponse(data, content_type=CONTENT_TYPE_LATEST)
