"""
Admin site registry
-------------------
Registra os modelos do motor de matching de forma dinâmica.
"""

import structlog
from django.contrib import admin as django_admin

from . import models

logger = structlog.get_logger(__name__)

# ╭──────────────────────────────────────────────╮
# │ Configuração de cada ModelAdmin             │
# ╰──────────────────────────────────────────────╯
MODEL_ADMIN_REGISTRY: dict[type[models.models.Model], dict] = {
    # 1. Usuários
    models.User: dict(
        list_display=("email", "name", "role", "is_active"),
        search_fields=("email", "name"),
        list_filter=("role", "is_active"),
    ),
    # 2. Catálogo
    models.HealthPlan: dict(
        list_display=("name", "ans_code", "is_active"),
        search_fields=("name",),
    ),
    models.TussProcedure: dict(
        list_display=("code", "name", "estimated_duration"),
        search_fields=("code", "name"),
    ),
    models.HealthPlanProcedurePrice: dict(
        list_display=("health_plan", "procedure", "price"),
        list_filter=("health_plan",),
    ),
    # 3. Prestadores
    models.Clinic: dict(
        list_display=("name", "status", "is_active", "city", "state"),
        list_filter=("status", "is_active", "state"),
        search_fields=("name", "cnpj"),
    ),
    models.Professional: dict(
        list_display=("name", "status", "is_active", "city", "state"),
        list_filter=("status", "is_active", "state"),
        search_fields=("name", "registration_number"),
    ),
    models.ProviderWorkingHours: dict(
        list_display=("provider_type", "provider_id", "day_of_week", "start_time", "end_time", "position"),
        list_filter=("provider_type", "day_of_week"),
    ),
    models.PricingContract: dict(
        list_display=("provider_type", "provider_id", "health_plan", "procedure", "price", "is_active", "end_date"),
        list_filter=("is_active", "provider_type", "health_plan"),
    ),
    # 4. Solicitações / agendamentos
    models.Patient: dict(
        list_display=("name", "city", "state"),
        search_fields=("name",),
    ),
    models.Solicitation: dict(
        list_display=("id", "patient", "procedure", "health_plan", "status", "scheduling_attempts", "updated_at"),
        list_filter=("status",),
    ),
    models.Appointment: dict(
        list_display=("id", "solicitation", "provider_type", "provider_id", "scheduled_date", "status", "price"),
        list_filter=("status", "provider_type"),
    ),
    # 5. Exceções
    models.SchedulingException: dict(
        list_display=("id", "solicitation", "requested_provider_type", "requested_provider_id",
                      "requested_price", "recommended_price", "status"),
        list_filter=("status",),
    ),
    models.ExtemporaneousNegotiation: dict(
        list_display=("scheduling_exception", "provider_type", "provider_id", "negotiated_price", "status"),
        list_filter=("status",),
    ),
    # 6. Configuração
    models.SystemSetting: dict(
        list_display=("key", "value", "updated_at"),
        search_fields=("key",),
    ),
}

# ╭──────────────────────────────────────────────╮
# │ Registro dinâmico                           │
# ╰──────────────────────────────────────────────╯
for model, opts in MODEL_ADMIN_REGISTRY.items():
    admin_class = type(f"{model.__name__}Admin", (django_admin.ModelAdmin,), opts)
    django_admin.site.register(model, admin_class)
    logger.debug("admin.model_registered", model=model.__name__)
