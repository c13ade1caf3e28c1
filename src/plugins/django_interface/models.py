"""
Domínio → ORM do motor de matching de prestadores.

⚑ Tipo de prestador é enum fechado (`clinic` | `professional`) + id numérico
⚑ No máximo um agendamento não cancelado por solicitação (UK parcial)
⚑ Transições de estado feitas por UPDATE condicional nos repositórios
"""

from __future__ import annotations

from django.db import models
from django.db.models import CheckConstraint, F, Index, Q, UniqueConstraint
from django.db.models.functions import Lower


class ProviderType(models.TextChoices):
    CLINIC = "clinic", "Clínica"
    PROFESSIONAL = "professional", "Profissional"


# ╭──────────────────────────────────────────────╮
# │ 1. Usuários (atores das operações)          │
# ╰──────────────────────────────────────────────╯
class User(models.Model):
    class Role(models.TextChoices):
        ADMIN = "admin", "Admin"
        SUPER_ADMIN = "super_admin", "Super Admin"
        DIRECTOR = "director", "Diretor"
        PLAN_ADMIN = "plan_admin", "Admin do Convênio"
        OPERATOR = "operator", "Operador"

    email = models.EmailField(unique=True, max_length=128)
    name = models.CharField(max_length=100)
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.OPERATOR,
        db_index=True,
    )
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "users"
        indexes = [
            Index(Lower("email"), name="user_email_lower_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"


# ╭──────────────────────────────────────────────╮
# │ 2. Catálogo: convênios e procedimentos      │
# ╰──────────────────────────────────────────────╯
class HealthPlan(models.Model):
    name = models.CharField(max_length=255)
    ans_code = models.CharField(max_length=20, blank=True, null=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "health_plans"
        constraints = [
            UniqueConstraint(Lower("name"), name="uq_health_plan_name_lower"),
        ]

    def __str__(self) -> str:
        return self.name


class TussProcedure(models.Model):
    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=255)
    estimated_duration = models.PositiveIntegerField(
        null=True, blank=True, help_text="Duração estimada em minutos"
    )

    class Meta:
        db_table = "tuss_procedures"
        ordering = ["code"]

    def __str__(self) -> str:
        return f"{self.code} - {self.name}"


class HealthPlanProcedurePrice(models.Model):
    """Preço de tabela do convênio; fallback quando o contrato não tem preço."""
    health_plan = models.ForeignKey(HealthPlan, on_delete=models.CASCADE, related_name="procedure_prices")
    procedure = models.ForeignKey(TussProcedure, on_delete=models.CASCADE, related_name="plan_prices")
    price = models.DecimalField(max_digits=12, decimal_places=2)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "health_plan_procedure_prices"
        constraints = [
            UniqueConstraint(fields=["health_plan", "procedure"], name="uq_plan_procedure_price"),
        ]


# ╭──────────────────────────────────────────────╮
# │ 3. Prestadores                              │
# ╰──────────────────────────────────────────────╯
class ProviderStatus(models.TextChoices):
    PENDING = "pending", "Pendente"
    APPROVED = "approved", "Aprovado"
    REJECTED = "rejected", "Rejeitado"


class ProviderBase(models.Model):
    name = models.CharField(max_length=255)
    status = models.CharField(
        max_length=10, choices=ProviderStatus.choices, default=ProviderStatus.PENDING, db_index=True
    )
    is_active = models.BooleanField(default=True, db_index=True)
    address = models.CharField(max_length=255, blank=True, null=True)
    city = models.CharField(max_length=100, blank=True, null=True)
    state = models.CharField(max_length=2, blank=True, null=True)
    postal_code = models.CharField(max_length=9, blank=True, null=True)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def __str__(self) -> str:
        return self.name


class Clinic(ProviderBase):
    cnpj = models.CharField(max_length=18, blank=True, null=True)

    class Meta:
        db_table = "clinics"
        indexes = [Index(fields=["state", "city"], name="clinic_state_city_idx")]


class Professional(ProviderBase):
    registration_number = models.CharField(max_length=30, blank=True, null=True)  # CRO / CRM

    class Meta:
        db_table = "professionals"
        indexes = [Index(fields=["state", "city"], name="professional_state_city_idx")]


class ProviderWorkingHours(models.Model):
    """Bloco de expediente semanal; `day_of_week` 0 = segunda … 6 = domingo."""
    provider_type = models.CharField(max_length=12, choices=ProviderType.choices)
    provider_id = models.PositiveBigIntegerField()
    day_of_week = models.PositiveSmallIntegerField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    position = models.PositiveSmallIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "provider_working_hours"
        ordering = ["day_of_week", "position", "id"]
        indexes = [Index(fields=["provider_type", "provider_id"], name="working_hours_provider_idx")]
        constraints = [
            CheckConstraint(condition=Q(day_of_week__lte=6), name="ck_working_hours_weekday"),
            CheckConstraint(condition=Q(start_time__lt=F("end_time")), name="ck_working_hours_range"),
        ]


class PricingContract(models.Model):
    provider_type = models.CharField(max_length=12, choices=ProviderType.choices)
    provider_id = models.PositiveBigIntegerField()
    health_plan = models.ForeignKey(HealthPlan, on_delete=models.PROTECT, related_name="contracts")
    procedure = models.ForeignKey(TussProcedure, on_delete=models.PROTECT, related_name="contracts")
    price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "pricing_contracts"
        indexes = [
            Index(fields=["procedure", "health_plan", "is_active"], name="contract_lookup_idx"),
            Index(fields=["provider_type", "provider_id"], name="contract_provider_idx"),
        ]


# ╭──────────────────────────────────────────────╮
# │ 4. Pacientes e solicitações                 │
# ╰──────────────────────────────────────────────╯
class Patient(models.Model):
    name = models.CharField(max_length=255)
    address = models.CharField(max_length=255, blank=True, null=True)
    number = models.CharField(max_length=20, blank=True, null=True)
    neighborhood = models.CharField(max_length=100, blank=True, null=True)
    city = models.CharField(max_length=100, blank=True, null=True)
    state = models.CharField(max_length=2, blank=True, null=True)
    postal_code = models.CharField(max_length=9, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "patients"

    def __str__(self) -> str:
        return self.name


class Solicitation(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pendente"
        PROCESSING = "processing", "Processando"
        SCHEDULED = "scheduled", "Agendada"
        WAITING_MANUAL_RESPONSE = "waiting_manual_response", "Aguardando resposta manual"
        FAILED = "failed", "Falhou"
        CANCELLED = "cancelled", "Substituída"

    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="solicitations")
    procedure = models.ForeignKey(TussProcedure, on_delete=models.PROTECT, related_name="solicitations")
    health_plan = models.ForeignKey(HealthPlan, on_delete=models.PROTECT, related_name="solicitations")
    status = models.CharField(max_length=24, choices=Status.choices, default=Status.PENDING, db_index=True)
    preferred_date_start = models.DateTimeField(null=True, blank=True)
    preferred_date_end = models.DateTimeField(null=True, blank=True)
    preferred_location_lat = models.FloatField(null=True, blank=True)
    preferred_location_lng = models.FloatField(null=True, blank=True)
    max_distance_km = models.FloatField(null=True, blank=True)
    state = models.CharField(max_length=2, blank=True, null=True)
    city = models.CharField(max_length=100, blank=True, null=True)
    duration_minutes = models.PositiveIntegerField(null=True, blank=True)
    processing_started_at = models.DateTimeField(null=True, blank=True)
    scheduling_attempts = models.PositiveIntegerField(default=0)
    supersedes = models.ForeignKey(
        "self", on_delete=models.PROTECT, null=True, blank=True, related_name="superseded_by"
    )
    requested_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "solicitations"
        indexes = [
            Index(fields=["status", "processing_started_at"], name="solicitation_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Solicitação #{self.pk} ({self.status})"


# ╭──────────────────────────────────────────────╮
# │ 5. Agendamentos                             │
# ╰──────────────────────────────────────────────╯
class Appointment(models.Model):
    class Status(models.TextChoices):
        SCHEDULED = "scheduled", "Agendado"
        CONFIRMED = "confirmed", "Confirmado"
        COMPLETED = "completed", "Realizado"
        MISSED = "missed", "Faltou"
        CANCELLED = "cancelled", "Cancelado"

    solicitation = models.ForeignKey(Solicitation, on_delete=models.PROTECT, related_name="appointments")
    provider_type = models.CharField(max_length=12, choices=ProviderType.choices)
    provider_id = models.PositiveBigIntegerField()
    scheduled_date = models.DateTimeField()
    duration_minutes = models.PositiveIntegerField(default=60)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.SCHEDULED, db_index=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    notes = models.TextField(blank=True, null=True)

    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    confirmed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    confirmed_at = models.DateTimeField(null=True, blank=True)
    completed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "appointments"
        indexes = [
            Index(fields=["provider_type", "provider_id", "scheduled_date"], name="appointment_provider_idx"),
        ]
        constraints = [
            UniqueConstraint(
                fields=["solicitation"],
                condition=~Q(status="cancelled"),
                name="uq_one_active_appointment_per_solicitation",
            ),
        ]

    def __str__(self) -> str:
        return f"Agendamento #{self.pk} {self.provider_type}#{self.provider_id} @ {self.scheduled_date:%Y-%m-%d %H:%M}"


# ╭──────────────────────────────────────────────╮
# │ 6. Exceções de agendamento                  │
# ╰──────────────────────────────────────────────╯
class SchedulingException(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pendente"
        APPROVED = "approved", "Aprovada"
        REJECTED = "rejected", "Rejeitada"

    solicitation = models.ForeignKey(Solicitation, on_delete=models.PROTECT, related_name="scheduling_exceptions")
    requested_provider_type = models.CharField(max_length=12, choices=ProviderType.choices)
    requested_provider_id = models.PositiveBigIntegerField()
    requested_price = models.DecimalField(max_digits=12, decimal_places=2)
    recommended_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    price_difference = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    requested_date = models.DateTimeField(null=True, blank=True)
    reason = models.TextField()
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING, db_index=True)

    requested_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    approved_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    approved_at = models.DateTimeField(null=True, blank=True)
    approval_notes = models.TextField(blank=True, null=True)
    rejected_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True, null=True)
    appointment = models.ForeignKey(
        Appointment, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "scheduling_exceptions"
        ordering = ["created_at", "id"]


class ExtemporaneousNegotiation(models.Model):
    """Registro comercial gerado na aprovação de uma exceção."""

    class Status(models.TextChoices):
        PENDING_REVIEW = "pending_review", "Aguardando análise"
        ACCEPTED = "accepted", "Aceita"
        DECLINED = "declined", "Recusada"

    scheduling_exception = models.OneToOneField(
        SchedulingException, on_delete=models.PROTECT, related_name="negotiation"
    )
    provider_type = models.CharField(max_length=12, choices=ProviderType.choices)
    provider_id = models.PositiveBigIntegerField()
    health_plan = models.ForeignKey(HealthPlan, on_delete=models.PROTECT, related_name="+")
    procedure = models.ForeignKey(TussProcedure, on_delete=models.PROTECT, related_name="+")
    negotiated_price = models.DecimalField(max_digits=12, decimal_places=2)
    recommended_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    status = models.CharField(
        max_length=16, choices=Status.choices, default=Status.PENDING_REVIEW, db_index=True
    )
    requested_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "extemporaneous_negotiations"


# ╭──────────────────────────────────────────────╮
# │ 7. Configuração do sistema                  │
# ╰──────────────────────────────────────────────╯
class SystemSetting(models.Model):
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.CharField(max_length=255, blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "system_settings"
        ordering = ["key"]

    def __str__(self) -> str:
        return f"{self.key}={self.value}"
