from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, time, timedelta, tzinfo

import structlog
from django.utils import timezone

from provider_matching.core.domain.entities.provider_candidate import ProviderCandidate
from provider_matching.core.domain.entities.provider_entity import WorkingHoursEntity
from provider_matching.core.domain.entities.scheduling_config import SchedulingConfig
from provider_matching.core.domain.entities.solicitation_entity import SolicitationEntity
from provider_matching.core.domain.repositories.appointment_repository import AppointmentRepository
from provider_matching.core.domain.repositories.procedure_repository import ProcedureRepository
from provider_matching.core.domain.repositories.provider_repository import ProviderRepository

logger = structlog.get_logger(__name__)

WINDOW_EXTENSION = timedelta(days=7)

# Seg–Sex 09–12 / 14–18, Sáb 09–12, Dom fechado
DEFAULT_WEEKLY_SCHEDULE: tuple[WorkingHoursEntity, ...] = (
    *(
        block
        for weekday in range(5)
        for block in (
            WorkingHoursEntity(weekday, time(9), time(12)),
            WorkingHoursEntity(weekday, time(14), time(18)),
        )
    ),
    WorkingHoursEntity(5, time(9), time(12)),
)

Interval = tuple[datetime, datetime]


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Intervalos semiabertos [a, b): encostar não é conflito."""
    return start_a < end_b and start_b < end_a


def search_window(  # noqa: PLR0913
    preferred_start: datetime | None,
    preferred_end: datetime | None,
    *,
    now: datetime,
    tz: tzinfo,
    min_lead_hours: int = 1,
    min_days_ahead: int = 0,
) -> Interval:
    """
    Janela efetiva de busca. O início nunca fica antes de `now + lead`
    nem da meia-noite local de `hoje + min_days_ahead`; se o fim da
    janela preferida já passou, ela é estendida em 7 dias.
    """
    floor = now + timedelta(hours=min_lead_hours)
    if min_days_ahead > 0:
        first_day = timezone.localtime(now, tz).date() + timedelta(days=min_days_ahead)
        floor = max(floor, datetime.combine(first_day, time.min, tzinfo=tz))

    start = max(preferred_start, floor) if preferred_start else floor
    end = preferred_end
    if end is None or end < start:
        end = start + WINDOW_EXTENSION
    return start, end


def earliest_slot(  # noqa: PLR0913
    schedule: Sequence[WorkingHoursEntity],
    busy: Iterable[Interval],
    *,
    start: datetime,
    end: datetime,
    duration_minutes: int,
    tz: tzinfo,
    step_minutes: int = 30,
) -> datetime | None:
    """
    Primeiro início válido em [start, end], varrendo os dias em ordem
    cronológica e, dentro do dia, os blocos na ordem configurada. O fim
    da janela tem granularidade de dia (o último dia é varrido inteiro).
    """
    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=step_minutes)
    busy = list(busy)

    by_weekday: dict[int, list[WorkingHoursEntity]] = {}
    for block in schedule:
        by_weekday.setdefault(block.day_of_week, []).append(block)

    day = timezone.localtime(start, tz).date()
    last_day = timezone.localtime(end, tz).date()
    while day <= last_day:
        for block in by_weekday.get(day.weekday(), ()):
            block_end = datetime.combine(day, block.end_time, tzinfo=tz)
            candidate = datetime.combine(day, block.start_time, tzinfo=tz)
            while candidate + duration <= block_end:
                slot_end = candidate + duration
                if candidate >= start and not any(overlaps(candidate, slot_end, b0, b1) for b0, b1 in busy):
                    return candidate
                candidate += step
        day += timedelta(days=1)
    return None


class SlotFinder:
    """Busca o primeiro horário livre de um prestador na janela da solicitação."""

    def __init__(  # noqa: PLR0913
        self,
        provider_repo: ProviderRepository,
        appointment_repo: AppointmentRepository,
        procedure_repo: ProcedureRepository,
        config: SchedulingConfig,
        clock: Callable[[], datetime] = timezone.now,
        tz: tzinfo | None = None,
    ) -> None:
        self.provider_repo = provider_repo
        self.appointment_repo = appointment_repo
        self.procedure_repo = procedure_repo
        self.config = config
        self.clock = clock
        self.tz = tz or timezone.get_current_timezone()

    def duration_for(self, solicitation: SolicitationEntity) -> int:
        if solicitation.duration_minutes:
            return solicitation.duration_minutes
        return self.procedure_repo.estimated_duration(solicitation.procedure_id) or self.config.default_duration_minutes

    def window_for(self, solicitation: SolicitationEntity) -> Interval:
        return search_window(
            solicitation.preferred_date_start,
            solicitation.preferred_date_end,
            now=self.clock(),
            tz=self.tz,
            min_lead_hours=self.config.min_lead_hours,
            min_days_ahead=self.config.min_days_ahead,
        )

    def find(
        self,
        candidate: ProviderCandidate,
        window: Interval,
        duration_minutes: int,
    ) -> datetime | None:
        start, end = window
        schedule = self.provider_repo.working_hours(candidate.ref)
        if not schedule:
            schedule = list(DEFAULT_WEEKLY_SCHEDULE)

        # busca até o fim do último dia local da janela
        scan_end = datetime.combine(
            timezone.localtime(end, self.tz).date() + timedelta(days=1), time.min, tzinfo=self.tz
        )
        busy = [
            (appt.scheduled_date, appt.ends_at)
            for appt in self.appointment_repo.list_busy_for_provider(candidate.ref, start, scan_end)
        ]
        slot = earliest_slot(
            schedule,
            busy,
            start=start,
            end=end,
            duration_minutes=duration_minutes,
            tz=self.tz,
            step_minutes=self.config.slot_step_minutes,
        )
        logger.debug(
            "slot_finder.result",
            provider=str(candidate.ref),
            found=slot is not None,
            slot=slot.isoformat() if slot else None,
            busy=len(busy),
        )
        return slot
