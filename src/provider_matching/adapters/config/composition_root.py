import structlog
from dependency_injector import containers, providers

container = None

def setup_di_container_from_settings(settings):  # noqa: PLR0915
    """Inicializa o DI container após o Django já estar com settings carregados."""
    global container  # noqa: PLW0603
    if container is not None:
        structlog.get_logger(__name__).debug("di.container_already_initialized")
        return container

    # ------- IMPORTS DE INFRA E ADAPTERS -------
    from provider_matching.adapters.api_clients.mapbox_api_client import build_mapbox_client
    from provider_matching.adapters.geo.geo_service_impl import CachedGeoService
    from provider_matching.adapters.notifiers.registry import get_notification_gateway

    # Repositórios concretos (Django ORM)
    from provider_matching.adapters.repositories.appointment_repo_impl import AppointmentRepoImpl
    from provider_matching.adapters.repositories.negotiation_repo_impl import NegotiationRepoImpl
    from provider_matching.adapters.repositories.patient_repo_impl import PatientRepoImpl
    from provider_matching.adapters.repositories.price_contract_repo_impl import PriceContractRepoImpl
    from provider_matching.adapters.repositories.procedure_repo_impl import ProcedureRepoImpl
    from provider_matching.adapters.repositories.provider_repo_impl import ProviderRepoImpl
    from provider_matching.adapters.repositories.scheduling_exception_repo_impl import SchedulingExceptionRepoImpl
    from provider_matching.adapters.repositories.solicitation_repo_impl import SolicitationRepoImpl
    from provider_matching.adapters.repositories.system_setting_repo_impl import SystemSettingRepoImpl
    from provider_matching.adapters.repositories.user_repo_impl import UserRepoImpl

    # ------- IMPORTS DO CORE -------
    # Commands
    from provider_matching.core.application.commands.appointment_commands import (
        CancelAppointmentCommand,
        CompleteAppointmentCommand,
        ConfirmAppointmentCommand,
        MarkAppointmentMissedCommand,
        RescheduleAppointmentCommand,
    )
    from provider_matching.core.application.commands.exception_commands import (
        ApproveSchedulingExceptionCommand,
        RejectSchedulingExceptionCommand,
        RequestSchedulingExceptionCommand,
    )
    from provider_matching.core.application.commands.scheduling_commands import ScheduleSolicitationCommand

    # CQRS
    from provider_matching.core.application.cqrs import CommandBus, QueryBus

    # Handlers
    from provider_matching.core.application.handlers.appointment_handlers import (
        CancelAppointmentHandler,
        CompleteAppointmentHandler,
        ConfirmAppointmentHandler,
        MarkAppointmentMissedHandler,
        RescheduleAppointmentHandler,
    )
    from provider_matching.core.application.handlers.exception_handlers import (
        ApproveSchedulingExceptionHandler,
        RejectSchedulingExceptionHandler,
        RequestSchedulingExceptionHandler,
    )
    from provider_matching.core.application.handlers.query_handlers import (
        GetSolicitationHandler,
        ListPendingExceptionsHandler,
        ListRankedCandidatesHandler,
    )
    from provider_matching.core.application.handlers.scheduling_handlers import ScheduleSolicitationHandler

    # Queries
    from provider_matching.core.application.queries.scheduling_queries import (
        GetSolicitationQuery,
        ListPendingExceptionsQuery,
        ListRankedCandidatesQuery,
    )

    # Serviços de aplicação
    from provider_matching.core.application.services.appointment_lifecycle_service import (
        AppointmentLifecycleService,
    )
    from provider_matching.core.application.services.batch_scheduling_service import BatchSchedulingService
    from provider_matching.core.application.services.eligibility_service import EligibilityFilter
    from provider_matching.core.application.services.pricing_catalog import PricingCatalog
    from provider_matching.core.application.services.scheduling_config_service import (
        SchedulingConfigService,
        load_scheduling_config,
    )
    from provider_matching.core.application.services.scheduling_exception_service import (
        SchedulingExceptionService,
    )
    from provider_matching.core.application.services.scheduling_facade import SchedulingFacadeService
    from provider_matching.core.application.services.scheduling_orchestrator import SchedulingOrchestrator
    from provider_matching.core.application.services.slot_finder import SlotFinder

    # ------- DECLARAÇÃO DO CONTAINER -------
    class Container(containers.DeclarativeContainer):
        config = providers.Configuration()

        # CQRS
        command_bus = providers.Singleton(CommandBus)
        query_bus = providers.Singleton(QueryBus)

        # Integrações externas
        mapbox_client = providers.Singleton(
            build_mapbox_client,
            access_token=config.mapbox.token,
            base_url=config.mapbox.base_url,
            country=config.mapbox.country,
            timeout=config.mapbox.timeout,
            retries=config.mapbox.retries,
        )
        geo_service = providers.Singleton(CachedGeoService, client=mapbox_client)
        notifier = providers.Singleton(get_notification_gateway)

        # Implementações de Repositórios (Ports → Adapters)
        solicitation_repo = providers.Singleton(SolicitationRepoImpl)
        appointment_repo = providers.Singleton(AppointmentRepoImpl)
        provider_repo = providers.Singleton(ProviderRepoImpl)
        price_contract_repo = providers.Singleton(PriceContractRepoImpl)
        scheduling_exception_repo = providers.Singleton(SchedulingExceptionRepoImpl)
        negotiation_repo = providers.Singleton(NegotiationRepoImpl)
        user_repo = providers.Singleton(UserRepoImpl)
        patient_repo = providers.Singleton(PatientRepoImpl)
        procedure_repo = providers.Singleton(ProcedureRepoImpl)
        system_setting_repo = providers.Singleton(
            SystemSettingRepoImpl, ttl_seconds=config.settings_cache_seconds
        )

        # Configuração: uma fotografia por execução
        scheduling_config_service = providers.Singleton(SchedulingConfigService, setting_repo=system_setting_repo)
        scheduling_config = providers.Factory(load_scheduling_config, setting_repo=system_setting_repo)

        # Serviços de negócio
        pricing_catalog = providers.Singleton(PricingCatalog, contract_repo=price_contract_repo)
        eligibility_filter = providers.Singleton(
            EligibilityFilter,
            contract_repo=price_contract_repo,
            provider_repo=provider_repo,
            appointment_repo=appointment_repo,
            pricing=pricing_catalog,
            geo=geo_service,
        )

        scheduling_orchestrator = providers.Factory(
            SchedulingOrchestrator.build,
            config=scheduling_config,
            solicitation_repo=solicitation_repo,
            appointment_repo=appointment_repo,
            patient_repo=patient_repo,
            provider_repo=provider_repo,
            procedure_repo=procedure_repo,
            eligibility=eligibility_filter,
            geo=geo_service,
            notifier=notifier,
        )
        scheduling_exception_service = providers.Factory(
            SchedulingExceptionService,
            exception_repo=scheduling_exception_repo,
            solicitation_repo=solicitation_repo,
            appointment_repo=appointment_repo,
            provider_repo=provider_repo,
            procedure_repo=procedure_repo,
            negotiation_repo=negotiation_repo,
            user_repo=user_repo,
            config_service=scheduling_config_service,
            eligibility=eligibility_filter,
            notifier=notifier,
        )
        appointment_lifecycle_service = providers.Singleton(
            AppointmentLifecycleService,
            appointment_repo=appointment_repo,
            solicitation_repo=solicitation_repo,
        )

        # Facade exposto a tasks / CLI
        scheduling_facade_service = providers.Singleton(
            SchedulingFacadeService,
            command_bus=command_bus,
            query_bus=query_bus,
        )
        batch_scheduling_service = providers.Singleton(
            BatchSchedulingService,
            solicitation_repo=solicitation_repo,
            config_service=scheduling_config_service,
            facade=scheduling_facade_service,
        )

        # Handlers de comandos
        schedule_solicitation_handler = providers.Factory(
            ScheduleSolicitationHandler, orchestrator_factory=scheduling_orchestrator.provider
        )
        request_exception_handler = providers.Factory(
            RequestSchedulingExceptionHandler, service=scheduling_exception_service
        )
        approve_exception_handler = providers.Factory(
            ApproveSchedulingExceptionHandler, service=scheduling_exception_service
        )
        reject_exception_handler = providers.Factory(
            RejectSchedulingExceptionHandler, service=scheduling_exception_service
        )
        confirm_appointment_handler = providers.Factory(ConfirmAppointmentHandler, service=appointment_lifecycle_service)
        complete_appointment_handler = providers.Factory(CompleteAppointmentHandler, service=appointment_lifecycle_service)
        missed_appointment_handler = providers.Factory(MarkAppointmentMissedHandler, service=appointment_lifecycle_service)
        cancel_appointment_handler = providers.Factory(CancelAppointmentHandler, service=appointment_lifecycle_service)
        reschedule_appointment_handler = providers.Factory(
            RescheduleAppointmentHandler, service=appointment_lifecycle_service
        )

        # Handlers de queries
        get_solicitation_handler = providers.Factory(GetSolicitationHandler, repo=solicitation_repo)
        list_ranked_candidates_handler = providers.Factory(
            ListRankedCandidatesHandler,
            repo=solicitation_repo,
            eligibility=eligibility_filter,
            config_service=scheduling_config_service,
        )
        list_pending_exceptions_handler = providers.Factory(
            ListPendingExceptionsHandler, service=scheduling_exception_service
        )

        def init(self):
            # Registrar comandos no CommandBus
            bus = self.command_bus()
            bus.register(ScheduleSolicitationCommand, self.schedule_solicitation_handler())
            bus.register(RequestSchedulingExceptionCommand, self.request_exception_handler())
            bus.register(ApproveSchedulingExceptionCommand, self.approve_exception_handler())
            bus.register(RejectSchedulingExceptionCommand, self.reject_exception_handler())
            bus.register(ConfirmAppointmentCommand, self.confirm_appointment_handler())
            bus.register(CompleteAppointmentCommand, self.complete_appointment_handler())
            bus.register(MarkAppointmentMissedCommand, self.missed_appointment_handler())
            bus.register(CancelAppointmentCommand, self.cancel_appointment_handler())
            bus.register(RescheduleAppointmentCommand, self.reschedule_appointment_handler())

            # Registrar queries no QueryBus
            qb = self.query_bus()
            qb.register(GetSolicitationQuery, self.get_solicitation_handler())
            qb.register(ListRankedCandidatesQuery, self.list_ranked_candidates_handler())
            qb.register(ListPendingExceptionsQuery, self.list_pending_exceptions_handler())

    # ------- INSTANCIAÇÃO E CONFIG -------
    container = Container()
    container.config.mapbox.token.from_value(settings.MAPBOX_ACCESS_TOKEN)
    container.config.mapbox.base_url.from_value(settings.MAPBOX_API_BASE)
    container.config.mapbox.country.from_value(settings.MAPBOX_COUNTRY)
    container.config.mapbox.timeout.from_value(settings.GEOCODING_TIMEOUT_SECONDS)
    container.config.mapbox.retries.from_value(settings.GEOCODING_RETRIES)
    container.config.settings_cache_seconds.from_value(settings.SCHEDULING_SETTINGS_CACHE_SECONDS)

    # Inicializa os buses com todos os handlers
    Container.init(container)
    return container
