from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from plugins.django_interface.models import (
    Clinic,
    HealthPlan,
    HealthPlanProcedurePrice,
    PricingContract,
    Professional,
    ProviderStatus,
    ProviderType,
    SystemSetting,
    TussProcedure,
    User,
)

DEFAULT_SETTINGS = [
    {'key': 'scheduling_enabled',    'value': 'false',    'description': 'Liga o agendamento automático'},
    {'key': 'scheduling_priority',   'value': 'balanced', 'description': 'cost | distance | availability | balanced'},
    {'key': 'scheduling_min_days',   'value': '1',        'description': 'Dias mínimos de antecedência'},
    {'key': 'allow_manual_override', 'value': 'true',     'description': 'Permite exceções manuais'},
]

PROCEDURES = [
    {'code': '81000065', 'name': 'Consulta odontológica inicial', 'estimated_duration': 30, 'table_price': '60.00'},
    {'code': '82000174', 'name': 'Restauração em resina',         'estimated_duration': 60, 'table_price': '150.00'},
    {'code': '84000198', 'name': 'Profilaxia',                    'estimated_duration': 45, 'table_price': '90.00'},
]

PROVIDERS = [
    # (tipo, nome, cidade, UF, lat, lng, fator de preço sobre a tabela)
    (ProviderType.CLINIC,       'Clínica Centro Bauru',    'Bauru',   'SP', -22.3246, -49.0871, Decimal('1.00')),
    (ProviderType.CLINIC,       'Clínica Jardim América',  'Bauru',   'SP', -22.3400, -49.0650, Decimal('0.90')),
    (ProviderType.PROFESSIONAL, 'Dra. Helena Prado',       'Bauru',   'SP', -22.3100, -49.0700, Decimal('1.15')),
    (ProviderType.CLINIC,       'Clínica Marília Saúde',   'Marília', 'SP', -22.2171, -49.9501, Decimal('0.85')),
]


class Command(BaseCommand):
    help = 'Seed de dados de demonstração do agendamento (convênio, procedimentos, prestadores, contratos).'

    def add_arguments(self, parser):
        parser.add_argument('--admin-email', default='admin@agendamento.local', help='Email do aprovador de exceções')

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write('🌿 Iniciando seeding do agendamento...')

        for cfg in DEFAULT_SETTINGS:
            SystemSetting.objects.get_or_create(
                key=cfg['key'], defaults={'value': cfg['value'], 'description': cfg['description']}
            )

        User.objects.update_or_create(
            email=options['admin_email'],
            defaults={'name': 'Administrador', 'role': User.Role.ADMIN, 'is_active': True},
        )

        plan, _ = HealthPlan.objects.get_or_create(name='Plano Odonto Demo')

        procedures = []
        for proc in PROCEDURES:
            obj, _ = TussProcedure.objects.update_or_create(
                code=proc['code'],
                defaults={'name': proc['name'], 'estimated_duration': proc['estimated_duration']},
            )
            HealthPlanProcedurePrice.objects.update_or_create(
                health_plan=plan, procedure=obj, defaults={'price': Decimal(proc['table_price'])}
            )
            procedures.append((obj, Decimal(proc['table_price'])))

        contracts = 0
        for provider_type, name, city, state, lat, lng, factor in PROVIDERS:
            model = Clinic if provider_type == ProviderType.CLINIC else Professional
            provider, _ = model.objects.update_or_create(
                name=name,
                defaults={
                    'city': city, 'state': state, 'latitude': lat, 'longitude': lng,
                    'status': ProviderStatus.APPROVED, 'is_active': True,
                },
            )
            for procedure, table_price in procedures:
                _, created = PricingContract.objects.update_or_create(
                    provider_type=provider_type,
                    provider_id=provider.id,
                    health_plan=plan,
                    procedure=procedure,
                    defaults={'price': (table_price * factor).quantize(Decimal('0.01')), 'is_active': True},
                )
                contracts += int(created)

        self.stdout.write(self.style.SUCCESS(
            f"✅ Seeding concluído: {len(PROVIDERS)} prestadores, {len(procedures)} procedimentos, "
            f"{contracts} contratos novos."
        ))
