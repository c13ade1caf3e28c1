import os

from celery import Celery

# Define o módulo de configurações do Django para o Celery.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('agendamento_api')

# O namespace 'CELERY' significa que todas as configurações do Celery devem
# começar com CELERY_ (ex: CELERY_BROKER_URL).
app.config_from_object('django.conf:settings', namespace='CELERY')

app.autodiscover_tasks()
