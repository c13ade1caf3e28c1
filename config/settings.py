from pathlib import Path

from celery.schedules import crontab
from decouple import Csv, config

# -------------------------------
# Diretórios base
# -------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent

# -------------------------------
# Segurança e debug
# -------------------------------
SECRET_KEY = config('SECRET_KEY', default='dev-insecure-agendamento-key')
DEBUG = config('DEBUG', default=False, cast=bool)
ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='', cast=Csv())

# -------------------------------
# Celery
# -------------------------------
CELERY_BROKER_URL                 = config('CELERY_BROKER_URL', default='memory://')
CELERY_RESULT_BACKEND             = config('CELERY_RESULT_BACKEND', default='cache+memory://')
CELERY_TASK_ACKS_LATE             = True
CELERY_TASK_REJECT_ON_WORKER_LOST = True
CELERY_WORKER_PREFETCH_MULTIPLIER = 1
CELERY_TASK_ALWAYS_EAGER          = config('CELERY_TASK_ALWAYS_EAGER', default=False, cast=bool)
CELERY_ACCEPT_CONTENT             = ["json"]
CELERY_TASK_SERIALIZER            = "json"
CELERY_TASK_QUEUES = {
    "default":     {"exchange": "default",     "routing_key": "default"},
    "scheduling":  {"exchange": "scheduling",  "routing_key": "scheduling"},
    "dead_letter": {"exchange": "dead_letter", "routing_key": "dead_letter"},
}
CELERY_TASK_DEFAULT_QUEUE = 'default'
CELERY_TASK_ROUTES = {
    "agendamento_api.tasks.schedule_solicitation_task": {"queue": "scheduling"},
    "agendamento_api.tasks.schedule_pending_solicitations_task": {"queue": "scheduling"},
    "agendamento_api.tasks.requeue_stale_processing_task": {"queue": "scheduling"},
}

# --- AGENDADOR (CELERY BEAT) ---
CELERY_BEAT_SCHEDULE = {
    # Varre solicitações pendentes a cada 15 minutos.
    'schedule-pending-solicitations': {
        'task': 'agendamento_api.tasks.schedule_pending_solicitations_task',
        'schedule': crontab(minute='*/15'),
    },
    # Reenfileira solicitações presas em "processing" além do watchdog.
    'requeue-stale-processing': {
        'task': 'agendamento_api.tasks.requeue_stale_processing_task',
        'schedule': crontab(minute='*/10'),
    },
}

# -------------------------------
# Redis / Cache
# -------------------------------
REDIS_URL = config('REDIS_URL', default='')
if REDIS_URL:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.redis.RedisCache",
            "LOCATION": REDIS_URL,
        }
    }
else:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "agendamento-local",
        }
    }

# -------------------------------
# Geocoding (Mapbox)
# -------------------------------
MAPBOX_API_BASE           = config('MAPBOX_API_BASE', default='https://api.mapbox.com')
MAPBOX_ACCESS_TOKEN       = config('MAPBOX_ACCESS_TOKEN', default='')
MAPBOX_COUNTRY            = config('MAPBOX_COUNTRY', default='br')
GEOCODING_TIMEOUT_SECONDS = config('GEOCODING_TIMEOUT_SECONDS', default=3.0, cast=float)
GEOCODING_RETRIES         = config('GEOCODING_RETRIES', default=1, cast=int)

# -------------------------------
# Notificações (gateway externo)
# -------------------------------
NOTIFICATION_WEBHOOK_URL      = config('NOTIFICATION_WEBHOOK_URL', default='')
NOTIFICATION_WEBHOOK_TOKEN    = config('NOTIFICATION_WEBHOOK_TOKEN', default='')
NOTIFICATION_TIMEOUT_SECONDS  = config('NOTIFICATION_TIMEOUT_SECONDS', default=5.0, cast=float)

# -------------------------------
# Motor de agendamento
# -------------------------------
MAX_PROVIDER_DISTANCE_KM                = config('MAX_PROVIDER_DISTANCE_KM', default=50.0, cast=float)
SCHEDULING_DEFAULT_DURATION_MINUTES     = config('SCHEDULING_DEFAULT_DURATION_MINUTES', default=60, cast=int)
SCHEDULING_SLOT_STEP_MINUTES            = config('SCHEDULING_SLOT_STEP_MINUTES', default=30, cast=int)
SCHEDULING_MIN_LEAD_HOURS               = config('SCHEDULING_MIN_LEAD_HOURS', default=1, cast=int)
SCHEDULING_PROCESSING_WATCHDOG_MINUTES  = config('SCHEDULING_PROCESSING_WATCHDOG_MINUTES', default=30, cast=int)
SCHEDULING_MAX_ATTEMPTS                 = config('SCHEDULING_MAX_ATTEMPTS', default=2, cast=int)
SCHEDULING_SETTINGS_CACHE_SECONDS       = config('SCHEDULING_SETTINGS_CACHE_SECONDS', default=3600, cast=int)

# -------------------------------
# Apps, Middleware
# -------------------------------
INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'agendamento_api.apps.SchedulingApiConfig',
    'plugins.django_interface.apps.DjangoInterfaceConfig',
]

MIDDLEWARE = [
    'django.middleware.common.CommonMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
]

ROOT_URLCONF = 'agendamento_api.urls'
WSGI_APPLICATION = 'agendamento_api.wsgi.application'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

# -------------------------------
# Banco de Dados
# -------------------------------
DB_ENGINE = config('DB_ENGINE', default='django.db.backends.sqlite3')
if DB_ENGINE.endswith('sqlite3'):
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME':   config('DB_NAME', default=str(BASE_DIR / 'db.sqlite3')),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE':   DB_ENGINE,
            'NAME':     config('DB_NAME'),
            'USER':     config('DB_USER'),
            'PASSWORD': config('DB_PASS'),
            'HOST':     config('DB_HOST'),
            'PORT':     config('DB_PORT'),
        }
    }

# -------------------------------
# Internacionalização
# -------------------------------
LANGUAGE_CODE = 'pt-br'
TIME_ZONE     = 'America/Sao_Paulo'
USE_I18N      = True
USE_TZ        = True

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
