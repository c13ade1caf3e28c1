import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# O container de DI é montado em SchedulingApiConfig.ready()
application = get_wsgi_application()
