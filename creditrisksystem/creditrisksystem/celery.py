from celery import Celery
import os

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'creditrisksystem.settings')

app = Celery('creditrisksystem')
app.config_from_object('django.conf:settings', namespace='CELERY')

# This discovers tasks from all installed apps
app.autodiscover_tasks()
