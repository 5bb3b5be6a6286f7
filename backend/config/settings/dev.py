from .base import *

DEBUG = True
ALLOWED_HOSTS = ['*']

CORS_ALLOW_ALL_ORIGINS = True

# Verbose app logging locally
for name in LOCAL_APPS_LOGGERS:
    LOGGING['loggers'][name]['level'] = 'DEBUG'
LOGGING['loggers']['django.db.backends']['level'] = env('SQL_LOG_LEVEL', default='WARNING')
