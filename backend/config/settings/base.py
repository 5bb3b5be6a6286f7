from pathlib import Path
from datetime import timedelta
from celery.schedules import crontab

import environ

env = environ.Env(
    DEBUG=(bool, False),
    DJANGO_ENV=(str, 'development'),
)

BASE_DIR = Path(__file__).resolve().parent.parent.parent

env_file = BASE_DIR / '.env'
if env_file.exists():
    environ.Env.read_env(str(env_file))

# Environment detection
DJANGO_ENV = env('DJANGO_ENV', default='development')  # development | staging | production
IS_PRODUCTION = DJANGO_ENV == 'production'
IS_DEVELOPMENT = DJANGO_ENV == 'development'

# Security
SECRET_KEY = env('DJANGO_SECRET_KEY', default='insecure-dev-key-change-in-production')
DEBUG = env.bool('DEBUG', default=IS_DEVELOPMENT)
ALLOWED_HOSTS = env.list('ALLOWED_HOSTS', default=['localhost', '127.0.0.1', '0.0.0.0'])

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    # Third party
    'rest_framework',
    'rest_framework_simplejwt',
    'rest_framework_simplejwt.token_blacklist',
    'corsheaders',
    'storages',
    'django_filters',
    'django_celery_beat',
    # Local apps
    'accounts.apps.AccountsConfig',
    'social.apps.SocialConfig',
    'chat.apps.ChatConfig',
    'calls.apps.CallsConfig',
    'admin_api.apps.AdminApiConfig',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'config.wsgi.application'
ASGI_APPLICATION = 'config.asgi.application'

# Database
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.mysql',
        'NAME': env('DB_NAME', default='circle'),
        'USER': env('DB_USER', default='circle'),
        'PASSWORD': env('DB_PASSWORD', default='circle'),
        'HOST': env('DB_HOST', default='db'),
        'PORT': env('DB_PORT', default='3306'),
        'OPTIONS': {
            'charset': 'utf8mb4',
            'init_command': "SET sql_mode='STRICT_TRANS_TABLES'",
            **( {'ssl': {'ca': env('DB_SSL_CA', default='')}} if env('DB_SSL_CA', default='') else {} ),
        },
    }
}

# Auth
AUTH_USER_MODEL = 'accounts.User'

# REST Framework
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticated',
    ),
    'DEFAULT_PAGINATION_CLASS': 'config.pagination.DefaultCursorPagination',
    'PAGE_SIZE': 50,
    'DEFAULT_FILTER_BACKENDS': (
        'django_filters.rest_framework.DjangoFilterBackend',
        'rest_framework.filters.SearchFilter',
        'rest_framework.filters.OrderingFilter',
    ),
    'DEFAULT_THROTTLE_RATES': {
        'user': '100/hour',
        'otp': '10/minute',
    },
    'EXCEPTION_HANDLER': 'config.exceptions.exception_handler',
}

# JWT
SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(minutes=env.int('JWT_ACCESS_MINUTES', default=60)),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=env.int('JWT_REFRESH_DAYS', default=7)),
    'ROTATE_REFRESH_TOKENS': True,
    'BLACKLIST_AFTER_ROTATION': True,
    'AUTH_HEADER_TYPES': ('Bearer',),
}

# OTP (delivery is mocked, every actor receives the same code)
OTP_FIXED_CODE = env('OTP_FIXED_CODE', default='123456')
OTP_TTL_SECONDS = env.int('OTP_TTL_SECONDS', default=300)
OTP_RESEND_COOLDOWN_SECONDS = env.int('OTP_RESEND_COOLDOWN_SECONDS', default=60)
DEFAULT_COUNTRY_CODE = env('DEFAULT_COUNTRY_CODE', default='+91')
MINIMUM_USER_AGE = 18

# Social / chat
FOLLOW_REQUEST_TTL_DAYS = env.int('FOLLOW_REQUEST_TTL_DAYS', default=7)
MESSAGE_REQUEST_TTL_DAYS = env.int('MESSAGE_REQUEST_TTL_DAYS', default=7)
MESSAGE_MAX_LENGTH = 4096
MESSAGE_EDIT_WINDOW_SECONDS = 900
EDIT_HISTORY_LIMIT = 10
MEDIA_MAX_BYTES = env.int('MEDIA_MAX_BYTES', default=50 * 1024 * 1024)

# Calls
CALL_RATE_LIMIT = env.int('CALL_RATE_LIMIT', default=5)
CALL_RATE_WINDOW_SECONDS = env.int('CALL_RATE_WINDOW_SECONDS', default=60)
CALL_STALE_MINUTES = env.int('CALL_STALE_MINUTES', default=5)

# Redis
REDIS_URL = env('REDIS_URL', default='redis://redis:6379/0')

CACHES = {
    'default': {
        'BACKEND': 'django_redis.cache.RedisCache',
        'LOCATION': REDIS_URL,
        'OPTIONS': {
            'CLIENT_CLASS': 'django_redis.client.DefaultClient',
            **({'CONNECTION_POOL_KWARGS': {'ssl_cert_reqs': None}} if REDIS_URL.startswith('rediss://') else {}),
        },
    }
}

# Session
SESSION_ENGINE = 'django.contrib.sessions.backends.cache'
SESSION_CACHE_ALIAS = 'default'

# Celery
CELERY_BROKER_URL = env('CELERY_BROKER_URL', default=REDIS_URL)
CELERY_RESULT_BACKEND = env('CELERY_RESULT_BACKEND', default=REDIS_URL)
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = 'UTC'
CELERY_BROKER_CONNECTION_RETRY_ON_STARTUP = True
CELERY_BEAT_SCHEDULER = 'django_celery_beat.schedulers:DatabaseScheduler'
# When using DatabaseScheduler, add these in Django Admin (Periodic Tasks).
# When using default beat scheduler, this schedule applies:
CELERY_BEAT_SCHEDULE = {
    'expire-follow-requests': {
        'task': 'social.expire_follow_requests',
        'schedule': crontab(minute='*/15'),
    },
    'expire-message-requests': {
        'task': 'chat.expire_message_requests',
        'schedule': crontab(minute='*/15'),
    },
    'cleanup-stale-calls': {
        'task': 'calls.cleanup_stale_calls',
        'schedule': crontab(minute='*/5'),
    },
}

# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

# Media & Static: local in dev, S3-compatible Spaces in prod
USE_SPACES = env.bool('USE_SPACES', default=False)

if USE_SPACES:
    AWS_ACCESS_KEY_ID = env('SPACES_ACCESS_KEY')
    AWS_SECRET_ACCESS_KEY = env('SPACES_SECRET_KEY')
    AWS_STORAGE_BUCKET_NAME = env('SPACES_BUCKET_NAME')
    AWS_S3_ENDPOINT_URL = env('SPACES_ENDPOINT_URL')
    AWS_S3_REGION_NAME = env('SPACES_REGION', default='fra1')
    AWS_S3_OBJECT_PARAMETERS = {'CacheControl': 'max-age=86400'}
    AWS_DEFAULT_ACL = 'public-read'
    AWS_S3_SIGNATURE_VERSION = 's3v4'
    AWS_QUERYSTRING_AUTH = False
    STORAGES = {
        'default': {'BACKEND': 'config.storage_backends.MediaStorage'},
        'staticfiles': {'BACKEND': 'config.storage_backends.StaticStorage'},
    }
    STATIC_URL = f'{AWS_S3_ENDPOINT_URL}/{AWS_STORAGE_BUCKET_NAME}/static/'
    MEDIA_URL = f'{AWS_S3_ENDPOINT_URL}/{AWS_STORAGE_BUCKET_NAME}/media/'
    MEDIA_ROOT = BASE_DIR / 'media'
    STATIC_ROOT = BASE_DIR / 'staticfiles'
else:
    STATIC_URL = '/static/'
    STATIC_ROOT = BASE_DIR / 'staticfiles'
    MEDIA_URL = '/media/'
    MEDIA_ROOT = BASE_DIR / 'media'

STATICFILES_DIRS = [BASE_DIR / 'static'] if (BASE_DIR / 'static').exists() else []

# File upload
FILE_UPLOAD_MAX_MEMORY_SIZE = 52428800  # 50MB
DATA_UPLOAD_MAX_MEMORY_SIZE = 52428800  # 50MB

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# CORS (dev.py opens it to every origin)
CORS_ALLOW_CREDENTIALS = True
CORS_ALLOWED_ORIGINS = env.list('CORS_ALLOWED_ORIGINS', default=[])

# Logging: app loggers share the console handler; prod.py adds a file handler
LOG_LEVEL = env('LOG_LEVEL', default='DEBUG' if IS_DEVELOPMENT else 'INFO')
LOCAL_APPS_LOGGERS = ('accounts', 'social', 'chat', 'calls', 'admin_api', 'config')
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {
            'format': '{levelname} {asctime} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
    },
    'root': {'handlers': ['console'], 'level': 'WARNING'},
    'loggers': {
        'django': {'handlers': ['console'], 'level': 'INFO', 'propagate': False},
        'django.db.backends': {'handlers': ['console'], 'level': 'WARNING', 'propagate': False},
        'celery': {'handlers': ['console'], 'level': 'INFO', 'propagate': False},
        **{
            name: {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False}
            for name in LOCAL_APPS_LOGGERS
        },
    },
}

# Sentry, optional
SENTRY_DSN = env('SENTRY_DSN', default='')
if SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.django import DjangoIntegration
    from sentry_sdk.integrations.celery import CeleryIntegration
    from sentry_sdk.integrations.redis import RedisIntegration
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[DjangoIntegration(), CeleryIntegration(), RedisIntegration()],
        traces_sample_rate=0.1 if IS_PRODUCTION else 1.0,
        send_default_pii=False,
        environment=DJANGO_ENV,
    )
