from .base import *

DEBUG = False
SECRET_KEY = env('DJANGO_SECRET_KEY')

SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
SECURE_SSL_REDIRECT = env.bool('SECURE_SSL_REDIRECT', default=True)
SECURE_HSTS_SECONDS = 31536000
SECURE_HSTS_INCLUDE_SUBDOMAINS = True
SECURE_HSTS_PRELOAD = True
SECURE_CONTENT_TYPE_NOSNIFF = True
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
X_FRAME_OPTIONS = 'DENY'

LOG_DIR = BASE_DIR / 'logs'
LOG_DIR.mkdir(exist_ok=True)

LOGGING['formatters']['json'] = {
    'format': '{"level":"%(levelname)s","time":"%(asctime)s","logger":"%(name)s","message":"%(message)s"}',
}
LOGGING['handlers']['console']['formatter'] = 'json'
LOGGING['handlers']['file'] = {
    'class': 'logging.handlers.RotatingFileHandler',
    'filename': LOG_DIR / 'circle.log',
    'maxBytes': 10 * 1024 * 1024,
    'backupCount': 5,
    'formatter': 'json',
}
for logger_config in LOGGING['loggers'].values():
    logger_config['handlers'] = ['console', 'file']
LOGGING['root']['handlers'] = ['console', 'file']
