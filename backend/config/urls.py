import logging

from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from django.db import DatabaseError, connection
from django.core.cache import cache

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([AllowAny])
def health_check(request):
    # Check DB
    db_ok = False
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        db_ok = True
    except DatabaseError as e:
        logger.error(f'Health check database error: {e}')

    # Check cache
    cache_ok = False
    try:
        cache.set('health_check', 'ok', 10)
        cache_ok = cache.get('health_check') == 'ok'
    except Exception as e:
        logger.error(f'Health check cache error: {e}')

    status_code = 200 if (db_ok and cache_ok) else 503
    return Response({
        'status': 'ok' if (db_ok and cache_ok) else 'degraded',
        'db': 'connected' if db_ok else 'disconnected',
        'cache': 'connected' if cache_ok else 'disconnected',
        'version': '1.0.0',
    }, status=status_code)


urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/health/', health_check, name='health-check'),
    path('api/auth/', include('accounts.urls')),
    path('api/social/', include('social.urls')),
    path('api/chat/', include('chat.urls')),
    path('api/calls/', include('calls.urls')),
    path('api/admin-panel/', include('admin_api.urls')),
    path('api/subadmin/', include('admin_api.urls_subadmin')),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
