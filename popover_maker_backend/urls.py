"""
URL configuration for popover_maker_backend project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/4.2/topics/http/urls/
"""
from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from api.views_popover import PopoverViewSet, active_popover, track_popover_event
from api.views_health import health_check

router = DefaultRouter()
router.register(r'popovers', PopoverViewSet, basename='popover')

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/auth/', include([
        path('login/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
        path('refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    ])),
    # 방문자용 팝오버 API (라우터보다 먼저 등록)
    path('api/popovers/active/', active_popover, name='popover_active'),
    path('api/popovers/track/', track_popover_event, name='popover_track'),
    path('api/', include(router.urls)),
    # Health check API
    path('api/health/', health_check, name='health_check'),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
