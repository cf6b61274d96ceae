"""
팝오버 뷰
"""
import logging

from django.urls import reverse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, status, filters
from rest_framework.decorators import action, api_view, permission_classes, authentication_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .models_popover import Popover
from .overlay_controller import set_dismissal_cookie
from .permissions import IsAdminRole
from .popover_rules import RequestContext, get_active_popover
from .serializers_popover import (
    PopoverListSerializer,
    PopoverDetailSerializer,
    PopoverDisplaySerializer,
    PopoverCreateSerializer,
    PopoverUpdateSerializer,
    TrackEventSerializer,
)
from .services.popover_analytics import (
    EVENT_CLOSE,
    EVENT_DISMISSAL,
    issue_tracking_token,
    record_event,
    get_popover_stats,
)
from .templatetags.popover_tags import render_popover_markup

logger = logging.getLogger(__name__)


class PopoverViewSet(viewsets.ModelViewSet):
    """팝오버 관리 뷰셋 (관리자 전용)"""

    queryset = Popover.objects.all()
    permission_classes = [IsAdminRole]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['post_status', 'display_location', 'form_provider']
    search_fields = ['title']
    ordering_fields = ['priority', 'created_at', 'views', 'start_date', 'end_date']
    ordering = ['-priority', '-created_at', '-id']

    def get_serializer_class(self):
        """액션에 따른 시리얼라이저 반환"""
        if self.action == 'list':
            return PopoverListSerializer
        elif self.action == 'create':
            return PopoverCreateSerializer
        elif self.action in ['update', 'partial_update']:
            return PopoverUpdateSerializer
        return PopoverDetailSerializer

    def _detail_response(self, instance, status_code):
        data = PopoverDetailSerializer(instance, context=self.get_serializer_context()).data
        # 종료일시가 시작일시보다 빠르면 저장은 하되 경고를 함께 반환
        warnings = ['invalid_dates'] if instance.has_invalid_date_range() else []
        if warnings:
            logger.warning(f"[Popover] 잘못된 표시 기간: {instance.pk} ({instance.start_date} ~ {instance.end_date})")
        return Response({**data, 'warnings': warnings}, status=status_code)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        instance = serializer.save()
        return self._detail_response(instance, status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        instance = serializer.save()
        return self._detail_response(instance, status.HTTP_200_OK)

    @action(detail=True, methods=['get'])
    def stats(self, request, pk=None):
        """팝오버 통계"""
        popover = self.get_object()
        return Response({
            'id': popover.id,
            'status': popover.get_status(),
            **get_popover_stats(popover),
        })


@api_view(['GET'])
@permission_classes([AllowAny])
def active_popover(request):
    """현재 페이지에 표시할 팝오버 (없으면 popover=null)"""
    context = RequestContext.from_request(request)
    popover = get_active_popover(context)

    if popover is None:
        return Response({'popover': None})

    token = issue_tracking_token()
    return Response({
        'popover': PopoverDisplaySerializer(popover, context={'request': request}).data,
        'html': render_popover_markup(popover),
        'tracking': {
            'ajaxUrl': request.build_absolute_uri(reverse('popover_track')),
            'nonce': token,
            'popoverId': popover.id,
        },
        'generated_at': timezone.now().isoformat(),
    })


@csrf_exempt
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def track_popover_event(request):
    """
    팝오버 추적 이벤트 (view / dismissal / close)

    서명된 nonce 로 요청 위조를 막으므로 세션 CSRF 검사는 하지 않는다.
    """
    serializer = TrackEventSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'success': False, 'data': 'Invalid request'}, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    event_kind = serializer.get_event_kind()
    result = record_event(
        data.get('popover_id'),
        event_kind,
        serializer.get_token(),
        metadata={'duration': request.data.get('duration')},
    )

    if not result.success:
        return Response({'success': False, 'data': result.error}, status=result.status_code)

    response = Response({'success': True})
    if event_kind in (EVENT_DISMISSAL, EVENT_CLOSE):
        # 스크립트가 쿠키를 못 남긴 경우에도 같은 닫기 쿠키가 설정되도록
        set_dismissal_cookie(response, result.popover_id, result.cookie_days, secure=request.is_secure())
    return response
