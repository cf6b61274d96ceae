"""
팝오버 시리얼라이저
"""
from rest_framework import serializers
from .models_popover import (
    Popover,
    COUNTER_FIELDS,
    DEFAULT_WIDTH,
    DEFAULT_MAX_HEIGHT,
    clamp_priority,
    clamp_cookie_days,
)


class ClampedIntegerField(serializers.Field):
    """범위를 벗어나거나 해석할 수 없는 값을 거부하지 않고 보정하는 정수 필드"""

    def __init__(self, clamp, **kwargs):
        self.clamp = clamp
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        return self.clamp(data)

    def to_representation(self, value):
        return int(value)


class PopoverListSerializer(serializers.ModelSerializer):
    """팝오버 목록 시리얼라이저"""

    status = serializers.SerializerMethodField()
    status_display = serializers.SerializerMethodField()

    class Meta:
        model = Popover
        fields = [
            'id', 'title', 'post_status', 'display_location', 'priority',
            'start_date', 'end_date', 'status', 'status_display',
            'views', 'dismissals', 'engaged', 'bounced', 'created_at'
        ]

    def get_status(self, obj):
        return obj.get_status()

    def get_status_display(self, obj):
        return obj.get_status_display()


class PopoverDetailSerializer(serializers.ModelSerializer):
    """팝오버 상세 시리얼라이저"""

    status = serializers.SerializerMethodField()
    has_invalid_dates = serializers.SerializerMethodField()
    dismissal_rate = serializers.FloatField(read_only=True)
    engagement_rate = serializers.FloatField(read_only=True)

    class Meta:
        model = Popover
        fields = '__all__'
        read_only_fields = list(COUNTER_FIELDS) + ['author', 'created_at', 'updated_at']

    def get_status(self, obj):
        return obj.get_status()

    def get_has_invalid_dates(self, obj):
        return obj.has_invalid_date_range()


class PopoverDisplaySerializer(serializers.ModelSerializer):
    """방문자 화면 표시용 시리얼라이저"""

    cookie_name = serializers.CharField(source='dismissal_cookie_name', read_only=True)
    layout_class = serializers.CharField(read_only=True)

    class Meta:
        model = Popover
        fields = [
            'id', 'title', 'featured_image', 'form_provider', 'form_url',
            'width', 'max_height', 'cookie_days', 'cookie_name', 'layout_class'
        ]


class PopoverWriteSerializer(serializers.ModelSerializer):
    """팝오버 생성/수정 시리얼라이저 (관리자용)"""

    priority = ClampedIntegerField(clamp_priority, required=False)
    cookie_days = ClampedIntegerField(clamp_cookie_days, required=False)
    display_location = serializers.CharField(required=False)
    form_provider = serializers.CharField(required=False)

    class Meta:
        model = Popover
        exclude = list(COUNTER_FIELDS) + ['author', 'created_at']

    def validate_display_location(self, value):
        if value not in dict(Popover.DISPLAY_LOCATION_CHOICES):
            return 'all'
        return value

    def validate_form_provider(self, value):
        if value not in dict(Popover.FORM_PROVIDER_CHOICES):
            return 'google_forms'
        return value

    def validate_width(self, value):
        return (value or '').strip() or DEFAULT_WIDTH

    def validate_max_height(self, value):
        return (value or '').strip() or DEFAULT_MAX_HEIGHT


class PopoverCreateSerializer(PopoverWriteSerializer):
    """팝오버 생성 시리얼라이저 (관리자용)"""

    def create(self, validated_data):
        """팝오버 생성"""
        validated_data['author'] = self.context['request'].user
        return super().create(validated_data)


class PopoverUpdateSerializer(PopoverWriteSerializer):
    """팝오버 수정 시리얼라이저 (관리자용)"""


class TrackEventSerializer(serializers.Serializer):
    """추적 요청 파라미터"""

    LEGACY_ACTIONS = {
        'popm_track_view': 'view',
        'popm_track_dismissal': 'dismissal',
        'popm_track_close': 'close',
    }

    event = serializers.CharField(required=False, allow_blank=True)
    action = serializers.CharField(required=False, allow_blank=True)
    nonce = serializers.CharField(required=False, allow_blank=True)
    token = serializers.CharField(required=False, allow_blank=True)
    popover_id = serializers.CharField(required=False, allow_blank=True)
    # duration 은 형식 검사 없이 원본 그대로 parse_duration 에 넘긴다

    def get_event_kind(self):
        data = self.validated_data
        if data.get('event'):
            return data['event']
        return self.LEGACY_ACTIONS.get(data.get('action', ''), data.get('action', ''))

    def get_token(self):
        data = self.validated_data
        return data.get('nonce') or data.get('token') or ''
