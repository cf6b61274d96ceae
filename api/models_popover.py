"""
팝오버 관련 모델
"""
import math
import re

from django.db import models
from django.db.models import F
from django.utils import timezone
from django.conf import settings


DEFAULT_PRIORITY = 10
MIN_PRIORITY = 0
MAX_PRIORITY = 999

DEFAULT_COOKIE_DAYS = 7
MIN_COOKIE_DAYS = 0
MAX_COOKIE_DAYS = 365

DEFAULT_WIDTH = '900px'
DEFAULT_MAX_HEIGHT = '600px'

DISMISSAL_COOKIE_PREFIX = 'popm_dismissed_'

COUNTER_FIELDS = ('views', 'dismissals', 'engaged', 'bounced')


LEADING_INT_RE = re.compile(r'\s*([+-]?)(\d+)')
# 이보다 긴 숫자열은 어느 범위든 넘어서므로 무한대로 취급
MAX_INT_DIGITS = 18


def parse_leading_int(value):
    """
    앞쪽 정수 부분만 해석 ('12abc' -> 12, '7.0' -> 7)

    해석할 수 없으면 0. 무한대는 부호에 따라 +-inf 그대로 반환해
    호출하는 쪽에서 범위로 보정한다.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value):
            return 0
        if math.isinf(value):
            return value
        return int(value)
    if not isinstance(value, str):
        return 0
    match = LEADING_INT_RE.match(value)
    if not match:
        return 0
    sign, digits = match.groups()
    if len(digits.lstrip('0')) > MAX_INT_DIGITS:
        return -math.inf if sign == '-' else math.inf
    return int(sign + digits)


def _clamp_int(value, default, minimum, maximum):
    # 값이 아예 없을 때만 기본값
    if value is None:
        return default
    number = parse_leading_int(value)
    return int(max(minimum, min(maximum, number)))


def clamp_priority(value):
    """우선순위를 0-999 범위로 보정 (값이 없으면 기본값, 해석 불가 값은 0)"""
    return _clamp_int(value, DEFAULT_PRIORITY, MIN_PRIORITY, MAX_PRIORITY)


def clamp_cookie_days(value):
    """쿠키 유지 일수를 0-365 범위로 보정 (값이 없으면 기본값, 해석 불가 값은 0)"""
    return _clamp_int(value, DEFAULT_COOKIE_DAYS, MIN_COOKIE_DAYS, MAX_COOKIE_DAYS)


def dismissal_cookie_name(popover_id):
    return f'{DISMISSAL_COOKIE_PREFIX}{popover_id}'


def increment_counter(popover_id, field):
    """
    통계 카운터 1 증가

    UPDATE ... SET field = field + 1 한 번으로 처리되므로 동시 요청에서도
    증가분이 유실되지 않는다. 갱신된 행 수를 반환 (0이면 존재하지 않는 팝오버)
    """
    if field not in COUNTER_FIELDS:
        raise ValueError(f'Unknown counter field: {field}')
    return Popover.objects.filter(pk=popover_id).update(**{field: F(field) + 1})


class Popover(models.Model):
    """팝오버 모델"""

    FORM_PROVIDER_CHOICES = [
        ('google_forms', 'Google Forms'),
    ]

    DISPLAY_LOCATION_CHOICES = [
        ('all', '전체 페이지'),
        ('homepage', '홈페이지만'),
        ('pages', '페이지만'),
        ('posts', '게시글만'),
    ]

    POST_STATUS_CHOICES = [
        ('publish', '게시'),
        ('draft', '임시저장'),
        ('pending', '검토 대기'),
        ('private', '비공개'),
    ]

    STATUS_SCHEDULED = 'scheduled'
    STATUS_ACTIVE = 'active'
    STATUS_EXPIRED = 'expired'

    STATUS_LABELS = {
        STATUS_SCHEDULED: 'Scheduled',
        STATUS_ACTIVE: 'Active',
        STATUS_EXPIRED: 'Expired',
    }

    # 기본 정보
    title = models.CharField(
        max_length=200,
        verbose_name='팝오버 제목'
    )

    post_status = models.CharField(
        max_length=10,
        choices=POST_STATUS_CHOICES,
        default='draft',
        verbose_name='게시 상태',
        help_text='게시(publish) 상태의 팝오버만 표시됨'
    )

    featured_image = models.ImageField(
        upload_to='popovers/%Y/%m/',
        blank=True,
        null=True,
        verbose_name='대표 이미지'
    )

    # 폼 설정
    form_provider = models.CharField(
        max_length=20,
        choices=FORM_PROVIDER_CHOICES,
        default='google_forms',
        verbose_name='폼 제공자'
    )

    form_url = models.URLField(
        max_length=500,
        blank=True,
        default='',
        verbose_name='폼 URL',
        help_text='폼의 임베드 URL'
    )

    # 표시 규칙
    display_location = models.CharField(
        max_length=10,
        choices=DISPLAY_LOCATION_CHOICES,
        default='all',
        verbose_name='표시 위치'
    )

    priority = models.IntegerField(
        default=DEFAULT_PRIORITY,
        verbose_name='우선순위',
        help_text='높은 숫자가 먼저 표시됨 (0-999)'
    )

    # 표시 기간
    start_date = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name='시작일시',
        help_text='비어있으면 즉시 시작'
    )

    end_date = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name='종료일시',
        help_text='비어있으면 계속 표시'
    )

    # 레이아웃
    width = models.CharField(
        max_length=20,
        default=DEFAULT_WIDTH,
        blank=True,
        verbose_name='너비',
        help_text='CSS 값 (예: 900px, 80%, 90vw)'
    )

    max_height = models.CharField(
        max_length=20,
        default=DEFAULT_MAX_HEIGHT,
        blank=True,
        verbose_name='최대 높이',
        help_text='CSS 값 (예: 600px, 80%, 90vh)'
    )

    # 닫기 설정
    cookie_days = models.IntegerField(
        default=DEFAULT_COOKIE_DAYS,
        verbose_name='닫기 기억 일수',
        help_text='닫은 뒤 다시 표시하지 않을 일수 (0이면 항상 표시, 최대 365)'
    )

    # 통계
    views = models.PositiveIntegerField(default=0, verbose_name='조회수')
    dismissals = models.PositiveIntegerField(default=0, verbose_name='닫기 수')
    engaged = models.PositiveIntegerField(
        default=0,
        verbose_name='참여',
        help_text='5초 이상 열려 있다가 닫힌 횟수'
    )
    bounced = models.PositiveIntegerField(
        default=0,
        verbose_name='이탈',
        help_text='5초 안에 닫힌 횟수'
    )

    # 메타 정보
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        verbose_name='작성자',
        related_name='popovers'
    )

    created_at = models.DateTimeField(
        default=timezone.now,
        verbose_name='생성일시'
    )

    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name='수정일시'
    )

    class Meta:
        verbose_name = '팝오버'
        verbose_name_plural = '팝오버'
        ordering = ['-priority', '-created_at', '-id']

    def __str__(self):
        return f"[{self.get_post_status_display()}] {self.title}"

    def save(self, *args, **kwargs):
        self.priority = clamp_priority(self.priority)
        self.cookie_days = clamp_cookie_days(self.cookie_days)
        if self.display_location not in dict(self.DISPLAY_LOCATION_CHOICES):
            self.display_location = 'all'
        if self.form_provider not in dict(self.FORM_PROVIDER_CHOICES):
            self.form_provider = 'google_forms'
        self.width = (self.width or '').strip() or DEFAULT_WIDTH
        self.max_height = (self.max_height or '').strip() or DEFAULT_MAX_HEIGHT
        super().save(*args, **kwargs)

    @property
    def is_published(self):
        return self.post_status == 'publish'

    @property
    def dismissal_cookie_name(self):
        return dismissal_cookie_name(self.pk)

    def has_invalid_date_range(self):
        """종료일시가 시작일시보다 이전인지 확인"""
        return bool(
            self.start_date and self.end_date and self.end_date < self.start_date
        )

    def get_status(self, now=None):
        """현재 시간 기준 상태 (scheduled / active / expired)"""
        now = now or timezone.now()
        if self.start_date and self.start_date > now:
            return self.STATUS_SCHEDULED
        if self.end_date and self.end_date < now:
            return self.STATUS_EXPIRED
        return self.STATUS_ACTIVE

    def get_status_display(self, now=None):
        return self.STATUS_LABELS[self.get_status(now)]

    @property
    def layout_class(self):
        has_image = bool(self.featured_image)
        if has_image and self.form_url:
            return 'popm-layout-both'
        if self.form_url:
            return 'popm-layout-form-only'
        if has_image:
            return 'popm-layout-image-only'
        return 'popm-layout-empty'

    @property
    def dismissal_rate(self):
        """닫기 비율 (%)"""
        if self.views > 0:
            return round(self.dismissals / self.views * 100, 1)
        return 0

    @property
    def engagement_rate(self):
        """참여 비율 (%) - 닫힘 이벤트 중 engaged 비율"""
        closes = self.engaged + self.bounced
        if closes > 0:
            return round(self.engaged / closes * 100, 1)
        return 0

    def increment_counter(self, field):
        """카운터 증가 후 인스턴스 값을 DB 값으로 갱신"""
        updated = increment_counter(self.pk, field)
        if updated:
            self.refresh_from_db(fields=[field])
        return updated
