"""
팝오버 통계 집계 서비스

클라이언트가 보내는 view / dismissal / close 이벤트를 검증하고
해당 팝오버의 카운터를 하나 증가시킨다.
"""
import logging
import math
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.core import signing

from api.models_popover import Popover, increment_counter

logger = logging.getLogger(__name__)

TRACKING_ACTION = 'popm_tracking'
TRACKING_TOKEN_SALT = 'api.popover.tracking'
DEFAULT_TOKEN_MAX_AGE = 60 * 60 * 24

EVENT_VIEW = 'view'
EVENT_DISMISSAL = 'dismissal'
EVENT_CLOSE = 'close'
EVENT_KINDS = (EVENT_VIEW, EVENT_DISMISSAL, EVENT_CLOSE)

ENGAGEMENT_THRESHOLD_SECONDS = 5.0


@dataclass(frozen=True)
class TrackingResult:
    success: bool
    error: Optional[str] = None
    status_code: int = 200
    counter: Optional[str] = None
    popover_id: Optional[int] = None
    cookie_days: Optional[int] = None

    @classmethod
    def ok(cls, counter, popover_id=None, cookie_days=None):
        return cls(success=True, counter=counter, popover_id=popover_id, cookie_days=cookie_days)

    @classmethod
    def fail(cls, error, status_code):
        return cls(success=False, error=error, status_code=status_code)


def _signer():
    return signing.TimestampSigner(salt=TRACKING_TOKEN_SALT)


def issue_tracking_token():
    """페이지 렌더링마다 발급하는 추적용 토큰"""
    return _signer().sign(TRACKING_ACTION)


def verify_tracking_token(token):
    if not token or not isinstance(token, str):
        return False
    max_age = getattr(settings, 'POPOVER_TRACKING_TOKEN_MAX_AGE', DEFAULT_TOKEN_MAX_AGE)
    try:
        value = _signer().unsign(token, max_age=max_age)
    except signing.BadSignature:
        # SignatureExpired 포함
        return False
    return value == TRACKING_ACTION


def get_engagement_threshold():
    return float(getattr(settings, 'POPOVER_ENGAGEMENT_THRESHOLD', ENGAGEMENT_THRESHOLD_SECONDS))


def parse_duration(raw):
    """표시 시간(초) 해석. 없거나 해석 불가, 음수면 0"""
    if raw is None or isinstance(raw, bool):
        return 0.0
    try:
        duration = float(raw)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(duration) or math.isinf(duration) or duration < 0:
        return 0.0
    return duration


def parse_popover_id(raw):
    try:
        popover_id = int(raw)
    except (TypeError, ValueError):
        return None
    return popover_id if popover_id > 0 else None


def counter_for_event(event_kind, metadata):
    if event_kind == EVENT_VIEW:
        return 'views'
    if event_kind == EVENT_DISMISSAL:
        return 'dismissals'
    duration = parse_duration((metadata or {}).get('duration'))
    if duration >= get_engagement_threshold():
        return 'engaged'
    return 'bounced'


def record_event(popover_id, event_kind, token, metadata=None):
    """
    추적 이벤트 기록

    토큰 검증 -> 이벤트 종류 -> 팝오버 확인 순으로 검사하고 통과하면
    카운터 하나를 원자적으로 증가시킨다. 실패 시 어떤 카운터도 바뀌지 않는다.
    """
    if not verify_tracking_token(token):
        logger.warning(f"[Popover Tracking] 토큰 검증 실패: event={event_kind}, popover={popover_id}")
        return TrackingResult.fail('Invalid nonce', 403)

    if event_kind not in EVENT_KINDS:
        return TrackingResult.fail('Invalid event', 400)

    pk = parse_popover_id(popover_id)
    if pk is None:
        return TrackingResult.fail('Invalid popover ID', 400)

    try:
        popover = Popover.objects.only('id', 'post_status', 'cookie_days').get(pk=pk)
    except Popover.DoesNotExist:
        logger.warning(f"[Popover Tracking] 존재하지 않는 팝오버: {pk}")
        return TrackingResult.fail('Invalid popover', 404)

    # 조회 이벤트는 게시된 팝오버만
    if event_kind == EVENT_VIEW and not popover.is_published:
        return TrackingResult.fail('Invalid popover', 404)

    counter = counter_for_event(event_kind, metadata)
    if not increment_counter(pk, counter):
        # 조회와 증가 사이에 삭제된 경우
        return TrackingResult.fail('Invalid popover', 404)

    logger.info(f"[Popover Tracking] popover={pk} event={event_kind} counter={counter}")
    return TrackingResult.ok(counter, popover_id=pk, cookie_days=popover.cookie_days)


def get_popover_stats(popover):
    """관리 화면용 통계"""
    return {
        'views': popover.views,
        'dismissals': popover.dismissals,
        'engaged': popover.engaged,
        'bounced': popover.bounced,
        'dismissal_rate': popover.dismissal_rate,
        'engagement_rate': popover.engagement_rate,
    }
