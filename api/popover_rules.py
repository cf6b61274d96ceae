"""
팝오버 표시 규칙 평가

현재 요청 컨텍스트와 게시된 팝오버 목록으로 표시할 팝오버를 최대 하나 선택한다.
선택 정렬: priority 내림차순 -> created_at 내림차순 (최신 우선) -> id 내림차순
"""
import logging
from dataclasses import dataclass, field

from django.conf import settings
from django.utils import timezone
from django.utils.module_loading import import_string

from .models_popover import Popover, dismissal_cookie_name

logger = logging.getLogger(__name__)


class PageType:
    FRONT_PAGE = 'front_page'
    PAGE = 'page'
    POST = 'post'
    OTHER = 'other'

    ALL = (FRONT_PAGE, PAGE, POST, OTHER)


LOCATION_PAGE_TYPES = {
    'homepage': PageType.FRONT_PAGE,
    'pages': PageType.PAGE,
    'posts': PageType.POST,
}


@dataclass(frozen=True)
class RequestContext:
    """팝오버 선택에 필요한 요청 정보"""

    page_type: str = PageType.OTHER
    cookie_names: frozenset = field(default_factory=frozenset)
    is_admin: bool = False
    is_preview: bool = False
    is_login_page: bool = False

    @property
    def is_administrative(self):
        return self.is_admin or self.is_preview or self.is_login_page

    @classmethod
    def from_request(cls, request):
        """
        Django/DRF 요청에서 컨텍스트 생성

        page_type, path, preview 값은 쿼리 파라미터로 전달된다.
        'front_page' 만 사이트 첫 화면으로 인정하고 그 외 값은 'other'
        """
        params = getattr(request, 'query_params', None) or request.GET

        page_type = params.get('page_type', PageType.OTHER)
        if page_type not in PageType.ALL:
            page_type = PageType.OTHER

        path = params.get('path', '') or ''
        login_url = getattr(settings, 'LOGIN_URL', '') or ''
        is_preview = bool(params.get('preview') or params.get('customize_changeset_uuid'))

        return cls(
            page_type=page_type,
            cookie_names=frozenset(request.COOKIES.keys()),
            is_admin=path.startswith('/admin/'),
            is_preview=is_preview,
            is_login_page=bool(login_url) and path.rstrip('/') == login_url.rstrip('/'),
        )


def popover_sort_key(popover):
    """
    후보 정렬 키 (오름차순 정렬 시 먼저 표시될 팝오버가 앞)

    priority 가 같으면 최근 생성된 것, 생성일시까지 같으면 id 가 큰 것이 앞
    """
    created_at = popover.created_at.timestamp() if popover.created_at else 0.0
    return (-popover.priority, -created_at, -(popover.pk or 0))


def sort_candidates(candidates):
    return sorted(candidates, key=popover_sort_key)


def location_matches(location, page_type):
    """표시 위치 규칙이 현재 페이지 타입과 맞는지 확인"""
    expected = LOCATION_PAGE_TYPES.get(location)
    if expected is None:
        # 'all' 및 알 수 없는 값은 모든 페이지 (아카이브, 검색, 404 포함)
        return True
    return page_type == expected


def date_range_valid(start_date, end_date, now):
    """현재 시간이 표시 기간 안에 있는지 확인"""
    if start_date and start_date > now:
        return False
    if end_date and end_date < now:
        return False
    if start_date and end_date and end_date < start_date:
        return False
    return True


def is_dismissed(popover_id, cookie_names):
    return dismissal_cookie_name(popover_id) in cookie_names


def select_popover(now, context, candidates, should_display=None):
    """
    정렬된 후보 목록에서 표시할 팝오버 선택

    위치 -> 기간 -> 닫기 쿠키 -> should_display 순으로 검사하여 처음 통과한
    후보를 반환한다. 통과한 후보가 없으면 None. 부수효과 없음.
    """
    for popover in candidates:
        if popover.post_status != 'publish':
            continue
        if not location_matches(popover.display_location, context.page_type):
            continue
        if not date_range_valid(popover.start_date, popover.end_date, now):
            continue
        if is_dismissed(popover.pk, context.cookie_names):
            continue
        if should_display is not None and not should_display(popover, context):
            continue
        return popover
    return None


def build_query_args():
    """후보 조회 기본 조건"""
    return {
        'filter': {'post_status': 'publish'},
        'exclude': {},
        'order_by': ['-priority', '-created_at', '-id'],
    }


def _load_hooks(setting_name):
    return [import_string(path) for path in getattr(settings, setting_name, [])]


def configured_query_args_filter():
    """POPOVER_QUERY_ARGS_FILTERS 설정의 함수들을 순서대로 적용하는 필터"""
    hooks = _load_hooks('POPOVER_QUERY_ARGS_FILTERS')
    if not hooks:
        return None

    def apply(args):
        for hook in hooks:
            args = hook(args)
        return args
    return apply


def configured_display_filter():
    """POPOVER_DISPLAY_FILTERS 설정의 함수가 모두 True 여야 표시"""
    hooks = _load_hooks('POPOVER_DISPLAY_FILTERS')
    if not hooks:
        return None

    def apply(popover, context):
        return all(hook(popover, context) for hook in hooks)
    return apply


def query_candidates(query_args):
    queryset = Popover.objects.filter(**query_args.get('filter', {}))
    if query_args.get('exclude'):
        queryset = queryset.exclude(**query_args['exclude'])
    if query_args.get('order_by'):
        queryset = queryset.order_by(*query_args['order_by'])
    return list(queryset)


def get_active_popover(context, now=None, query_args_filter=None, should_display=None):
    """
    현재 요청에 표시할 팝오버 반환 (없으면 None)

    관리자 화면, 미리보기, 로그인 페이지에서는 조회 없이 None
    """
    if context.is_administrative:
        return None

    now = now or timezone.now()
    if query_args_filter is None:
        query_args_filter = configured_query_args_filter()
    if should_display is None:
        should_display = configured_display_filter()

    query_args = build_query_args()
    if query_args_filter is not None:
        query_args = query_args_filter(query_args)

    candidates = sort_candidates(query_candidates(query_args))
    popover = select_popover(now, context, candidates, should_display=should_display)

    if popover is None:
        logger.debug(f"[Popover] 표시할 팝오버 없음 (page_type={context.page_type}, 후보={len(candidates)})")
    else:
        logger.debug(f"[Popover] 선택됨: {popover.pk} (page_type={context.page_type})")
    return popover
