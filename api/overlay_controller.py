"""
팝오버 오버레이 수명주기 컨트롤러

브라우저 스크립트가 하던 열기/닫기/추적 흐름을 상태 머신으로 옮긴 것.
오버레이 컨테이너, 페이지, 트래커를 생성자로 주입받으므로 실제 페이지 없이
동작을 재현하고 테스트할 수 있다.

상태: closed(초기) -> open -> closed(종료). 닫힌 뒤에는 다시 열 수 없다.
"""
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

import requests

from .models_popover import clamp_cookie_days, dismissal_cookie_name

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60
ESCAPE_KEYS = ('Escape', 'Esc', 27)


@dataclass(frozen=True)
class DismissalCookie:
    """팝오버 닫기 쿠키"""

    name: str
    max_age: int
    value: str = '1'
    path: str = '/'
    samesite: str = 'Lax'
    secure: bool = False


def build_dismissal_cookie(popover_id, cookie_days, secure=False):
    """cookie_days 가 0 이하이면 닫기를 기억하지 않으므로 None"""
    if cookie_days <= 0:
        return None
    return DismissalCookie(
        name=dismissal_cookie_name(popover_id),
        max_age=cookie_days * SECONDS_PER_DAY,
        secure=secure,
    )


def set_dismissal_cookie(response, popover_id, cookie_days, secure=False):
    """Django 응답에 닫기 쿠키 설정. 설정했으면 True"""
    cookie = build_dismissal_cookie(popover_id, cookie_days, secure=secure)
    if cookie is None:
        return False
    response.set_cookie(
        cookie.name,
        cookie.value,
        max_age=cookie.max_age,
        path=cookie.path,
        samesite=cookie.samesite,
        secure=cookie.secure,
    )
    return True


@dataclass
class OverlayContainer:
    """
    렌더링된 오버레이 핸들

    data-popover-id, data-cookie-days 속성과 닫기 버튼, 콘텐츠 영역만 사용한다.
    remove 는 페이지에서 오버레이를 제거하는 콜백
    """

    popover_id: str
    cookie_days: int
    close_control: Any
    content: Any
    remove: Callable[[], None]

    @classmethod
    def from_attributes(cls, attributes, close_control, content, remove):
        # 속성값은 앞쪽 정수만 사용 ('7.0' -> 7, 해석 불가 -> 0)
        return cls(
            popover_id=str(attributes.get('data-popover-id', '')),
            cookie_days=clamp_cookie_days(attributes.get('data-cookie-days') or 0),
            close_control=close_control,
            content=content,
            remove=remove,
        )


class PageHandle(ABC):
    """컨트롤러가 페이지에 요구하는 동작"""

    is_secure = False

    @abstractmethod
    def lock_scroll(self):
        pass

    @abstractmethod
    def unlock_scroll(self):
        pass

    @abstractmethod
    def focus(self, element):
        pass

    @abstractmethod
    def set_cookie(self, cookie):
        pass


class NullTracker:
    """이벤트를 보내지 않는 트래커 (서버 렌더링 등 추적이 필요 없을 때)"""

    def emit(self, event_kind, popover_id, **metadata):
        return None


class RecordingTracker:
    """보낸 이벤트를 순서대로 events 에 쌓아 두는 트래커"""

    def __init__(self):
        self.events = []

    def emit(self, event_kind, popover_id, **metadata):
        self.events.append((event_kind, popover_id, metadata))


class HttpEventTracker:
    """
    추적 엔드포인트로 이벤트를 보내는 트래커

    요청은 데몬 스레드에서 보내고 결과를 기다리지 않는다.
    네트워크 오류는 로그만 남기고 무시한다.
    """

    def __init__(self, url, token, session=None, timeout=5):
        self.url = url
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    def build_payload(self, event_kind, popover_id, **metadata):
        payload = {
            'event': event_kind,
            'nonce': self.token,
            'popover_id': popover_id,
        }
        if 'duration' in metadata:
            payload['duration'] = metadata['duration']
        return payload

    def send(self, payload):
        try:
            response = self.session.post(self.url, data=payload, timeout=self.timeout)
            if response.status_code >= 400:
                logger.warning(f"[Popover Tracker] 이벤트 거부됨: {response.status_code} {payload.get('event')}")
        except requests.RequestException as e:
            logger.warning(f"[Popover Tracker] 이벤트 전송 실패: {str(e)}")

    def emit(self, event_kind, popover_id, **metadata):
        payload = self.build_payload(event_kind, popover_id, **metadata)
        thread = threading.Thread(target=self.send, args=(payload,), daemon=True)
        thread.start()
        return thread


class OverlayController:
    """오버레이 열기/닫기 상태 머신"""

    STATE_CLOSED = 'closed'
    STATE_OPEN = 'open'

    def __init__(self, container: OverlayContainer, page: PageHandle, tracker=None,
                 clock: Callable[[], float] = time.monotonic):
        self.container = container
        self.page = page
        self.tracker = tracker if tracker is not None else NullTracker()
        self.clock = clock
        self.state = self.STATE_CLOSED
        self.opened_at: Optional[float] = None
        self._finished = False

    @property
    def is_open(self):
        return self.state == self.STATE_OPEN

    def _emit(self, event_kind, **metadata):
        # 추적 실패가 상태 전이에 영향을 주면 안 된다
        try:
            self.tracker.emit(event_kind, self.container.popover_id, **metadata)
        except Exception as e:
            logger.warning(f"[Popover] {event_kind} 이벤트 추적 실패: {str(e)}")

    def open(self):
        """페이지 준비 시 한 번 호출. 이미 열렸거나 닫힌 뒤면 무시"""
        if self.state != self.STATE_CLOSED or self._finished:
            return False

        self.state = self.STATE_OPEN
        self.page.lock_scroll()
        if self.container.close_control is not None:
            self.page.focus(self.container.close_control)
        self.opened_at = self.clock()
        self._emit('view')
        return True

    def close(self):
        """열린 상태에서만 동작. 두 번째 호출부터는 아무것도 하지 않음"""
        if self.state != self.STATE_OPEN:
            return False

        duration = max(0.0, self.clock() - self.opened_at)
        self._emit('close', duration=duration)

        self.container.remove()
        self.page.unlock_scroll()

        cookie = build_dismissal_cookie(
            self.container.popover_id,
            self.container.cookie_days,
            secure=self.page.is_secure,
        )
        if cookie is not None:
            self.page.set_cookie(cookie)

        self.state = self.STATE_CLOSED
        self._finished = True
        return True

    # 닫기 트리거 3종 (모두 동일하게 close 호출)

    def on_close_click(self):
        return self.close()

    def on_backdrop_click(self, target):
        """배경(오버레이 자체)을 클릭했을 때만 닫기. 팝업 내부 클릭은 무시"""
        if target is not self.container:
            return False
        return self.close()

    def on_keydown(self, key):
        if key not in ESCAPE_KEYS:
            return False
        return self.close()
