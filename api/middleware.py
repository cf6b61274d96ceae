import logging

logger = logging.getLogger(__name__)

TRACKING_PATH = '/api/popovers/track/'


class RequestLoggingMiddleware:
    """팝오버 추적 요청과 그 결과를 로깅하는 미들웨어"""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if not (request.path == TRACKING_PATH and request.method == 'POST'):
            return self.get_response(request)

        logger.debug(
            f"[{request.method}] {request.path} "
            f"event={request.POST.get('event') or request.POST.get('action')} "
            f"popover={request.POST.get('popover_id')}"
        )

        response = self.get_response(request)
        if response.status_code >= 400:
            logger.info(f"[{request.method}] {request.path} 거부됨: {response.status_code}")
        return response
