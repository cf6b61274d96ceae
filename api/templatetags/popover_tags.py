"""
팝오버 템플릿 태그

{% load popover_tags %}
{% active_popover %}   -> 현재 요청에 맞는 팝오버 마크업 (없으면 빈 문자열)
"""
from dataclasses import replace

from django import template
from django.template.loader import render_to_string
from django.urls import reverse

from api.popover_rules import RequestContext, get_active_popover
from api.services.popover_analytics import issue_tracking_token

register = template.Library()

POPOVER_TEMPLATE = 'api/popover.html'


def render_popover_markup(popover, tracking=None):
    """오버레이 마크업 렌더링"""
    return render_to_string(POPOVER_TEMPLATE, {
        'popover': popover,
        'tracking': tracking,
    })


@register.simple_tag(takes_context=True)
def active_popover(context, page_type=None):
    request = context.get('request')
    if request is None:
        return ''

    request_context = RequestContext.from_request(request)
    if page_type:
        request_context = replace(request_context, page_type=page_type)

    popover = get_active_popover(request_context)
    if popover is None:
        return ''

    tracking = {
        'ajax_url': reverse('popover_track'),
        'nonce': issue_tracking_token(),
        'popover_id': popover.pk,
    }
    return render_popover_markup(popover, tracking=tracking)
