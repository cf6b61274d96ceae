"""
팝오버 관리자
"""
from django.contrib import admin, messages
from django.utils.html import format_html
from django.utils import timezone
from .models_popover import Popover, COUNTER_FIELDS


@admin.register(Popover)
class PopoverAdmin(admin.ModelAdmin):
    """팝오버 관리자"""

    list_display = [
        'id', 'title', 'post_status', 'status_badge', 'display_location',
        'priority', 'period_display', 'statistics_display', 'created_at'
    ]

    list_filter = [
        'post_status', 'display_location', 'form_provider',
        'start_date', 'end_date', 'created_at'
    ]

    search_fields = ['title', 'form_url']

    readonly_fields = list(COUNTER_FIELDS) + [
        'statistics_chart', 'author', 'created_at', 'updated_at'
    ]

    fieldsets = (
        ('기본 정보', {
            'fields': ('title', 'post_status', 'featured_image')
        }),
        ('폼 설정', {
            'fields': ('form_provider', 'form_url')
        }),
        ('표시 규칙', {
            'fields': ('display_location', 'priority')
        }),
        ('표시 기간', {
            'fields': ('start_date', 'end_date'),
            'description': '비워두면 기간 제한 없음'
        }),
        ('레이아웃', {
            'fields': ('width', 'max_height'),
            'classes': ('collapse',)
        }),
        ('닫기 설정', {
            'fields': ('cookie_days',)
        }),
        ('통계', {
            'fields': COUNTER_FIELDS + ('statistics_chart',),
            'classes': ('collapse',)
        }),
        ('메타 정보', {
            'fields': ('author', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        })
    )

    actions = ['publish_popovers', 'draft_popovers', 'duplicate_popover']

    def save_model(self, request, obj, form, change):
        """저장 시 작성자 자동 설정, 표시 기간 검사"""
        if not change:
            obj.author = request.user
        super().save_model(request, obj, form, change)

        if obj.has_invalid_date_range():
            self.message_user(
                request,
                '종료일시가 시작일시보다 이전입니다. 기간을 수정할 때까지 이 팝오버는 표시되지 않습니다.',
                level=messages.WARNING
            )

    def status_badge(self, obj):
        """Scheduled / Active / Expired 배지"""
        colors = {
            Popover.STATUS_SCHEDULED: 'blue',
            Popover.STATUS_ACTIVE: 'green',
            Popover.STATUS_EXPIRED: 'gray',
        }
        badge = format_html(
            '<span style="background-color: {}; color: white; '
            'padding: 3px 8px; border-radius: 3px; font-size: 11px;">{}</span>',
            colors[obj.get_status()],
            obj.get_status_display()
        )
        if obj.has_invalid_date_range():
            return format_html('{} <span style="color: red;">⚠ 기간 오류</span>', badge)
        return badge
    status_badge.short_description = '상태'

    def period_display(self, obj):
        """표시 기간"""
        start = obj.start_date.strftime('%Y-%m-%d %H:%M') if obj.start_date else '즉시'
        end = obj.end_date.strftime('%Y-%m-%d %H:%M') if obj.end_date else '무제한'

        if obj.end_date and obj.end_date >= timezone.now() and obj.get_status() == Popover.STATUS_ACTIVE:
            remaining = obj.end_date - timezone.now()
            if remaining.days > 0:
                note = f'{remaining.days}일 남음'
            else:
                note = f'{remaining.seconds // 3600}시간 남음'
            return format_html('{}<br/><small>{} ~ {}</small>', note, start, end)
        return format_html('<small>{} ~ {}</small>', start, end)
    period_display.short_description = '표시 기간'

    def statistics_display(self, obj):
        """통계 표시"""
        return format_html(
            '👁 {} / ✕ {}<br/>'
            '<small>닫기율: {}% · 참여 {} / 이탈 {}</small>',
            obj.views,
            obj.dismissals,
            obj.dismissal_rate,
            obj.engaged,
            obj.bounced
        )
    statistics_display.short_description = '통계'

    def statistics_chart(self, obj):
        """통계 차트"""
        if obj.engaged + obj.bounced > 0:
            rate = obj.engagement_rate
            return format_html(
                '<div style="background: #f0f0f0; padding: 10px; border-radius: 5px;">'
                '<div>조회수: <strong>{}</strong></div>'
                '<div>닫기 수: <strong>{}</strong> ({}%)</div>'
                '<div>참여 / 이탈: <strong>{}</strong> / <strong>{}</strong></div>'
                '<div style="margin-top: 10px;">'
                '<div style="background: #ddd; height: 20px; border-radius: 3px;">'
                '<div style="background: #4CAF50; height: 100%; width: {}%; border-radius: 3px;"></div>'
                '</div>'
                '</div>'
                '</div>',
                obj.views,
                obj.dismissals,
                obj.dismissal_rate,
                obj.engaged,
                obj.bounced,
                min(rate, 100)
            )
        return '통계 없음'
    statistics_chart.short_description = '통계 차트'

    def publish_popovers(self, request, queryset):
        """선택한 팝오버 게시"""
        updated = queryset.update(post_status='publish')
        self.message_user(request, f'{updated}개의 팝오버를 게시했습니다.')
    publish_popovers.short_description = '선택한 팝오버 게시'

    def draft_popovers(self, request, queryset):
        """선택한 팝오버 임시저장 상태로 변경"""
        updated = queryset.update(post_status='draft')
        self.message_user(request, f'{updated}개의 팝오버를 임시저장으로 변경했습니다.')
    draft_popovers.short_description = '선택한 팝오버 게시 취소'

    def duplicate_popover(self, request, queryset):
        """팝오버 복제 (임시저장 상태, 통계 초기화)"""
        count = 0
        for popover in queryset:
            popover.pk = None
            popover.title = f"{popover.title} (복사본)"
            popover.post_status = 'draft'
            popover.created_at = timezone.now()
            for field in COUNTER_FIELDS:
                setattr(popover, field, 0)
            popover.save()
            count += 1
        self.message_user(request, f'{count}개의 팝오버를 복제했습니다.')
    duplicate_popover.short_description = '선택한 팝오버 복제'
