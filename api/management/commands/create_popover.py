"""
팝오버 생성 관리 명령어
"""
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.utils import timezone

from api.models_popover import Popover
from api.popover_rules import PageType, RequestContext, select_popover, sort_candidates

User = get_user_model()


class Command(BaseCommand):
    help = '샘플 팝오버 생성'

    def add_arguments(self, parser):
        parser.add_argument('--title', default='뉴스레터 구독 안내')
        parser.add_argument(
            '--location',
            default='all',
            choices=[choice[0] for choice in Popover.DISPLAY_LOCATION_CHOICES],
        )
        parser.add_argument('--priority', type=int, default=10)
        parser.add_argument('--days', type=int, default=30, help='표시 기간 (일), 0이면 무제한')
        parser.add_argument('--form-url', default='https://docs.google.com/forms/d/e/sample/viewform?embedded=true')

    def handle(self, *args, **options):
        admin_user = User.objects.filter(is_staff=True).first()
        if not admin_user:
            self.stdout.write(self.style.WARNING('관리자 계정이 없어 작성자 없이 생성합니다.'))

        now = timezone.now()
        popover, created = Popover.objects.update_or_create(
            title=options['title'],
            defaults={
                'post_status': 'publish',
                'form_provider': 'google_forms',
                'form_url': options['form_url'],
                'display_location': options['location'],
                'priority': options['priority'],
                'start_date': now,
                'end_date': now + timedelta(days=options['days']) if options['days'] > 0 else None,
                'cookie_days': 7,
                'author': admin_user,
            }
        )

        if created:
            self.stdout.write(self.style.SUCCESS(f'팝오버 생성 완료: {popover.title} (ID: {popover.id})'))
        else:
            self.stdout.write(self.style.SUCCESS(f'팝오버 업데이트 완료: {popover.title} (ID: {popover.id})'))

        # 페이지 타입별로 현재 표시될 팝오버 확인
        candidates = sort_candidates(Popover.objects.filter(post_status='publish'))
        for page_type in PageType.ALL:
            selected = select_popover(now, RequestContext(page_type=page_type), candidates)
            label = f'{selected.title} (ID: {selected.id})' if selected else '-'
            self.stdout.write(f'  [{page_type}] {label}')
