# Generated manually for Popover model
from django.db import migrations, models
import django.db.models.deletion
from django.conf import settings
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Popover',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=200, verbose_name='팝오버 제목')),
                ('post_status', models.CharField(choices=[('publish', '게시'), ('draft', '임시저장'), ('pending', '검토 대기'), ('private', '비공개')], default='draft', help_text='게시(publish) 상태의 팝오버만 표시됨', max_length=10, verbose_name='게시 상태')),
                ('featured_image', models.ImageField(blank=True, null=True, upload_to='popovers/%Y/%m/', verbose_name='대표 이미지')),
                ('form_provider', models.CharField(choices=[('google_forms', 'Google Forms')], default='google_forms', max_length=20, verbose_name='폼 제공자')),
                ('form_url', models.URLField(blank=True, default='', help_text='폼의 임베드 URL', max_length=500, verbose_name='폼 URL')),
                ('display_location', models.CharField(choices=[('all', '전체 페이지'), ('homepage', '홈페이지만'), ('pages', '페이지만'), ('posts', '게시글만')], default='all', max_length=10, verbose_name='표시 위치')),
                ('priority', models.IntegerField(default=10, help_text='높은 숫자가 먼저 표시됨 (0-999)', verbose_name='우선순위')),
                ('start_date', models.DateTimeField(blank=True, help_text='비어있으면 즉시 시작', null=True, verbose_name='시작일시')),
                ('end_date', models.DateTimeField(blank=True, help_text='비어있으면 계속 표시', null=True, verbose_name='종료일시')),
                ('width', models.CharField(blank=True, default='900px', help_text='CSS 값 (예: 900px, 80%, 90vw)', max_length=20, verbose_name='너비')),
                ('max_height', models.CharField(blank=True, default='600px', help_text='CSS 값 (예: 600px, 80%, 90vh)', max_length=20, verbose_name='최대 높이')),
                ('cookie_days', models.IntegerField(default=7, help_text='닫은 뒤 다시 표시하지 않을 일수 (0이면 항상 표시, 최대 365)', verbose_name='닫기 기억 일수')),
                ('views', models.PositiveIntegerField(default=0, verbose_name='조회수')),
                ('dismissals', models.PositiveIntegerField(default=0, verbose_name='닫기 수')),
                ('engaged', models.PositiveIntegerField(default=0, help_text='5초 이상 열려 있다가 닫힌 횟수', verbose_name='참여')),
                ('bounced', models.PositiveIntegerField(default=0, help_text='5초 안에 닫힌 횟수', verbose_name='이탈')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='생성일시')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='수정일시')),
                ('author', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='popovers', to=settings.AUTH_USER_MODEL, verbose_name='작성자')),
            ],
            options={
                'verbose_name': '팝오버',
                'verbose_name_plural': '팝오버',
                'ordering': ['-priority', '-created_at', '-id'],
            },
        ),
    ]
