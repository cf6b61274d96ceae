from django.apps import AppConfig


class ApiConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "api"
    verbose_name = "팝오버 관리"

    def ready(self):
        # Admin 사이트 제목 변경
        from django.contrib import admin

        admin.site.site_header = "팝오버 메이커 관리 시스템"
        admin.site.site_title = "팝오버 메이커 Admin"
        admin.site.index_title = "팝오버 관리"
