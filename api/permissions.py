from rest_framework import permissions


class IsAdminRole(permissions.BasePermission):
    """
    팝오버를 관리할 수 있는 사용자만 접근 허용
    슈퍼유저 또는 스태프(is_staff) 계정만 통과합니다.
    """

    def has_permission(self, request, view):
        # 인증되지 않은 사용자는 접근 불가
        if not request.user or not request.user.is_authenticated:
            return False

        # 슈퍼유저는 항상 접근 가능
        if request.user.is_superuser:
            return True

        return bool(request.user.is_staff)
