# 팝오버 관리자 등록
from .admin_popover import PopoverAdmin  # noqa: F401
