# 팝오버 모델 import
from .models_popover import Popover
