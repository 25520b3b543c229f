"""数据模型包。

定义图像优化相关的数据结构和模型。
"""

from .batch_result import BatchResult
from .image_job import ImageJob
from .settings import OptimizeSettings, PlacementPolicy
from .states import TERMINAL_KINDS, ImageState, StateKind


__all__ = [
    "TERMINAL_KINDS",
    "BatchResult",
    "ImageJob",
    "ImageState",
    "OptimizeSettings",
    "PlacementPolicy",
    "StateKind",
]
