"""Tinify 图像批量优化库。

把本地图片提交给 Tinify 有损压缩服务，跟踪每张图片的进度，并安全地放置结果。
"""

__version__ = "0.1.0"
__author__ = "crper"
__description__ = "基于 Tinify API 的图像批量优化库"

# 核心功能导出
from .engine.batch import BatchRunner
from .models import (
    BatchResult,
    ImageJob,
    ImageState,
    OptimizeSettings,
    PlacementPolicy,
    StateKind,
)
from .optimizer import TinyOptimizer


__all__ = [
    "BatchResult",
    "BatchRunner",
    "ImageJob",
    "ImageState",
    "OptimizeSettings",
    "PlacementPolicy",
    "StateKind",
    "TinyOptimizer",
    "get_version",
]


def get_version() -> str:
    """获取版本号。"""
    return __version__
