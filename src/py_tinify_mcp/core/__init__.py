"""核心模块。

包含压缩服务客户端、单图流水线、结果放置和配额计数。
"""

from .client import (
    CancelToken,
    CompressionClient,
    DownloadComplete,
    DownloadProgress,
    Redirect,
    UploadProgress,
)
from .pipeline import ImagePipeline
from .placement import FilePlacer
from .quota import QuotaTracker, get_quota_tracker


__all__ = [
    "CancelToken",
    "CompressionClient",
    "DownloadComplete",
    "DownloadProgress",
    "FilePlacer",
    "ImagePipeline",
    "QuotaTracker",
    "Redirect",
    "UploadProgress",
    "get_quota_tracker",
]
