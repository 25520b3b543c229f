"""图像优化器接口。

组装客户端、放置器和批处理器，提供面向调用方的简洁入口。
"""

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import requests

from .config import AppConfig, get_config
from .core.client import CompressionClient
from .core.placement import FilePlacer
from .core.quota import QuotaTracker, get_quota_tracker
from .engine.batch import BatchRunner, StateCallback
from .models import BatchResult, ImageJob, OptimizeSettings, PlacementPolicy
from .utils.file_helpers import expand_paths
from .utils.logging_helpers import get_logger


logger = get_logger()


class TinyOptimizer:
    """Tinify 图像优化器。

    提供文件或目录的批量优化接口，每次调用都可以覆盖部分设置。
    """

    def __init__(
        self,
        settings: OptimizeSettings | None = None,
        session: requests.Session | None = None,
        app_config: AppConfig | None = None,
        quota: QuotaTracker | None = None,
    ):
        """初始化优化器。

        Args:
            settings: 默认设置，None 时从环境变量读取
            session: 自定义 requests 会话
            app_config: 应用配置
            quota: 配额计数器，默认使用进程级实例
        """
        self.app_config = app_config or get_config()
        self.settings = settings or OptimizeSettings.from_config(self.app_config)
        self.quota = quota or get_quota_tracker()
        self.client = CompressionClient(
            session=session, api=self.app_config.api, quota=self.quota
        )
        self.runner = BatchRunner(self.client, FilePlacer(self.app_config))

        logger.debug("初始化图像优化器")

    @property
    def is_processing(self) -> bool:
        return self.runner.is_processing

    @property
    def compression_count(self) -> int:
        """本周期已使用的压缩次数"""
        return self.quota.count

    def resolve_settings(
        self,
        override: bool | None = None,
        destination_dir: str | Path | None = None,
        token: str | None = None,
    ) -> OptimizeSettings:
        """在默认设置上应用本次调用的覆盖项"""
        update: dict[str, Any] = {}
        if token is not None:
            update["token"] = token.strip()
        if override is not None:
            update["policy"] = (
                PlacementPolicy.OVERRIDE if override else PlacementPolicy.DIRECTORY
            )
        if destination_dir is not None:
            update["destination_dir"] = destination_dir
        return OptimizeSettings.model_validate(
            {**self.settings.model_dump(), **update}
        )

    def optimize(
        self,
        paths: Iterable[str | Path],
        recursive: bool = True,
        on_state: StateCallback | None = None,
        **overrides: Any,
    ) -> BatchResult:
        """优化一组文件或目录中的图像。

        Args:
            paths: 文件或目录路径
            recursive: 目录是否递归
            on_state: 状态变化回调
            **overrides: ``override`` / ``destination_dir`` / ``token``

        Returns:
            BatchResult: 批量处理结果

        Examples:
            >>> optimizer = TinyOptimizer()
            >>> result = optimizer.optimize(["photos/"], override=False, destination_dir="out")
            >>> print(result.get_summary())
        """
        settings = self.resolve_settings(**overrides)
        if not settings.token:
            logger.warning("未配置 API token，请求将被服务端拒绝")

        jobs = [ImageJob.from_path(p) for p in expand_paths(paths, recursive=recursive)]
        return self.runner.run_batch(jobs, settings, on_state)

    def retry(
        self,
        result: BatchResult,
        on_state: StateCallback | None = None,
        **overrides: Any,
    ) -> BatchResult:
        """重新处理上一批中失败或被取消的任务"""
        jobs = [j for j in result.jobs if j.needs_processing]
        return self.runner.run_batch(jobs, self.resolve_settings(**overrides), on_state)
