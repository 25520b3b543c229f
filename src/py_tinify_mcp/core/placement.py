"""下载结果放置模块。

把下载得到的临时文件移动到最终位置：覆盖原文件（带备份回滚），
或放入指定目录（重名自动编号）。
"""

import shutil
import threading
from pathlib import Path

from ..config import AppConfig, get_config
from ..exceptions import (
    ConfigurationError,
    NameCollisionError,
    PlacementError,
    handle_placement_errors,
)
from ..models.image_job import ImageJob
from ..models.settings import OptimizeSettings
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter
from ..utils.naming_helpers import FileNamingStrategy, PathResolver


logger = get_logger()


class FilePlacer:
    """结果文件放置器

    同一个放置器内，目录模式下的选名和移动是串行的，并发任务不会选中同一个名字。
    """

    def __init__(self, app_config: AppConfig | None = None):
        placement = (app_config or get_config()).placement
        self.backup_suffix = placement.BACKUP_SUFFIX
        self.max_collision_attempts = placement.MAX_COLLISION_ATTEMPTS
        self._directory_lock = threading.Lock()

    @handle_placement_errors("文件放置")
    def place(
        self, temp_location: Path, job: ImageJob, settings: OptimizeSettings
    ) -> Path:
        """放置下载结果

        Args:
            temp_location: 下载得到的临时文件
            job: 所属任务
            settings: 本次批处理的设置

        Returns:
            Path: 最终路径

        Raises:
            PlacementError: 放置失败；覆盖模式下原文件已经恢复
            ConfigurationError: 目录模式但未配置保存目录
            NameCollisionError: 找不到可用的文件名
        """
        temp_location = Path(temp_location)
        if not temp_location.is_file():
            raise PlacementError(
                MessageFormatter.file_not_found(temp_location), temp_location
            )

        if settings.override:
            return self._override_in_place(temp_location, job.source_path)
        return self._place_in_directory(
            temp_location, job.source_path, settings.destination_dir
        )

    def _override_in_place(self, temp_location: Path, original: Path) -> Path:
        backup = FileNamingStrategy.backup_path(original, self.backup_suffix)
        # 已存在的同名文件属于用户，既不能覆盖也不能事后删除
        if backup.exists() or backup.is_symlink():
            raise PlacementError(MessageFormatter.backup_exists(backup), original)
        original.replace(backup)

        try:
            shutil.move(temp_location, original)
            # 临时文件的权限是 0600，沿用原文件的权限
            shutil.copymode(backup, original)
        except BaseException:
            self._restore_backup(backup, original)
            raise

        try:
            backup.unlink()
        except OSError as e:
            # 新文件已经就位，残留的备份只记录不视为失败
            logger.warning(MessageFormatter.operation_failed("删除备份", backup, e))

        logger.info(f"已覆盖原文件: {original}")
        return original

    @staticmethod
    def _restore_backup(backup: Path, original: Path) -> None:
        """把备份恢复到原路径，覆盖可能写了一半的文件"""
        if not backup.exists():
            return
        try:
            backup.replace(original)
        except OSError as e:
            logger.error(
                f"恢复备份失败，原文件保存在 {backup}: {e}"
            )
            raise PlacementError(
                MessageFormatter.operation_failed("恢复备份", backup, e), original
            ) from e
        logger.info(f"已从备份恢复原文件: {original}")

    def _place_in_directory(
        self, temp_location: Path, source: Path, directory: Path | None
    ) -> Path:
        if directory is None:
            raise ConfigurationError(
                MessageFormatter.destination_not_configured(), source
            )

        # 多个任务可能同时创建同一个目录
        directory.mkdir(parents=True, exist_ok=True)

        with self._directory_lock:
            target = PathResolver.ensure_unique_path(
                directory, source, self.max_collision_attempts
            )
            if target is None:
                raise NameCollisionError(
                    MessageFormatter.name_collision(
                        directory, source.name, self.max_collision_attempts
                    ),
                    source,
                )
            shutil.move(temp_location, target)

        try:
            shutil.copymode(source, target)
        except OSError as e:
            logger.debug(MessageFormatter.operation_failed("复制权限", target, e))

        logger.info(f"已保存到: {target}")
        return target
