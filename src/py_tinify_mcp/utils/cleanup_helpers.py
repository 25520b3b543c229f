"""清理工具模块。

提供临时下载文件的清理功能。
"""

from pathlib import Path
from typing import Any

from .logging_helpers import get_logger


logger = get_logger()


def discard_temp_file(file_path: Path | None) -> bool:
    """删除临时文件，文件不存在时视为成功

    Returns:
        bool: 文件是否已不存在
    """
    if file_path is None:
        return True
    try:
        file_path.unlink(missing_ok=True)
        logger.debug(f"已清理临时文件: {file_path}")
        return True
    except OSError as e:
        logger.warning(f"清理临时文件失败 {file_path}: {e}")
        return False


class TempFileManager:
    """临时文件管理器

    登记一次运行中产生的临时文件，运行结束时统一清理未被取走的文件。
    """

    def __init__(self):
        self.temp_files: set[Path] = set()

    def register_temp_file(self, file_path: Path) -> None:
        """注册临时文件"""
        self.temp_files.add(file_path)

    def release(self, file_path: Path) -> None:
        """文件已被取走（移动到最终位置），不再需要清理"""
        self.temp_files.discard(file_path)

    def cleanup_temp_files(self) -> int:
        """清理所有注册的临时文件"""
        cleaned_count = 0
        for file_path in self.temp_files:
            if file_path.exists() and discard_temp_file(file_path):
                cleaned_count += 1

        self.temp_files.clear()
        return cleaned_count

    def __enter__(self):
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """上下文管理器退出时清理临时文件"""
        del exc_type, exc_val, exc_tb
        self.cleanup_temp_files()
