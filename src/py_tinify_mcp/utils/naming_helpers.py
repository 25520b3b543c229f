"""文件命名工具模块。

提供备份文件命名和目录放置时的重名规避策略。
"""

import itertools
from collections.abc import Iterator
from pathlib import Path


class FileNamingStrategy:
    """文件命名策略类"""

    @staticmethod
    def backup_path(original: Path, suffix: str = ".bak") -> Path:
        """原文件旁的备份路径，如 ``photo.png`` -> ``photo.png.bak``"""
        return original.with_name(original.name + suffix)

    @staticmethod
    def numbered_name(stem: str, ext: str, index: int) -> str:
        """生成带序号的文件名

        Args:
            stem: 不含扩展名的文件名
            ext: 扩展名（含点，可以为空）
            index: 序号，0 表示不加后缀

        Returns:
            str: ``stem.ext`` 或 ``stem (index).ext``
        """
        if index <= 0:
            return f"{stem}{ext}"
        return f"{stem} ({index}){ext}"


class PathResolver:
    """路径解析器"""

    @staticmethod
    def candidate_paths(directory: Path, source: Path) -> Iterator[Path]:
        """依次给出目录中的候选路径：原名、``name (1)``、``name (2)``……"""
        for index in itertools.count(0):
            yield directory / FileNamingStrategy.numbered_name(
                source.stem, source.suffix, index
            )

    @staticmethod
    def ensure_unique_path(
        directory: Path, source: Path, max_attempts: int
    ) -> Path | None:
        """在目录中找到第一个未被占用的路径

        任何已存在的条目（文件或目录）都视为占用。

        Args:
            directory: 目标目录
            source: 原文件路径，提供文件名和扩展名
            max_attempts: 最多尝试的候选数量

        Returns:
            Path | None: 可用路径，超过尝试上限时返回 None
        """
        candidates = PathResolver.candidate_paths(directory, source)
        for candidate in itertools.islice(candidates, max_attempts):
            if not candidate.exists() and not candidate.is_symlink():
                return candidate
        return None
