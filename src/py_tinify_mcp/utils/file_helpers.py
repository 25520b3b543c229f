"""工具函数模块。

提供待处理图像文件的查找功能。
"""

from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Final

from .logging_helpers import get_logger
from .message_formatter import MessageFormatter


logger = get_logger()

# Tinify 服务端支持的格式
SUPPORTED_EXTENSIONS: Final[set[str]] = {".png", ".jpg", ".jpeg", ".webp", ".avif"}

EXCLUDE_DIRS: Final[list[str]] = ["__pycache__", ".git", ".svn", "node_modules"]


def is_supported_image(file_path: Path) -> bool:
    """按扩展名判断是否为服务端支持的图像"""
    return file_path.suffix.lower() in SUPPORTED_EXTENSIONS


def find_image_files(
    directory: str | Path,
    recursive: bool = True,
    exclude_dirs: list[str] | None = None,
) -> Iterator[Path]:
    """查找目录中的图像文件。

    Args:
        directory: 搜索目录
        recursive: 是否递归搜索子目录
        exclude_dirs: 要排除的目录名列表

    Yields:
        Path: 图像文件路径
    """
    directory = Path(directory)
    exclude_dirs = EXCLUDE_DIRS + (exclude_dirs or [])

    if not directory.exists():
        logger.warning(MessageFormatter.directory_not_found(directory))
        return

    if not directory.is_dir():
        logger.warning(MessageFormatter.path_not_directory(directory))
        return

    pattern = "**/*" if recursive else "*"

    try:
        for file_path in sorted(directory.glob(pattern)):
            if (
                file_path.is_file()
                and is_supported_image(file_path)
                and not any(
                    exclude_dir in file_path.parts for exclude_dir in exclude_dirs
                )
            ):
                yield file_path
    except PermissionError:
        logger.error(MessageFormatter.operation_failed("访问目录", directory))


def expand_paths(paths: Iterable[str | Path], recursive: bool = True) -> list[Path]:
    """把文件和目录混合的输入展开为图像文件列表，保持顺序并去重"""
    seen: set[Path] = set()
    files: list[Path] = []

    for raw in paths:
        path = Path(raw).expanduser()
        candidates = (
            find_image_files(path, recursive=recursive) if path.is_dir() else [path]
        )
        for candidate in candidates:
            resolved = candidate.resolve()
            if resolved not in seen:
                seen.add(resolved)
                files.append(resolved)

    return files
