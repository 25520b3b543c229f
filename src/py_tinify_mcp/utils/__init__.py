"""工具模块包。

提供纯工具函数，不包含业务逻辑。
"""

from .cleanup_helpers import TempFileManager, discard_temp_file
from .file_helpers import (
    SUPPORTED_EXTENSIONS,
    expand_paths,
    find_image_files,
    is_supported_image,
)
from .logging_helpers import configure_logging, get_logger
from .message_formatter import MessageFormatter
from .naming_helpers import FileNamingStrategy, PathResolver


__all__ = [
    "SUPPORTED_EXTENSIONS",
    "FileNamingStrategy",
    "MessageFormatter",
    "PathResolver",
    "TempFileManager",
    "configure_logging",
    "discard_temp_file",
    "expand_paths",
    "find_image_files",
    "get_logger",
    "is_supported_image",
]
