"""图像优化异常处理模块。

定义统一的异常类和错误处理机制，包含文件放置的异常转换装饰器。
"""

from collections.abc import Callable
from functools import wraps
from pathlib import Path
from typing import TypeVar

from .utils.logging_helpers import get_logger
from .utils.message_formatter import MessageFormatter


logger = get_logger()
T = TypeVar("T")


# 统一的异常类型
class OptimizerError(Exception):
    """优化相关错误基类"""

    def __init__(self, message: str, source_path: Path | None = None):
        super().__init__(message)
        self.message = message
        self.source_path = source_path


class SourceMissingError(OptimizerError):
    """待上传的源文件不存在"""

    pass


class TransportError(OptimizerError):
    """连接、TLS、超时等网络传输错误"""

    pass


class ApiError(OptimizerError):
    """服务端返回的错误

    Attributes:
        code: 服务端给出的错误类型，如 ``Unauthorized``；无法解析时为 ``HttpError``
        status: HTTP 状态码
    """

    GENERIC_CODE = "HttpError"

    def __init__(
        self,
        code: str,
        message: str,
        status: int | None = None,
        source_path: Path | None = None,
    ):
        super().__init__(
            MessageFormatter.api_error(code, message, status), source_path
        )
        self.code = code
        self.api_message = message
        self.status = status


class MissingLocationError(ApiError):
    """成功响应中缺少 Location 头"""

    def __init__(self, status: int, source_path: Path | None = None):
        super().__init__(
            "MissingLocation", MessageFormatter.missing_location(), status, source_path
        )


class PlacementError(OptimizerError):
    """下载结果放置到最终位置时失败"""

    pass


class ConfigurationError(PlacementError):
    """目录放置模式下未配置保存目录"""

    pass


class NameCollisionError(PlacementError):
    """重名递增超过上限"""

    pass


class PipelineReuseError(OptimizerError):
    """同一个流水线实例被重复运行"""

    pass


def handle_placement_errors(operation_name: str = "文件放置"):
    """文件放置异常处理装饰器

    把底层的 OSError 统一转换为 PlacementError，已是 PlacementError 的直接透传。

    Args:
        operation_name: 操作名称，用于日志记录
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except PlacementError as e:
                logger.warning(f"{operation_name} - {e.message}")
                raise
            except OSError as e:
                logger.error(f"{operation_name} - 文件操作失败: {e}")
                path = Path(e.filename) if e.filename else None
                raise PlacementError(f"文件操作失败: {e}", path) from e

        return wrapper

    return decorator


class ErrorHandler:
    """统一错误处理器

    提供标准化的错误描述和日志记录功能。
    """

    @staticmethod
    def log_error(
        operation: str, path: Path, error: BaseException, level: str = "error"
    ) -> None:
        """标准化的错误日志记录

        Args:
            operation: 操作名称（如"上传"、"文件放置"等）
            path: 相关文件路径
            error: 异常对象
            level: 日志级别 ("error", "warning", "debug")
        """
        log_msg = MessageFormatter.format_error(operation, path, error)
        getattr(logger, level, logger.error)(log_msg)

    @staticmethod
    def error_type(error: BaseException | None) -> str:
        """错误分类，用于对外响应"""
        match error:
            case SourceMissingError():
                return "source_missing"
            case TransportError():
                return "transport"
            case ApiError():
                return "api"
            case PlacementError():
                return "placement"
            case None:
                return "unknown"
            case _:
                return "processing"

    @staticmethod
    def describe(error: BaseException | None) -> str:
        """把错误原因转换为人类可读的描述"""
        match error:
            case None:
                return "未知错误"
            case OptimizerError() as oe:
                return oe.message
            case _:
                return f"{type(error).__name__}: {error}"
