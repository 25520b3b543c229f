"""消息格式化工具模块。

提供统一的错误消息、进度消息格式化功能。
"""

from pathlib import Path


class MessageFormatter:
    """统一的消息格式化器"""

    @staticmethod
    def file_not_found(file_path: str | Path) -> str:
        """文件不存在错误消息"""
        return f"文件不存在: {file_path}"

    @staticmethod
    def directory_not_found(directory: str | Path) -> str:
        """目录不存在错误消息"""
        return f"目录不存在: {directory}"

    @staticmethod
    def path_not_directory(path: str | Path) -> str:
        """路径不是目录错误消息"""
        return f"路径不是目录: {path}"

    @staticmethod
    def destination_not_configured() -> str:
        return "未指定保存目录"

    @staticmethod
    def api_error(code: str, message: str, status: int | None = None) -> str:
        """API 错误消息"""
        msg = f"API 错误 {code}: {message}"
        if status is not None:
            msg += f" (HTTP {status})"
        return msg

    @staticmethod
    def http_status(status: int) -> str:
        return f"服务器返回 HTTP {status}"

    @staticmethod
    def missing_location() -> str:
        return "服务器响应缺少 Location 头"

    @staticmethod
    def transport_failed(url: str, error: Exception) -> str:
        """网络传输失败消息"""
        return f"请求失败 [{url}]: {error}"

    @staticmethod
    def backup_exists(backup: str | Path) -> str:
        return f"备份路径已被占用，未修改原文件: {backup}"

    @staticmethod
    def name_collision(directory: str | Path, name: str, attempts: int) -> str:
        return f"无法在 {directory} 中为 {name} 找到可用文件名（已尝试 {attempts} 次）"

    @staticmethod
    def operation_failed(
        operation: str, target: str | Path, error: Exception | None = None
    ) -> str:
        """操作失败消息"""
        msg = f"{operation}失败: {target}"
        if error:
            msg += f" - {error}"
        return msg

    @staticmethod
    def format_error(operation: str, path: str | Path, error: Exception) -> str:
        """格式化通用错误消息"""
        return f"{operation}失败 [{path}]: {error}"
