"""Tinify 压缩服务客户端。

负责上传原图、解析响应（Location、配额头或错误体）、下载压缩结果，
并以进度事件的形式报告两个阶段。
"""

import base64
import os
import queue
import tempfile
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import requests
from requests.adapters import HTTPAdapter

from ..config import ApiDefaults, get_config
from ..exceptions import (
    ApiError,
    MissingLocationError,
    SourceMissingError,
    TransportError,
)
from ..utils.cleanup_helpers import discard_temp_file
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter
from .quota import QuotaTracker, get_quota_tracker


logger = get_logger()


# ============================================================================
# 事件类型
# ============================================================================


@dataclass(frozen=True)
class UploadProgress:
    fraction: float


@dataclass(frozen=True)
class Redirect:
    """上传成功，``location`` 指向压缩结果"""

    location: str
    compression_count: int | None = None


@dataclass(frozen=True)
class DownloadProgress:
    fraction: float


@dataclass(frozen=True)
class DownloadComplete:
    location: Path


# ============================================================================
# 取消令牌
# ============================================================================


class CancelToken:
    """一次运行的取消令牌

    可以从任意线程调用 :meth:`cancel`；已登记的回调（通常是关闭在途响应）
    会立即执行，后续登记的回调也会立即执行。
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], Any]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], Any]) -> None:
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def discard(self, callback: Callable[[], Any]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)


class UploadCancelled(Exception):
    """上传请求体在发送过程中被取消"""


class _ProgressReader:
    """带进度回报的文件读取器

    提供 ``__len__`` 让 requests 设置 Content-Length，每次 ``read`` 回报进度，
    取消后的下一次 ``read`` 抛出 :class:`UploadCancelled`。
    """

    def __init__(
        self,
        path: Path,
        on_progress: Callable[[float], None],
        should_abort: Callable[[], bool],
    ):
        self._file = open(path, "rb")
        self._total = os.fstat(self._file.fileno()).st_size
        self._sent = 0
        self._on_progress = on_progress
        self._should_abort = should_abort

    def __len__(self) -> int:
        return self._total

    def read(self, size: int = -1) -> bytes:
        if self._should_abort():
            raise UploadCancelled("上传已取消")
        chunk = self._file.read(size)
        if chunk:
            self._sent += len(chunk)
            if self._total:
                self._on_progress(min(1.0, self._sent / self._total))
        return chunk

    def close(self) -> None:
        self._file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        del exc_type, exc_val, exc_tb
        self.close()


# ============================================================================
# 客户端
# ============================================================================


class CompressionClient:
    """Tinify 压缩服务客户端

    客户端本身不保存凭据，每次调用显式传入 token。
    """

    # 等待上传响应时检查取消的间隔（秒）
    POLL_INTERVAL = 0.05

    def __init__(
        self,
        session: requests.Session | None = None,
        api: ApiDefaults | None = None,
        quota: QuotaTracker | None = None,
    ):
        self.api = api or get_config().api
        self.quota = quota or get_quota_tracker()
        self.session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({"User-Agent": self.api.USER_AGENT})
        # 同一批次的所有图片同时上传，连接池不能太小
        adapter = HTTPAdapter(pool_connections=4, pool_maxsize=64)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    @staticmethod
    def auth_header(token: str) -> dict[str, str]:
        """``Authorization: Basic base64("api:" + token)``"""
        credentials = base64.b64encode(f"api:{token}".encode()).decode("ascii")
        return {"Authorization": f"Basic {credentials}"}

    # ------------------------------------------------------------------
    # 上传
    # ------------------------------------------------------------------

    def upload(
        self, source: Path, token: str, cancel: CancelToken | None = None
    ) -> Iterator[UploadProgress | Redirect]:
        """上传原图

        requests 在发送请求体时回调进度，这里用后台线程发送，通过队列把进度
        转成可迭代的事件流。最后一个事件总是 :class:`Redirect`。

        Raises:
            TransportError: 网络传输失败
            ApiError: 服务端返回错误，或成功响应缺少 Location
        """
        cancel = cancel or CancelToken()
        url = self.api.shrink_url
        channel: queue.Queue[tuple[str, Any]] = queue.Queue()
        abort = threading.Event()

        def should_abort() -> bool:
            return abort.is_set() or cancel.cancelled

        worker = threading.Thread(
            target=self._send_upload,
            args=(url, source, token, channel, should_abort),
            name=f"upload-{source.name}",
            daemon=True,
        )
        worker.start()

        try:
            while True:
                try:
                    kind, payload = channel.get(timeout=self.POLL_INTERVAL)
                except queue.Empty:
                    if cancel.cancelled:
                        return
                    continue

                if cancel.cancelled:
                    if kind == "response":
                        self._discard_response(payload)
                    return

                match kind:
                    case "progress":
                        yield UploadProgress(payload)
                    case "error":
                        raise self._wrap_failure(payload, url, source)
                    case "response":
                        yield self._interpret_upload_response(payload, source)
                        return
        finally:
            abort.set()

    def _send_upload(
        self,
        url: str,
        source: Path,
        token: str,
        channel: queue.Queue,
        should_abort: Callable[[], bool],
    ) -> None:
        try:
            with _ProgressReader(
                source, lambda f: channel.put(("progress", f)), should_abort
            ) as body:
                response = self.session.put(
                    url,
                    data=body,
                    headers=self.auth_header(token),
                    timeout=self.api.timeout,
                )
        except Exception as e:
            channel.put(("error", e))
            return

        if should_abort():
            self._discard_response(response)
            return
        channel.put(("response", response))

    def _discard_response(self, response: requests.Response) -> None:
        """丢弃已取消上传的响应；服务端已经计数，配额仍要更新"""
        try:
            self.quota.update_from_headers(response.headers)
        finally:
            response.close()

    def _interpret_upload_response(
        self, response: requests.Response, source: Path
    ) -> Redirect:
        try:
            count = self.quota.update_from_headers(response.headers)

            if not 200 <= response.status_code < 300:
                raise self._decode_error(response, source)

            location = response.headers.get("Location")
            if not location:
                raise MissingLocationError(response.status_code, source)

            logger.debug(f"上传完成 {source} -> {location}")
            return Redirect(location=location, compression_count=count)
        finally:
            response.close()

    # ------------------------------------------------------------------
    # 下载
    # ------------------------------------------------------------------

    def download(
        self,
        location: str,
        token: str,
        cancel: CancelToken | None = None,
        suffix: str = "",
    ) -> Iterator[DownloadProgress | DownloadComplete]:
        """下载压缩结果到私有临时文件

        最后一个事件是 :class:`DownloadComplete`；被取消时不再产生事件，
        并删除已写入的部分文件。

        Raises:
            TransportError: 网络传输失败
            ApiError: 服务端返回错误
        """
        cancel = cancel or CancelToken()
        if cancel.cancelled:
            return

        try:
            response = self.session.get(
                location,
                headers=self.auth_header(token),
                stream=True,
                timeout=self.api.timeout,
            )
        except requests.RequestException as e:
            if cancel.cancelled:
                return
            raise TransportError(MessageFormatter.transport_failed(location, e)) from e

        cancel.on_cancel(response.close)
        temp_path: Path | None = None
        completed = False
        try:
            self.quota.update_from_headers(response.headers)
            if not 200 <= response.status_code < 300:
                raise self._decode_error(response, None)

            total = self._content_length(response)
            received = 0
            with tempfile.NamedTemporaryFile(
                prefix="tinify-", suffix=suffix, delete=False
            ) as handle:
                temp_path = Path(handle.name)
                for chunk in response.iter_content(chunk_size=self.api.CHUNK_SIZE):
                    if cancel.cancelled:
                        return
                    if not chunk:
                        continue
                    handle.write(chunk)
                    received += len(chunk)
                    if total:
                        yield DownloadProgress(min(1.0, received / total))

            if cancel.cancelled:
                return
            completed = True
            logger.debug(f"下载完成 {location} -> {temp_path} ({received} 字节)")
            yield DownloadComplete(temp_path)
        except Exception as e:
            # 取消会关闭在途响应，由此产生的读取异常不再上报
            if cancel.cancelled:
                return
            if isinstance(e, requests.RequestException):
                raise TransportError(
                    MessageFormatter.transport_failed(location, e)
                ) from e
            raise
        finally:
            cancel.discard(response.close)
            response.close()
            if not completed:
                discard_temp_file(temp_path)

    # ------------------------------------------------------------------
    # 响应解析
    # ------------------------------------------------------------------

    @staticmethod
    def _content_length(response: requests.Response) -> int:
        try:
            return max(0, int(response.headers.get("Content-Length", 0)))
        except ValueError:
            return 0

    @staticmethod
    def _decode_error(response: requests.Response, source: Path | None) -> ApiError:
        """把非 2xx 响应解析为 ApiError

        响应体应为 ``{"error": ..., "message": ...}``，无法解析时返回携带原始
        状态码的通用错误。
        """
        status = response.status_code
        try:
            body = response.json()
            return ApiError(str(body["error"]), str(body["message"]), status, source)
        except (ValueError, KeyError, TypeError):
            return ApiError(
                ApiError.GENERIC_CODE, MessageFormatter.http_status(status), status, source
            )

    @staticmethod
    def _wrap_failure(error: Exception, url: str, source: Path) -> Exception:
        match error:
            case requests.RequestException():
                wrapped = TransportError(
                    MessageFormatter.transport_failed(url, error), source
                )
                wrapped.__cause__ = error
                return wrapped
            case FileNotFoundError():
                wrapped = SourceMissingError(
                    MessageFormatter.file_not_found(source), source
                )
                wrapped.__cause__ = error
                return wrapped
            case _:
                return error
