"""压缩服务客户端测试。"""

import base64
import threading
import time
from pathlib import Path

import pytest
import requests

from py_tinify_mcp.core.client import (
    CancelToken,
    CompressionClient,
    DownloadComplete,
    DownloadProgress,
    Redirect,
    UploadProgress,
)
from py_tinify_mcp.core.quota import QuotaTracker
from py_tinify_mcp.exceptions import ApiError, MissingLocationError, TransportError
from tests.conftest import SHRINK_URL, FakeResponse, FakeTinify, json_error


class TestUpload:
    """上传阶段测试"""

    def test_upload_sends_raw_bytes_with_basic_auth(
        self, client: CompressionClient, fake_tinify: FakeTinify, sample_images
    ):
        """PUT 原始字节并带 Basic 认证头"""
        source = sample_images["png"]
        events = list(client.upload(source, "secret"))

        method, url, headers = fake_tinify.calls[0]
        assert method == "PUT"
        assert url == SHRINK_URL
        expected = base64.b64encode(b"api:secret").decode()
        assert headers["Authorization"] == f"Basic {expected}"

        assert isinstance(events[-1], Redirect)
        assert events[-1].location == "https://api.tinify.com/output/1"
        assert fake_tinify.outputs[events[-1].location].startswith(b"TINY")

    def test_upload_progress_is_reported(
        self, client: CompressionClient, sample_images
    ):
        """上传进度单调递增并到达 1"""
        events = list(client.upload(sample_images["jpeg"], "secret"))
        fractions = [e.fraction for e in events if isinstance(e, UploadProgress)]

        assert len(fractions) > 1
        assert fractions == sorted(fractions)
        assert all(0.0 <= f <= 1.0 for f in fractions)
        assert fractions[-1] == pytest.approx(1.0)

    def test_compression_count_updates_quota(
        self, client: CompressionClient, quota: QuotaTracker, sample_images
    ):
        """成功响应中的 compression-count 写入配额计数"""
        client.upload(sample_images["png"], "secret")  # 未消费的生成器不发请求
        assert quota.count == 0

        events = list(client.upload(sample_images["png"], "secret"))
        assert events[-1].compression_count == 1
        assert quota.count == 1

    def test_api_error_is_decoded(
        self, client: CompressionClient, fake_tinify: FakeTinify, quota, sample_images
    ):
        """非 2xx 响应解析 {error, message}，配额头同样生效"""
        fake_tinify.put_handler = lambda body: json_error(
            401, "Unauthorized", "Credentials are invalid.", **{"Compression-Count": "7"}
        )

        with pytest.raises(ApiError) as exc_info:
            list(client.upload(sample_images["png"], "bad"))

        assert exc_info.value.code == "Unauthorized"
        assert exc_info.value.api_message == "Credentials are invalid."
        assert exc_info.value.status == 401
        assert quota.count == 7

    def test_undecodable_error_body(
        self, client: CompressionClient, fake_tinify: FakeTinify, sample_images
    ):
        """错误体无法解析时返回携带状态码的通用错误"""
        fake_tinify.put_handler = lambda body: FakeResponse(502, body=b"<html>oops</html>")

        with pytest.raises(ApiError) as exc_info:
            list(client.upload(sample_images["png"], "secret"))

        assert exc_info.value.code == ApiError.GENERIC_CODE
        assert exc_info.value.status == 502

    def test_missing_location_is_protocol_error(
        self, client: CompressionClient, fake_tinify: FakeTinify, sample_images
    ):
        """成功响应缺少 Location 视为协议错误"""
        fake_tinify.put_handler = lambda body: FakeResponse(201)

        with pytest.raises(MissingLocationError):
            list(client.upload(sample_images["png"], "secret"))

    def test_transport_failure_is_wrapped(
        self, client: CompressionClient, fake_tinify: FakeTinify, sample_images
    ):
        """连接错误包装为 TransportError 并保留原始异常"""

        def refuse(body):
            raise requests.ConnectionError("connection refused")

        fake_tinify.put_handler = refuse

        with pytest.raises(TransportError) as exc_info:
            list(client.upload(sample_images["png"], "secret"))

        assert isinstance(exc_info.value.__cause__, requests.ConnectionError)

    def test_cancelled_upload_yields_nothing(
        self, client: CompressionClient, sample_images
    ):
        """已取消的上传不产生任何事件"""
        token = CancelToken()
        token.cancel()

        assert list(client.upload(sample_images["png"], "secret", token)) == []

    def test_cancelled_upload_still_counts_quota(
        self,
        client: CompressionClient,
        fake_tinify: FakeTinify,
        quota: QuotaTracker,
        sample_images,
    ):
        """请求体发出后取消：事件流立即结束，服务端随后报告的计数仍然生效"""
        body_sent = threading.Event()
        release = threading.Event()

        def slow_put(body):
            body_sent.set()
            release.wait(5)
            return FakeResponse(
                201,
                {"Location": "https://api.tinify.com/output/x", "Compression-Count": "42"},
            )

        fake_tinify.put_handler = slow_put
        token = CancelToken()
        events = client.upload(sample_images["png"], "secret", token)
        collected: list = []
        consumer = threading.Thread(target=lambda: collected.extend(events))
        consumer.start()

        assert body_sent.wait(5)
        token.cancel()
        consumer.join(5)
        assert not consumer.is_alive()
        assert not any(isinstance(e, Redirect) for e in collected)

        release.set()
        deadline = time.monotonic() + 5
        while quota.count != 42 and time.monotonic() < deadline:
            time.sleep(0.01)
        assert quota.count == 42


class TestDownload:
    """下载阶段测试"""

    def _location(self, client: CompressionClient, source: Path) -> str:
        return list(client.upload(source, "secret"))[-1].location

    def test_download_streams_to_temp_file(
        self, client: CompressionClient, fake_tinify: FakeTinify, sample_images
    ):
        """下载内容写入临时文件并报告进度"""
        location = self._location(client, sample_images["png"])
        events = list(client.download(location, "secret", suffix=".png"))

        progress = [e.fraction for e in events if isinstance(e, DownloadProgress)]
        assert progress == sorted(progress)
        assert progress[-1] == pytest.approx(1.0)

        complete = events[-1]
        assert isinstance(complete, DownloadComplete)
        assert complete.location.suffix == ".png"
        assert complete.location.read_bytes() == fake_tinify.outputs[location]
        complete.location.unlink()

    def test_download_error_response(
        self, client: CompressionClient, fake_tinify: FakeTinify
    ):
        """下载返回错误时解析错误体"""
        fake_tinify.get_handler = lambda url: json_error(404, "NotFound", "Gone")

        with pytest.raises(ApiError) as exc_info:
            list(client.download("https://api.tinify.com/output/x", "secret"))

        assert exc_info.value.code == "NotFound"

    def test_download_timeout_is_transport_error(
        self, client: CompressionClient, fake_tinify: FakeTinify
    ):
        def timeout(url):
            raise requests.Timeout("read timed out")

        fake_tinify.get_handler = timeout

        with pytest.raises(TransportError):
            list(client.download("https://api.tinify.com/output/x", "secret"))

    def test_cancel_mid_download_closes_response(
        self, client: CompressionClient, fake_tinify: FakeTinify
    ):
        """下载中途取消：关闭在途响应，不再产生事件"""
        response = FakeResponse(200, {"Content-Length": "64"}, b"x" * 64, chunk_size=8)
        fake_tinify.get_handler = lambda url: response
        token = CancelToken()

        events = client.download("https://api.tinify.com/output/x", "secret", token)
        first = next(events)
        assert isinstance(first, DownloadProgress)

        token.cancel()
        assert response.closed
        assert list(events) == []

    def test_unknown_length_reports_completion_only(
        self, client: CompressionClient, fake_tinify: FakeTinify
    ):
        fake_tinify.get_handler = lambda url: FakeResponse(200, body=b"abcdef")

        events = list(client.download("https://api.tinify.com/output/x", "secret"))

        assert len(events) == 1
        assert events[0].location.read_bytes() == b"abcdef"
        events[0].location.unlink()
