"""测试配置文件。

提供测试所需的fixtures和一个模拟 Tinify 服务的 requests 会话。
"""

import itertools
import json
import tempfile
import threading
from collections.abc import Callable
from pathlib import Path

import pytest
from PIL import Image
from requests.structures import CaseInsensitiveDict

from py_tinify_mcp.config import reset_config
from py_tinify_mcp.core.client import CompressionClient
from py_tinify_mcp.core.quota import QuotaTracker, reset_quota_tracker
from py_tinify_mcp.models import OptimizeSettings, PlacementPolicy


SHRINK_URL = "https://api.tinify.com/shrink"


class FakeResponse:
    """最小化的 requests.Response 替身"""

    def __init__(
        self,
        status_code: int = 200,
        headers: dict[str, str] | None = None,
        body: bytes = b"",
        chunk_size: int = 4,
    ):
        self.status_code = status_code
        self.headers = CaseInsensitiveDict(headers or {})
        self.body = body
        self.chunk_size = chunk_size
        self.closed = False

    def json(self):
        return json.loads(self.body)

    def iter_content(self, chunk_size: int = 1):
        del chunk_size
        for start in range(0, len(self.body), self.chunk_size):
            if self.closed:
                return
            yield self.body[start : start + self.chunk_size]

    def close(self) -> None:
        self.closed = True


def json_error(status: int, error: str, message: str, **headers: str) -> FakeResponse:
    body = json.dumps({"error": error, "message": message}).encode()
    return FakeResponse(status, headers, body)


class FakeTinify:
    """模拟 Tinify 服务的会话

    PUT /shrink 读取请求体并返回 Location；GET Location 返回 ``TINY`` 开头的
    压缩结果。``put_handler`` / ``get_handler`` 可以替换默认行为。
    """

    def __init__(self, read_size: int = 256):
        self.read_size = read_size
        self.calls: list[tuple[str, str, dict]] = []
        self.outputs: dict[str, bytes] = {}
        self.put_handler: Callable[[bytes], FakeResponse | None] | None = None
        self.get_handler: Callable[[str], FakeResponse] | None = None
        self._count = itertools.count(1)
        self._lock = threading.Lock()

    def methods(self, method: str) -> list[tuple[str, str, dict]]:
        return [c for c in self.calls if c[0] == method]

    def put(self, url, data=None, headers=None, timeout=None):
        del timeout
        with self._lock:
            self.calls.append(("PUT", url, dict(headers or {})))

        body = bytearray()
        while chunk := data.read(self.read_size):
            body += chunk

        # put_handler 返回 None 时使用默认行为
        if self.put_handler is not None:
            response = self.put_handler(bytes(body))
            if response is not None:
                return response

        with self._lock:
            n = next(self._count)
            location = f"https://api.tinify.com/output/{n}"
            self.outputs[location] = b"TINY" + bytes(body[:16])
        return FakeResponse(
            201, {"Location": location, "Compression-Count": str(n)}
        )

    def get(self, url, headers=None, stream=False, timeout=None):
        del stream, timeout
        with self._lock:
            self.calls.append(("GET", url, dict(headers or {})))

        if self.get_handler is not None:
            return self.get_handler(url)

        body = self.outputs[url]
        return FakeResponse(200, {"Content-Length": str(len(body))}, body)


def _write_noise_image(path: Path, size: int = 64) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    image = Image.effect_noise((size, size), 64)
    image.save(path)
    return path


@pytest.fixture(autouse=True)
def reset_globals():
    """每个测试结束后重置全局配置和配额计数"""
    yield
    reset_config()
    reset_quota_tracker()


@pytest.fixture
def temp_dir():
    """临时目录fixture"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def sample_images(temp_dir: Path) -> dict[str, Path]:
    """用 Pillow 生成的测试图片"""
    source_dir = temp_dir / "source"
    return {
        "png": _write_noise_image(source_dir / "photo.png"),
        "jpeg": _write_noise_image(source_dir / "portrait.jpg"),
        "webp": _write_noise_image(source_dir / "banner.webp"),
    }


@pytest.fixture
def make_image(temp_dir: Path) -> Callable[[str], Path]:
    """按相对路径生成测试图片"""

    def factory(relative: str) -> Path:
        return _write_noise_image(temp_dir / relative)

    return factory


@pytest.fixture
def fake_tinify() -> FakeTinify:
    return FakeTinify()


@pytest.fixture
def quota() -> QuotaTracker:
    return QuotaTracker()


@pytest.fixture
def client(fake_tinify: FakeTinify, quota: QuotaTracker) -> CompressionClient:
    return CompressionClient(session=fake_tinify, quota=quota)


@pytest.fixture
def override_settings() -> OptimizeSettings:
    return OptimizeSettings(token="test-token", policy=PlacementPolicy.OVERRIDE)


@pytest.fixture
def directory_settings(temp_dir: Path) -> OptimizeSettings:
    return OptimizeSettings(
        token="test-token",
        policy=PlacementPolicy.DIRECTORY,
        destination_dir=temp_dir / "optimized",
    )
