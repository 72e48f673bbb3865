import collections
import hashlib
import io
import json
import os
import zipfile
from dataclasses import dataclass
from typing import Dict, List, Optional

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa, utils

from packguard.download import PartReconstructor, ProviderClient
from packguard.downloader import ModpackDownloader
from packguard.security import SymmetricCipher, TrustConfig

MANIFEST_NAME = "modpack_info.json"

DEFAULT_FILES = {
    "mods/core.jar": b"core-mod",
    "mods/libs/corelib.jar": b"core-lib",
    "mods/shaders/shaders.jar": b"shader-mod",
    "mods/shaders/libs/shaderlib.jar": b"shader-lib",
    ".minecraft/config/core.toml": b"enabled = true",
    ".minecraft/options.txt": b"renderDistance:8",
}


def sign_digest(private_key, digest: bytes) -> bytes:
    return private_key.sign(digest, padding.PKCS1v15(), utils.Prehashed(hashes.SHA256()))


def build_archive(files: Optional[Dict[str, bytes]] = None, manifest=None) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as archive:
        if manifest is None:
            manifest = {"format_version": 1, "keep_existing": ["options.txt"]}
        archive.writestr("manifest.json", json.dumps(manifest))
        for name, content in (DEFAULT_FILES if files is None else files).items():
            archive.writestr(name, content)
    return buf.getvalue()


def build_corrupt_archive() -> bytes:
    """目录完好，但 mods/core.jar 的 deflate 数据以保留块类型开头"""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as archive:
        archive.writestr("manifest.json", json.dumps({"format_version": 1}))
        archive.writestr(
            "mods/core.jar", b"core-mod" * 64, compress_type=zipfile.ZIP_DEFLATED
        )
        info = archive.getinfo("mods/core.jar")
    data = bytearray(buf.getvalue())
    offset = info.header_offset
    name_len = int.from_bytes(data[offset + 26 : offset + 28], "little")
    extra_len = int.from_bytes(data[offset + 28 : offset + 30], "little")
    data[offset + 30 + name_len + extra_len] = 0xFF
    return bytes(data)


@dataclass
class Bundle:
    plaintext: bytes
    blob: bytes
    parts: Dict[str, bytes]
    manifest: dict


class BundleFactory:
    def __init__(self, trust: TrustConfig, private_key):
        self.trust = trust
        self.private_key = private_key

    def __call__(
        self,
        plaintext: Optional[bytes] = None,
        part_count: int = 3,
        blob: Optional[bytes] = None,
    ) -> Bundle:
        if plaintext is None:
            plaintext = build_archive()
        if blob is None:
            blob = SymmetricCipher(self.trust.aes_key, self.trust.aes_iv).encrypt(
                plaintext
            )
        digest = hashlib.sha256(blob).digest()
        signature = sign_digest(self.private_key, digest)

        size = -(-len(blob) // part_count)
        names = [f"modpack.part{i}" for i in range(part_count)]
        parts = {name: blob[i * size : (i + 1) * size] for i, name in enumerate(names)}
        manifest = {
            "parts": names,
            "minecraftVersion": "1.20.1",
            "forgeVersion": "47.2.0",
            "optionals": [
                {"id": "shaders", "name": "Shaders", "defaultEnabled": False}
            ],
            "checksum": digest.hex(),
            "signature": signature.hex(),
        }
        return Bundle(plaintext=plaintext, blob=blob, parts=parts, manifest=manifest)


class Mirror:
    """本地 aiohttp 镜像，记录每个路径的请求次数"""

    def __init__(self, bundle: Optional[Bundle] = None):
        self.manifest = bundle.manifest if bundle else None
        self.parts = dict(bundle.parts) if bundle else {}
        self.failures: Dict[str, int] = {}
        self.broken = False
        self.requests: collections.Counter = collections.Counter()
        self.server: Optional[TestServer] = None

    async def _handle(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        self.requests[name] += 1
        if self.broken:
            return web.Response(status=500)
        if self.failures.get(name, 0) > 0:
            self.failures[name] -= 1
            return web.Response(status=503)
        if name == MANIFEST_NAME:
            if self.manifest is None:
                return web.Response(status=404)
            return web.Response(text=json.dumps(self.manifest), content_type="text/plain")
        if name in self.parts:
            return web.Response(body=self.parts[name])
        return web.Response(status=404)

    @property
    def url(self) -> str:
        return str(self.server.make_url("/pack"))

    @property
    def part_requests(self) -> int:
        return sum(n for name, n in self.requests.items() if name != MANIFEST_NAME)

    async def __aenter__(self) -> "Mirror":
        app = web.Application()
        app.router.add_get("/pack/{name}", self._handle)
        self.server = TestServer(app)
        await self.server.start_server()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.server.close()


class RecordingProgress:
    def __init__(self):
        self.events: List[tuple] = []

    def setup(self, label, total=None):
        self.events.append(("setup", label, total))

    def status(self, label):
        self.events.append(("status", label))

    def progress(self, current):
        self.events.append(("progress", current))

    def done(self):
        self.events.append(("done",))


@pytest.fixture(scope="session")
def private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def trust(private_key):
    return TrustConfig(
        public_key=private_key.public_key(),
        aes_key=os.urandom(32),
        aes_iv=os.urandom(16),
    )


@pytest.fixture
def make_bundle(trust, private_key):
    return BundleFactory(trust, private_key)


@pytest.fixture
def mirror_cls():
    return Mirror


@pytest.fixture
def progress_cls():
    return RecordingProgress


@pytest.fixture
def game_dir(tmp_path):
    path = tmp_path / "game"
    path.mkdir()
    return path


@pytest.fixture
def make_downloader(game_dir, trust):
    def factory(urls, **kwargs):
        providers = [ProviderClient(url) for url in urls]
        kwargs.setdefault("reconstructor", PartReconstructor(retry_delay=0))
        return ModpackDownloader(game_dir, providers, trust, **kwargs)

    return factory
