"""
镜像客户端

从单个镜像获取 modpack_info.json 和分片数据。
"""

import asyncio
from typing import Optional
from urllib.parse import urljoin

import aiofiles
import aiohttp

from packguard.exceptions import ManifestError, ManifestFetchError, PartDownloadError
from packguard.models import ModpackManifest

MANIFEST_NAME = "modpack_info.json"
CHUNK_SIZE = 8192


class ProviderClient:
    """单个镜像的客户端"""

    def __init__(
        self,
        base_url: str,
        session: Optional[aiohttp.ClientSession] = None,
        connect_timeout: float = 5.0,
        total_timeout: Optional[float] = None,
    ):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._session = session
        self._owned_session = session is None
        self._timeout = aiohttp.ClientTimeout(
            total=total_timeout, sock_connect=connect_timeout
        )

    def __repr__(self) -> str:
        return f"ProviderClient({self.base_url!r})"

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owned_session = True
        return self._session

    def url_for(self, name: str) -> str:
        return urljoin(self.base_url, name)

    async def fetch_manifest(self) -> ModpackManifest:
        """
        获取并解析清单

        Raises:
            ManifestFetchError: 网络错误、非 2xx 响应或内容无法解析
        """
        url = self.url_for(MANIFEST_NAME)
        try:
            async with self.session.get(url) as response:
                response.raise_for_status()
                # 镜像常以 text/plain 提供 JSON
                data = await response.json(content_type=None)
        except aiohttp.ClientResponseError as e:
            raise ManifestFetchError(
                f"获取清单失败 (状态码: {e.status})",
                context={"url": url, "status_code": e.status},
            )
        except (aiohttp.ClientError, ValueError, asyncio.TimeoutError) as e:
            raise ManifestFetchError(
                f"获取清单失败: {e!r}", context={"url": url}
            )

        try:
            return ModpackManifest.from_dict(data)
        except ManifestError as e:
            raise ManifestFetchError(
                f"清单格式错误: {e.message}", context={"url": url, **e.context}
            )

    async def download_part(self, part_name: str, target: str) -> int:
        """
        把一个分片流式写入 target

        Returns:
            写入的字节数
        """
        url = self.url_for(part_name)
        written = 0
        try:
            async with self.session.get(url) as response:
                response.raise_for_status()
                async with aiofiles.open(target, "wb") as f:
                    async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                        await f.write(chunk)
                        written += len(chunk)
        except aiohttp.ClientResponseError as e:
            raise PartDownloadError(
                f"下载分片失败 (状态码: {e.status})",
                context={"url": url, "part": part_name, "status_code": e.status},
            )
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
            raise PartDownloadError(
                f"下载分片失败: {e!r}", context={"url": url, "part": part_name}
            )
        return written

    async def close(self):
        """关闭客户端"""
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
