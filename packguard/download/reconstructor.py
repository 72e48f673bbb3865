"""
分片重组

按清单顺序逐个下载分片并拼接成完整的加密数据。
"""

import asyncio
import os
import shutil
import tempfile
from typing import List, Optional

import aiofiles
from loguru import logger

from packguard.download.provider import ProviderClient
from packguard.exceptions import ManifestError, PartDownloadError
from packguard.progress import ProgressReporter


class PartReconstructor:
    """分片重组器"""

    def __init__(self, max_attempts: int = 5, retry_delay: float = 1.0):
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

    async def reconstruct(
        self,
        provider: ProviderClient,
        parts: List[str],
        progress: Optional[ProgressReporter] = None,
    ) -> bytes:
        """
        下载并拼接所有分片

        分片按顺序串行下载，每个分片写入私有临时目录，临时目录在结束时删除。

        Raises:
            ManifestError: 分片列表为空
            PartDownloadError: 某个分片重试耗尽
        """
        if not parts:
            raise ManifestError("清单没有提供任何分片")

        progress = progress or ProgressReporter()
        tmp_dir = tempfile.mkdtemp(prefix="modpack-")
        try:
            progress.setup("Downloading modpack parts", len(parts))
            paths = []
            for index, part_name in enumerate(parts):
                # 远端分片名不可信，本地只用序号命名
                target = os.path.join(tmp_dir, f"part-{index:05d}")
                await self._download_with_retry(provider, part_name, target)
                paths.append(target)
                progress.progress(index + 1)

            progress.status("Joining modpack parts")
            buf = bytearray()
            for path in paths:
                async with aiofiles.open(path, "rb") as f:
                    buf.extend(await f.read())
            return bytes(buf)
        finally:
            shutil.rmtree(tmp_dir, ignore_errors=True)

    async def _download_with_retry(
        self, provider: ProviderClient, part_name: str, target: str
    ) -> None:
        for attempt in range(self.max_attempts):
            logger.info(f"[下载] 分片 {part_name} (第 {attempt + 1} 次尝试)")
            try:
                size = await provider.download_part(part_name, target)
                logger.debug(f"[完成] 分片 {part_name}: {size} 字节")
                return
            except PartDownloadError as e:
                if attempt + 1 < self.max_attempts:
                    delay = self.retry_delay * (2**attempt)
                    logger.warning(
                        f"[重试] 分片 '{part_name}' 下载失败: {e}. {delay:.1f}s 后重试..."
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(f"[错误] 分片 '{part_name}' 最终失败: {e}")
                    raise PartDownloadError(
                        f"分片 {part_name} 在 {self.max_attempts} 次尝试后仍然失败",
                        context={
                            "part": part_name,
                            "provider": provider.base_url,
                            "error": str(e),
                        },
                    )
