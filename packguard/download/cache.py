"""
本地缓存

{game_dir}/modpack/ 下的加密数据与签名文件对，二者总是一起写入、一起删除。
"""

import os
from typing import Optional

import aiofiles
from loguru import logger

from packguard.exceptions import CacheWriteError
from packguard.security import IntegrityVerifier

CACHE_DIR_NAME = "modpack"
BLOB_NAME = "modpack.enc.zip"
SIGNATURE_NAME = "modpack.enc.sig"


class LocalCache:
    """加密整合包的本地缓存"""

    def __init__(self, game_dir: str, verifier: IntegrityVerifier):
        self.cache_dir = os.path.join(str(game_dir), CACHE_DIR_NAME)
        self.blob_path = os.path.join(self.cache_dir, BLOB_NAME)
        self.signature_path = os.path.join(self.cache_dir, SIGNATURE_NAME)
        self.verifier = verifier
        self._digest: Optional[bytes] = None

    def exists(self) -> bool:
        return os.path.isfile(self.blob_path) and os.path.isfile(self.signature_path)

    async def validate(self) -> bool:
        """
        重新校验缓存

        两个文件都存在时重新计算摘要并用公钥校验签名；只有一个文件或校验失败时
        删除整对文件。

        Returns:
            缓存是否存在且有效
        """
        self._digest = None
        has_blob = os.path.isfile(self.blob_path)
        has_signature = os.path.isfile(self.signature_path)
        if not has_blob and not has_signature:
            return False
        if not (has_blob and has_signature):
            logger.warning("本地整合包缓存不完整，已删除")
            self.clear()
            return False

        logger.info("发现本地整合包，正在校验...")
        blob = await self.read_blob()
        async with aiofiles.open(self.signature_path, "rb") as f:
            signature = await f.read()

        digest = self.verifier.digest(blob)
        if not self.verifier.verify(digest, signature):
            logger.warning("本地整合包签名无效，将重新下载")
            self.clear()
            return False

        self._digest = digest
        logger.success("本地整合包校验通过")
        return True

    async def read_blob(self) -> bytes:
        async with aiofiles.open(self.blob_path, "rb") as f:
            return await f.read()

    async def digest(self) -> Optional[bytes]:
        """
        缓存数据的摘要，不存在时返回 None

        validate() 或 store() 已经算过摘要时直接复用，不再读盘。
        """
        if not self.exists():
            self._digest = None
            return None
        if self._digest is None:
            self._digest = self.verifier.digest(await self.read_blob())
        return self._digest

    async def store(
        self, blob: bytes, signature: bytes, digest: Optional[bytes] = None
    ) -> None:
        """
        写入缓存文件对（先写临时文件再替换）

        Raises:
            CacheWriteError: 写入失败。旧缓存的数据文件已被替换时整对删除，
                否则旧缓存保持不变
        """
        blob_tmp = self.blob_path + ".part"
        signature_tmp = self.signature_path + ".part"
        replaced = False
        try:
            os.makedirs(self.cache_dir, exist_ok=True)
            async with aiofiles.open(blob_tmp, "wb") as f:
                await f.write(blob)
            async with aiofiles.open(signature_tmp, "wb") as f:
                await f.write(signature)
            os.replace(blob_tmp, self.blob_path)
            replaced = True
            os.replace(signature_tmp, self.signature_path)
        except OSError as e:
            for path in (blob_tmp, signature_tmp):
                if os.path.isfile(path):
                    os.remove(path)
            if replaced:
                self.clear()
            raise CacheWriteError(
                f"写入本地缓存失败: {e}", context={"cache_dir": self.cache_dir}
            )
        self._digest = digest or self.verifier.digest(blob)

    def clear(self) -> None:
        """删除缓存文件对"""
        self._digest = None
        for path in (self.blob_path, self.signature_path):
            if os.path.exists(path):
                os.remove(path)
