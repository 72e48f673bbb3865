"""
整合包下载协调器

流程：
    0. 校验本地缓存（签名无效则整对删除）
    1. 依次尝试各镜像：获取清单 -> 解码校验和 -> 与本地缓存比较
    2. 需要更新时按顺序下载分片并重组加密数据
    3. 校验 SHA-256 与 RSA 签名，通过后写入缓存
    4. 解密并安装；安装失败时删除缓存，下次强制重新下载
"""

from pathlib import Path
from typing import Iterable, List, Optional, Union

from loguru import logger

from packguard.download import LocalCache, PartReconstructor, ProviderClient
from packguard.exceptions import (
    AllProvidersFailedError,
    ChecksumMismatchError,
    InstallError,
    ManifestError,
    ManifestFetchError,
    PackGuardError,
    SignatureInvalidError,
)
from packguard.installer import ArchiveInstaller
from packguard.models import ModpackManifest, PackGuardConfig
from packguard.progress import ProgressReporter
from packguard.security import IntegrityVerifier, SymmetricCipher, TrustConfig


class ModpackDownloader:
    """
    整合包下载协调器

    实例内部没有加锁，调用方需保证同一时间只有一个操作在执行。
    """

    def __init__(
        self,
        game_dir: Union[str, Path],
        providers: List[ProviderClient],
        trust: TrustConfig,
        reconstructor: Optional[PartReconstructor] = None,
        installer: Optional[ArchiveInstaller] = None,
        strict_signature: bool = True,
    ):
        self.game_dir = str(game_dir)
        self.providers = list(providers)
        self.verifier = IntegrityVerifier(trust.public_key)
        self.cipher = SymmetricCipher(trust.aes_key, trust.aes_iv)
        self.cache = LocalCache(self.game_dir, self.verifier)
        self.reconstructor = reconstructor or PartReconstructor()
        self.installer = installer or ArchiveInstaller()
        self.strict_signature = strict_signature
        self._manifest: Optional[ModpackManifest] = None

    @classmethod
    def from_config(
        cls, config: PackGuardConfig, trust: Optional[TrustConfig] = None
    ) -> "ModpackDownloader":
        """根据配置构建协调器"""
        network = config.network
        providers = [
            ProviderClient(
                url,
                connect_timeout=network.connect_timeout,
                total_timeout=network.total_timeout,
            )
            for url in config.providers
        ]
        return cls(
            game_dir=config.game_dir,
            providers=providers,
            trust=trust or TrustConfig.from_paths(config.trust),
            reconstructor=PartReconstructor(
                max_attempts=network.max_attempts, retry_delay=network.retry_delay
            ),
            strict_signature=config.strict_signature,
        )

    async def get_or_fetch_manifest(self) -> ModpackManifest:
        """返回缓存的清单，没有时从第一个可用的镜像获取"""
        if self._manifest is None:
            self._manifest = await self._fetch_latest_manifest()
        return self._manifest

    def clear_manifest(self) -> None:
        """丢弃缓存的清单，下次调用时重新获取"""
        self._manifest = None

    async def _fetch_latest_manifest(self) -> ModpackManifest:
        for provider in self.providers:
            try:
                return await provider.fetch_manifest()
            except ManifestFetchError as e:
                logger.warning(f"镜像 '{provider.base_url}' 不可用: {e}")
        raise AllProvidersFailedError(
            "所有镜像都无法提供整合包清单",
            context={"providers": [p.base_url for p in self.providers]},
        )

    async def download_and_install(
        self,
        chosen_optional_ids: Iterable[str],
        progress: Optional[ProgressReporter] = None,
    ) -> None:
        """
        运行完整的下载、校验、解密、安装流程

        Raises:
            AllProvidersFailedError: 所有镜像失败且没有可用的本地缓存
            DecryptionError: 解密失败（缓存保留）
            InstallError: 安装失败（缓存已删除）
        """
        progress = progress or ProgressReporter()
        chosen = list(chosen_optional_ids)

        progress.setup("Verifying local modpack", 1)
        await self.cache.validate()
        progress.progress(1)
        local_digest = await self.cache.digest()

        logger.info("检查整合包更新...")
        try:
            satisfied = await self._try_providers(local_digest, progress)
        finally:
            progress.done()

        if not self.cache.exists():
            logger.error("所有镜像都失败了，且没有可用的本地整合包")
            raise AllProvidersFailedError(
                "整合包下载失败",
                context={"providers": [p.base_url for p in self.providers]},
            )
        if not satisfied:
            logger.warning("没有镜像提供可用的更新，使用本地缓存安装")

        blob = await self.cache.read_blob()
        checksum = (await self.cache.digest()).hex()

        progress.setup("Installing modpack", 1)
        try:
            logger.info("正在解密整合包...")
            plaintext = self.cipher.decrypt(blob)

            logger.info("正在安装整合包...")
            try:
                await self.installer.install(
                    plaintext, self.game_dir, chosen, checksum=checksum
                )
            except InstallError as e:
                logger.error(f"安装整合包失败: {e}")
                self.cache.clear()
                raise
            progress.progress(1)
        finally:
            progress.done()
        logger.success("整合包安装完成!")

    async def _try_providers(
        self, local_digest: Optional[bytes], progress: ProgressReporter
    ) -> bool:
        """
        依次尝试各镜像

        Returns:
            是否有镜像确认本地缓存为最新或成功提供了新数据
        """
        total = len(self.providers)
        for index, provider in enumerate(self.providers):
            progress.setup(
                f"Trying modpack provider {provider.base_url} ({index + 1}/{total})",
                total,
            )
            progress.progress(index)
            logger.info(f" - 尝试镜像 '{provider.base_url}'")

            try:
                manifest = await provider.fetch_manifest()
                remote_checksum = manifest.checksum_bytes()
            except ManifestError as e:
                logger.warning(f"   镜像清单无效: {e}")
                continue

            if local_digest is not None:
                if local_digest == remote_checksum:
                    logger.info("   本地整合包已是最新")
                    self._manifest = manifest
                    return True
                logger.info("   本地整合包已过期，开始更新...")
            else:
                logger.info("   未找到本地整合包，开始下载...")

            try:
                await self._download_verified(
                    provider, manifest, remote_checksum, progress
                )
            except PackGuardError as e:
                logger.warning(f"   从镜像 '{provider.base_url}' 下载失败: {e}")
                continue

            self._manifest = manifest
            logger.success("整合包下载完成!")
            return True
        return False

    async def _download_verified(
        self,
        provider: ProviderClient,
        manifest: ModpackManifest,
        remote_checksum: bytes,
        progress: ProgressReporter,
    ) -> None:
        blob = await self.reconstructor.reconstruct(provider, manifest.parts, progress)

        logger.info("   分片下载完成，正在校验...")
        digest = self.verifier.digest(blob)
        if digest != remote_checksum:
            raise ChecksumMismatchError(
                "校验和不匹配",
                context={"remote": remote_checksum.hex(), "downloaded": digest.hex()},
            )

        signature = manifest.signature_bytes()
        if not self.verifier.verify(digest, signature):
            if self.strict_signature:
                raise SignatureInvalidError(
                    "签名校验失败", context={"provider": provider.base_url}
                )
            logger.warning("   签名校验失败，按兼容模式继续")

        logger.info("   校验通过，写入本地缓存...")
        await self.cache.store(blob, signature, digest)

    async def close(self):
        """关闭所有镜像客户端"""
        for provider in self.providers:
            await provider.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
