"""
整合包安装器

先把所有文件解压到游戏目录内的暂存目录，全部成功后再逐个移动到目标位置。
"""

import fnmatch
import json
import os
import shutil
import tempfile
import zipfile
import zlib
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import aiofiles
from loguru import logger

from packguard.exceptions import InstallError, PackGuardError
from packguard.installer.archive import ModpackArchiveReader

INSTALL_INFO_PATH = os.path.join("modpack", "install_info.json")


@dataclass
class InstallInfo:
    """上一次成功安装的记录"""

    checksum: Optional[str] = None
    optionals: List[str] = field(default_factory=list)
    extracted_mods: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "InstallInfo":
        return cls(
            checksum=data.get("checksum"),
            optionals=list(data.get("optionals", [])),
            extracted_mods=list(data.get("extracted_mods", [])),
        )

    def to_dict(self) -> dict:
        return {
            "checksum": self.checksum,
            "optionals": self.optionals,
            "extracted_mods": self.extracted_mods,
        }


class ArchiveInstaller:
    """整合包安装器"""

    async def install(
        self,
        data: bytes,
        target_dir: str,
        chosen_optionals: Iterable[str],
        checksum: Optional[str] = None,
    ) -> InstallInfo:
        """
        安装解密后的整合包

        Args:
            data: 解密后的 zip 数据
            target_dir: 游戏目录
            chosen_optionals: 选中的可选组件 id
            checksum: 对应加密数据的摘要（写入安装记录）

        Returns:
            本次安装记录

        Raises:
            InstallError: 归档无效或文件写入失败
        """
        target_dir = str(target_dir)
        chosen = list(dict.fromkeys(chosen_optionals))
        reader = ModpackArchiveReader(data)
        try:
            available = reader.optional_ids()
            for optional_id in chosen:
                if optional_id not in available:
                    logger.warning(f"整合包中没有可选组件 '{optional_id}'，已忽略")
            entries = reader.plan(chosen)

            os.makedirs(target_dir, exist_ok=True)
            staging_dir = tempfile.mkdtemp(prefix=".modpack-staging-", dir=target_dir)
            try:
                staged = []
                for index, entry in enumerate(entries):
                    staged_path = os.path.join(staging_dir, str(index))
                    reader.extract(entry, staged_path)
                    staged.append((entry, staged_path))
                logger.debug(f"已暂存 {len(staged)} 个文件")

                previous = await self.read_install_info(target_dir)
                new_mods = sorted({e.target for e, _ in staged if e.is_mod})
                self._remove_stale_mods(target_dir, previous, new_mods)

                for entry, staged_path in staged:
                    final_path = os.path.join(target_dir, *entry.target.split("/"))
                    if not entry.is_mod and self._keep_existing(
                        reader.keep_existing, entry.target, final_path
                    ):
                        logger.debug(f"保留已存在的文件: {entry.target}")
                        continue
                    os.makedirs(os.path.dirname(final_path), exist_ok=True)
                    os.replace(staged_path, final_path)
            finally:
                shutil.rmtree(staging_dir, ignore_errors=True)

            info = InstallInfo(
                checksum=checksum,
                optionals=[o for o in chosen if o in available],
                extracted_mods=new_mods,
            )
            await self.write_install_info(target_dir, info)
            logger.success(f"整合包已安装: {len(new_mods)} 个模组")
            return info
        except PackGuardError:
            raise
        except (
            OSError,
            ValueError,
            EOFError,
            zipfile.BadZipFile,
            zlib.error,
        ) as e:
            raise InstallError(
                f"安装整合包失败: {e}", context={"target_dir": target_dir}
            )
        finally:
            reader.close()

    @staticmethod
    def _keep_existing(patterns: List[str], target: str, final_path: str) -> bool:
        if not os.path.exists(final_path):
            return False
        return any(fnmatch.fnmatch(target, pattern) for pattern in patterns)

    @staticmethod
    def _remove_stale_mods(
        target_dir: str, previous: Optional[InstallInfo], new_mods: List[str]
    ) -> None:
        if previous is None:
            return
        keep = set(new_mods)
        for rel_path in previous.extracted_mods:
            if rel_path in keep or not rel_path.startswith("mods/") or ".." in rel_path:
                continue
            path = os.path.join(target_dir, *rel_path.split("/"))
            if os.path.isfile(path):
                logger.info(f"删除旧模组: {rel_path}")
                os.remove(path)

    @staticmethod
    async def read_install_info(target_dir: str) -> Optional[InstallInfo]:
        path = os.path.join(str(target_dir), INSTALL_INFO_PATH)
        if not os.path.isfile(path):
            return None
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                return InstallInfo.from_dict(json.loads(await f.read()))
        except (ValueError, AttributeError) as e:
            logger.warning(f"安装记录无法解析，已忽略: {e}")
            return None

    @staticmethod
    async def write_install_info(target_dir: str, info: InstallInfo) -> None:
        path = os.path.join(str(target_dir), INSTALL_INFO_PATH)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(info.to_dict(), indent=4))
