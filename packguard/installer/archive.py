"""
整合包归档读取器

解密后的数据是一个 zip：

    manifest.json            格式版本与保留规则
    mods/*.jar               必需模组
    mods/libs/**             必需模组的依赖库
    mods/{optional_id}/**    可选组件（含其 libs/）
    .minecraft/**            配置等通用文件，相对游戏目录解压
"""

import io
import json
import posixpath
import shutil
import zipfile
import zlib
from dataclasses import dataclass
from typing import Iterable, List, Set

from loguru import logger

from packguard.exceptions import InstallError

FORMAT_VERSION = 1
MANIFEST_NAME = "manifest.json"
MODS_DIR = "mods"
LIBS_DIR = "libs"
GAME_FILES_DIR = ".minecraft"

# 只有在读取条目内容时才会暴露的解压错误
_READ_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    EOFError,
    RuntimeError,
    NotImplementedError,
)


@dataclass
class ArchiveEntry:
    """归档中的一个待安装文件"""

    info: zipfile.ZipInfo
    target: str  # 相对游戏目录的 posix 路径
    is_mod: bool


def _split_entry_name(name: str) -> List[str]:
    if name.startswith("/") or "\\" in name:
        raise InstallError(f"非法的归档路径: {name}", context={"entry": name})
    parts = [p for p in name.split("/") if p not in ("", ".")]
    if any(p == ".." for p in parts) or (parts and ":" in parts[0]):
        raise InstallError(f"非法的归档路径: {name}", context={"entry": name})
    return parts


class ModpackArchiveReader:
    """读取并规划整合包归档"""

    def __init__(self, data: bytes):
        try:
            self.archive = zipfile.ZipFile(io.BytesIO(data))
        except zipfile.BadZipFile as e:
            raise InstallError(f"无法打开整合包归档: {e}")
        try:
            self.manifest = self._read_manifest()
        except InstallError:
            self.archive.close()
            raise
        self.keep_existing: List[str] = list(self.manifest.get("keep_existing", []))

    def _read_manifest(self) -> dict:
        try:
            raw = self.archive.read(MANIFEST_NAME)
        except KeyError:
            raise InstallError("整合包归档缺少 manifest.json")
        except _READ_ERRORS as e:
            raise InstallError(f"无法读取 manifest.json: {e}")
        try:
            manifest = json.loads(raw)
        except ValueError as e:
            raise InstallError(f"manifest.json 无法解析: {e}")
        if not isinstance(manifest, dict):
            raise InstallError("manifest.json 必须是 JSON 对象")
        version = manifest.get("format_version")
        if version != FORMAT_VERSION:
            raise InstallError(
                f"不支持的整合包格式版本: {version}",
                context={"format_version": version},
            )
        return manifest

    def optional_ids(self) -> Set[str]:
        """归档中包含的可选组件 id"""
        ids = set()
        for info in self.archive.infolist():
            parts = _split_entry_name(info.filename)
            if len(parts) >= 3 and parts[0] == MODS_DIR and parts[1] != LIBS_DIR:
                ids.add(parts[1])
        return ids

    def plan(self, chosen_optionals: Iterable[str]) -> List[ArchiveEntry]:
        """根据选中的可选组件列出需要安装的文件"""
        chosen = set(chosen_optionals)
        entries = []
        for info in self.archive.infolist():
            if info.is_dir():
                continue
            parts = _split_entry_name(info.filename)
            if not parts or parts == [MANIFEST_NAME]:
                continue

            if parts[0] == MODS_DIR and len(parts) >= 2:
                if len(parts) == 2:
                    rest = parts[1:]
                elif parts[1] == LIBS_DIR:
                    rest = parts[2:]
                elif parts[1] in chosen:
                    rest = parts[3:] if parts[2] == LIBS_DIR else parts[2:]
                else:
                    continue
                if rest:
                    entries.append(
                        ArchiveEntry(info, posixpath.join(MODS_DIR, *rest), True)
                    )
            elif parts[0] == GAME_FILES_DIR and len(parts) >= 2:
                entries.append(ArchiveEntry(info, posixpath.join(*parts[1:]), False))
            else:
                logger.debug(f"忽略归档条目: {info.filename}")
        return entries

    def extract(self, entry: ArchiveEntry, dest_path: str) -> None:
        try:
            with self.archive.open(entry.info) as src, open(dest_path, "wb") as dst:
                shutil.copyfileobj(src, dst)
        except _READ_ERRORS as e:
            raise InstallError(
                f"无法解压归档条目 {entry.info.filename}: {e}",
                context={"entry": entry.info.filename},
            )

    def close(self) -> None:
        self.archive.close()
