"""
PackGuard 安装层

包含整合包归档读取与安装。
"""

from packguard.installer.archive import ModpackArchiveReader
from packguard.installer.installer import ArchiveInstaller, InstallInfo

__all__ = [
    "ArchiveInstaller",
    "InstallInfo",
    "ModpackArchiveReader",
]
