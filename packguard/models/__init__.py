"""
PackGuard 数据模型包

包含配置模型和整合包清单模型。
"""

from packguard.models.config import (
    NetworkConfig,
    TrustPaths,
    PackGuardConfig,
)
from packguard.models.manifest import (
    CHECKSUM_SIZE,
    OptionalComponent,
    ModpackManifest,
)

__all__ = [
    # 配置模型
    "NetworkConfig",
    "TrustPaths",
    "PackGuardConfig",
    # 清单模型
    "CHECKSUM_SIZE",
    "OptionalComponent",
    "ModpackManifest",
]
