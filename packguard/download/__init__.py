"""
PackGuard 下载层

包含镜像客户端、分片重组、本地缓存。
"""

from packguard.download.cache import LocalCache
from packguard.download.provider import ProviderClient
from packguard.download.reconstructor import PartReconstructor

__all__ = [
    "LocalCache",
    "ProviderClient",
    "PartReconstructor",
]
