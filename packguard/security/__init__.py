"""
PackGuard 安全层

包含摘要与签名校验、对称解密、信任材料加载。
"""

from packguard.security.cipher import SymmetricCipher
from packguard.security.trust import TrustConfig
from packguard.security.verifier import IntegrityVerifier

__all__ = [
    "IntegrityVerifier",
    "SymmetricCipher",
    "TrustConfig",
]
