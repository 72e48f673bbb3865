"""
完整性校验器

SHA-256 摘要 + RSA PKCS#1 v1.5 签名校验。摘要始终针对加密数据计算。
"""

import hashlib
from typing import Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, utils
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey


class IntegrityVerifier:
    """完整性校验器"""

    def __init__(self, public_key: RSAPublicKey):
        self.public_key = public_key

    @staticmethod
    def digest(data: bytes) -> bytes:
        """计算 32 字节的 SHA-256 摘要"""
        return hashlib.sha256(data).digest()

    def verify(
        self,
        digest: bytes,
        signature: bytes,
        public_key: Optional[RSAPublicKey] = None,
    ) -> bool:
        """
        校验针对摘要的签名

        签名是对已计算好的摘要做的，因此这里以 Prehashed 方式校验，不再重复哈希。

        Args:
            digest: SHA-256 摘要
            signature: 原始签名字节
            public_key: 可选，覆盖构造时注入的公钥

        Returns:
            签名是否有效
        """
        key = public_key or self.public_key
        try:
            key.verify(
                signature,
                digest,
                padding.PKCS1v15(),
                utils.Prehashed(hashes.SHA256()),
            )
            return True
        except (InvalidSignature, ValueError):
            return False

    def verify_data(self, data: bytes, signature: bytes) -> bool:
        """对数据计算摘要后校验签名"""
        return self.verify(self.digest(data), signature)
