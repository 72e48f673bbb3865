"""
对称解密

AES-256-CBC + PKCS#7 填充，密钥与 IV 由所有整合包共享。
"""

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from packguard.exceptions import DecryptionError

BLOCK_SIZE_BITS = 128


class SymmetricCipher:
    """AES-256-CBC 加解密"""

    def __init__(self, key: bytes, iv: bytes):
        self._key = key
        self._iv = iv

    def _cipher(self) -> Cipher:
        return Cipher(algorithms.AES(self._key), modes.CBC(self._iv))

    def decrypt(self, data: bytes) -> bytes:
        """
        解密并去除填充

        Raises:
            DecryptionError: 数据长度不是块大小的整数倍或填充损坏
        """
        try:
            decryptor = self._cipher().decryptor()
            padded = decryptor.update(data) + decryptor.finalize()
            unpadder = padding.PKCS7(BLOCK_SIZE_BITS).unpadder()
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as e:
            raise DecryptionError(
                f"解密整合包失败: {e}", context={"size": len(data)}
            )

    def encrypt(self, data: bytes) -> bytes:
        """加密（发布整合包时使用）"""
        padder = padding.PKCS7(BLOCK_SIZE_BITS).padder()
        padded = padder.update(data) + padder.finalize()
        encryptor = self._cipher().encryptor()
        return encryptor.update(padded) + encryptor.finalize()
