"""
信任材料

RSA 公钥与 AES-256 密钥/IV 在构造时注入，默认值来自包内的 keys/ 资源。
"""

import json
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Optional, Union

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

from packguard.exceptions import TrustConfigError
from packguard.models import TrustPaths

AES_KEY_SIZE = 32
AES_IV_SIZE = 16


def load_public_key(pem: Union[str, bytes]) -> RSAPublicKey:
    """加载 PEM 公钥（PKCS#1 或 SubjectPublicKeyInfo）"""
    if isinstance(pem, str):
        pem = pem.encode()
    try:
        key = serialization.load_pem_public_key(pem)
    except ValueError as e:
        raise TrustConfigError(f"无法解析公钥: {e}")
    if not isinstance(key, RSAPublicKey):
        raise TrustConfigError("公钥必须是 RSA 公钥")
    return key


def load_aes_material(raw: Union[str, bytes]) -> tuple[bytes, bytes]:
    """解析 {"key": hex, "iv": hex} 格式的 AES 密钥文件"""
    try:
        data = json.loads(raw)
        key = bytes.fromhex(data["key"])
        iv = bytes.fromhex(data["iv"])
    except (ValueError, KeyError, TypeError) as e:
        raise TrustConfigError(f"无法解析 AES 密钥: {e}")
    if len(key) != AES_KEY_SIZE or len(iv) != AES_IV_SIZE:
        raise TrustConfigError(
            f"AES 密钥应为 {AES_KEY_SIZE} 字节、IV 应为 {AES_IV_SIZE} 字节",
            context={"key_size": len(key), "iv_size": len(iv)},
        )
    return key, iv


@dataclass(frozen=True)
class TrustConfig:
    """所有整合包共用的信任材料"""

    public_key: RSAPublicKey
    aes_key: bytes
    aes_iv: bytes

    def __post_init__(self):
        if len(self.aes_key) != AES_KEY_SIZE or len(self.aes_iv) != AES_IV_SIZE:
            raise TrustConfigError("AES 密钥或 IV 长度错误")

    @classmethod
    def from_pem(
        cls, public_key_pem: Union[str, bytes], aes_json: Union[str, bytes]
    ) -> "TrustConfig":
        key, iv = load_aes_material(aes_json)
        return cls(public_key=load_public_key(public_key_pem), aes_key=key, aes_iv=iv)

    @classmethod
    def embedded(cls) -> "TrustConfig":
        """读取随包发布的默认信任材料"""
        keys = resources.files("packguard") / "keys"
        return cls.from_pem(
            (keys / "public_key.pem").read_bytes(),
            (keys / "aes_key.json").read_bytes(),
        )

    @classmethod
    def from_paths(cls, paths: Optional[TrustPaths] = None) -> "TrustConfig":
        """按配置路径加载，未配置的部分回退到内置资源"""
        paths = paths or TrustPaths()
        keys = resources.files("packguard") / "keys"
        try:
            pem = _read(paths.public_key) or (keys / "public_key.pem").read_bytes()
            aes = _read(paths.aes_key) or (keys / "aes_key.json").read_bytes()
        except OSError as e:
            raise TrustConfigError(f"无法读取信任材料: {e}")
        return cls.from_pem(pem, aes)


def _read(path: Optional[Path]) -> Optional[bytes]:
    if path is None:
        return None
    return path.read_bytes()
