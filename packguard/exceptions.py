"""
PackGuard 统一异常体系

提供分层的异常结构，支持错误代码、上下文信息和 JSON 序列化。
"""

from typing import Any, Dict, Optional


class PackGuardError(Exception):
    """PackGuard 基础异常类"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self._get_default_code()
        self.context = context or {}

    def _get_default_code(self) -> str:
        """获取默认错误代码"""
        return "E000"

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "type": self.__class__.__name__,
        }

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ConfigError(PackGuardError):
    """配置相关错误"""

    def _get_default_code(self) -> str:
        return "E100"


class TrustConfigError(ConfigError):
    """公钥或 AES 密钥材料无效"""

    def _get_default_code(self) -> str:
        return "E101"


class ManifestError(PackGuardError):
    """整合包清单相关错误"""

    def _get_default_code(self) -> str:
        return "E200"


class ManifestFetchError(ManifestError):
    """清单获取或解析失败"""

    def _get_default_code(self) -> str:
        return "E201"


class ChecksumDecodeError(ManifestError):
    """清单中的校验和不是 32 字节的十六进制串"""

    def _get_default_code(self) -> str:
        return "E202"


class DownloadError(PackGuardError):
    """下载相关错误"""

    def _get_default_code(self) -> str:
        return "E300"


class PartDownloadError(DownloadError):
    """分片下载在重试耗尽后仍然失败"""

    def _get_default_code(self) -> str:
        return "E301"


class CacheWriteError(DownloadError):
    """写入本地缓存失败"""

    def _get_default_code(self) -> str:
        return "E302"


class VerificationError(PackGuardError):
    """完整性校验错误"""

    def _get_default_code(self) -> str:
        return "E400"


class ChecksumMismatchError(VerificationError):
    """下载内容的 SHA-256 与清单声明不一致"""

    def _get_default_code(self) -> str:
        return "E401"


class SignatureInvalidError(VerificationError):
    """RSA 签名校验失败"""

    def _get_default_code(self) -> str:
        return "E402"


class AllProvidersFailedError(PackGuardError):
    """所有镜像都失败且本地没有可用缓存"""

    def _get_default_code(self) -> str:
        return "E500"


class DecryptionError(PackGuardError):
    """解密失败（填充或格式损坏）"""

    def _get_default_code(self) -> str:
        return "E600"


class InstallError(PackGuardError):
    """安装整合包失败"""

    def _get_default_code(self) -> str:
        return "E700"


__all__ = [
    # 基础异常
    "PackGuardError",
    # 配置异常
    "ConfigError",
    "TrustConfigError",
    # 清单异常
    "ManifestError",
    "ManifestFetchError",
    "ChecksumDecodeError",
    # 下载异常
    "DownloadError",
    "PartDownloadError",
    "CacheWriteError",
    # 校验异常
    "VerificationError",
    "ChecksumMismatchError",
    "SignatureInvalidError",
    # 流程异常
    "AllProvidersFailedError",
    "DecryptionError",
    "InstallError",
]
