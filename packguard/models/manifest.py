"""
整合包清单模型

对应镜像上的 modpack_info.json。
"""

import binascii
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from packguard.exceptions import ChecksumDecodeError, ManifestError

CHECKSUM_SIZE = 32


@dataclass(frozen=True)
class OptionalComponent:
    """可选组件（例如性能或画质类模组）"""

    id: str
    name: str
    description: str = ""
    icon: Optional[str] = None
    default_enabled: bool = False
    incompatible_with: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "OptionalComponent":
        if not isinstance(data, dict) or not data.get("id"):
            raise ManifestError("可选组件缺少 id", context={"optional": data})
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            description=str(data.get("description", "")),
            icon=data.get("icon"),
            default_enabled=bool(
                data.get("defaultEnabled", data.get("default_enabled", False))
            ),
            incompatible_with=list(
                data.get("incompatibleWith", data.get("incompatible_with", []))
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "defaultEnabled": self.default_enabled,
            "incompatibleWith": list(self.incompatible_with),
        }


@dataclass(frozen=True)
class ModpackManifest:
    """
    整合包清单

    parts 的顺序即拼接顺序；checksum 与 signature 都针对加密后的整体数据。
    """

    parts: List[str]
    minecraft_version: str
    mod_loader_version: str
    checksum: str
    signature: str
    optional_components: List[OptionalComponent] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "ModpackManifest":
        """
        从 JSON 数据构建清单（键名为 camelCase）

        Raises:
            ManifestError: 缺少字段或字段类型错误
        """
        if not isinstance(data, dict):
            raise ManifestError("清单必须是 JSON 对象")

        missing = [
            key
            for key in ("parts", "minecraftVersion", "checksum", "signature")
            if key not in data
        ]
        loader_version = data.get("forgeVersion", data.get("modLoaderVersion"))
        if loader_version is None:
            missing.append("forgeVersion")
        if missing:
            raise ManifestError(
                f"清单缺少字段: {', '.join(missing)}", context={"missing": missing}
            )

        parts = data["parts"]
        if not isinstance(parts, list) or not all(isinstance(p, str) for p in parts):
            raise ManifestError("parts 必须是字符串数组")

        return cls(
            parts=list(parts),
            minecraft_version=str(data["minecraftVersion"]),
            mod_loader_version=str(loader_version),
            checksum=str(data["checksum"]),
            signature=str(data["signature"]),
            optional_components=[
                OptionalComponent.from_dict(item) for item in data.get("optionals") or []
            ],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parts": list(self.parts),
            "minecraftVersion": self.minecraft_version,
            "forgeVersion": self.mod_loader_version,
            "optionals": [opt.to_dict() for opt in self.optional_components],
            "checksum": self.checksum,
            "signature": self.signature,
        }

    def checksum_bytes(self) -> bytes:
        """
        解码 checksum

        Raises:
            ChecksumDecodeError: 不是合法的十六进制串或长度不是 32 字节
        """
        try:
            raw = bytes.fromhex(self.checksum)
        except ValueError as e:
            raise ChecksumDecodeError(
                f"无法解码校验和: {e}", context={"checksum": self.checksum}
            )
        if len(raw) != CHECKSUM_SIZE:
            raise ChecksumDecodeError(
                f"校验和长度为 {len(raw)} 字节，应为 {CHECKSUM_SIZE} 字节",
                context={"checksum": self.checksum},
            )
        return raw

    def signature_bytes(self) -> bytes:
        """解码 signature"""
        try:
            return binascii.unhexlify(self.signature)
        except (binascii.Error, ValueError) as e:
            raise ManifestError(
                f"无法解码签名: {e}", context={"signature": self.signature}
            )

    @property
    def optional_ids(self) -> List[str]:
        return [opt.id for opt in self.optional_components]

    def default_optional_ids(self) -> List[str]:
        return [opt.id for opt in self.optional_components if opt.default_enabled]
