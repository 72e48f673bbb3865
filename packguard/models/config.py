"""
配置模型

从 TOML / JSON / YAML 加载后的字典构建强类型配置。
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from packguard.exceptions import ConfigError


@dataclass
class NetworkConfig:
    """网络配置"""

    connect_timeout: float = 5.0
    total_timeout: Optional[float] = None
    max_attempts: int = 5
    retry_delay: float = 1.0

    @classmethod
    def from_dict(cls, data: dict) -> "NetworkConfig":
        config = cls(
            connect_timeout=float(data.get("connect_timeout", 5.0)),
            total_timeout=(
                float(data["total_timeout"])
                if data.get("total_timeout") is not None
                else None
            ),
            max_attempts=int(data.get("max_attempts", 5)),
            retry_delay=float(data.get("retry_delay", 1.0)),
        )
        if config.max_attempts < 1:
            raise ConfigError("network.max_attempts 必须大于 0")
        if config.retry_delay < 0 or config.connect_timeout <= 0:
            raise ConfigError("network 超时与重试间隔不能为负数")
        return config


@dataclass
class TrustPaths:
    """信任材料路径，留空时使用内置资源"""

    public_key: Optional[Path] = None
    aes_key: Optional[Path] = None

    @classmethod
    def from_dict(cls, data: dict) -> "TrustPaths":
        public_key = data.get("public_key")
        aes_key = data.get("aes_key")
        return cls(
            public_key=Path(public_key).expanduser() if public_key else None,
            aes_key=Path(aes_key).expanduser() if aes_key else None,
        )


@dataclass
class PackGuardConfig:
    """PackGuard 主配置"""

    game_dir: Path
    providers: List[str]
    selected_options: List[str] = field(default_factory=list)
    strict_signature: bool = True
    network: NetworkConfig = field(default_factory=NetworkConfig)
    trust: TrustPaths = field(default_factory=TrustPaths)

    @classmethod
    def from_dict(cls, data: dict) -> "PackGuardConfig":
        if not isinstance(data, dict):
            raise ConfigError("配置必须是键值表")

        game_dir = data.get("game_dir")
        if not game_dir:
            raise ConfigError("请配置 game_dir")

        providers = data.get("providers") or []
        if isinstance(providers, str):
            providers = [p.strip() for p in providers.split(",") if p.strip()]
        if not providers:
            raise ConfigError("请配置至少一个镜像 (providers)")
        if not all(isinstance(p, str) for p in providers):
            raise ConfigError("providers 必须是 URL 字符串列表")

        return cls(
            game_dir=Path(game_dir).expanduser(),
            providers=list(providers),
            selected_options=[str(o) for o in data.get("selected_options", [])],
            strict_signature=bool(data.get("strict_signature", True)),
            network=NetworkConfig.from_dict(data.get("network", {})),
            trust=TrustPaths.from_dict(data.get("trust", {})),
        )
