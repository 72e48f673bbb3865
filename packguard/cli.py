"""
CLI 模块

命令行接口实现。
"""

import asyncio
import json
from pathlib import Path

import click
import toml
import yaml
from loguru import logger

from packguard import __version__
from packguard.downloader import ModpackDownloader
from packguard.exceptions import PackGuardError
from packguard.logger import setup_logger
from packguard.models import PackGuardConfig
from packguard.progress import LoggerProgress


def load_config(config_path: str) -> PackGuardConfig:
    """加载配置文件"""
    path = Path(config_path)

    if not path.exists():
        raise click.ClickException(f"配置文件不存在: {config_path}")

    suffix = path.suffix.lower()

    try:
        if suffix == ".toml":
            data = toml.load(config_path)
        elif suffix == ".json":
            data = json.loads(path.read_text(encoding="utf-8"))
        elif suffix in (".yaml", ".yml"):
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        else:
            raise click.ClickException(f"不支持的配置文件格式: {suffix}")
    except (toml.TomlDecodeError, yaml.YAMLError, ValueError) as e:
        raise click.ClickException(f"配置文件解析失败: {e}")

    try:
        return PackGuardConfig.from_dict(data)
    except PackGuardError as e:
        raise click.ClickException(str(e))


async def run_install(config: PackGuardConfig, optionals: list[str]):
    """下载并安装整合包"""
    async with ModpackDownloader.from_config(config) as downloader:
        await downloader.download_and_install(optionals, progress=LoggerProgress())


async def run_info(config: PackGuardConfig):
    """获取并输出清单"""
    async with ModpackDownloader.from_config(config) as downloader:
        manifest = await downloader.get_or_fetch_manifest()

    click.echo(f"Minecraft 版本: {manifest.minecraft_version}")
    click.echo(f"加载器版本: {manifest.mod_loader_version}")
    click.echo(f"分片数量: {len(manifest.parts)}")
    click.echo(f"校验和: {manifest.checksum}")
    if manifest.optional_components:
        click.echo("可选组件:")
        for opt in manifest.optional_components:
            mark = "✓" if opt.default_enabled else " "
            click.echo(f"  [{mark}] {opt.id} - {opt.name}")


async def run_verify(config: PackGuardConfig) -> bool:
    """校验本地缓存"""
    downloader = ModpackDownloader.from_config(config)
    if not downloader.cache.exists():
        click.echo("本地没有整合包缓存")
        return False
    valid = await downloader.cache.validate()
    if valid:
        digest = await downloader.cache.digest()
        click.echo(f"本地整合包有效 (sha256: {digest.hex()})")
    else:
        click.echo("本地整合包无效，已删除")
    return valid


def _run(coro):
    try:
        return asyncio.run(coro)
    except PackGuardError as e:
        logger.error(f"执行失败: {e}")
        raise click.ClickException(str(e))


@click.group()
@click.option("--debug", is_flag=True, help="启用调试模式")
@click.version_option(version=__version__)
def main(debug: bool):
    """PackGuard - 经过签名校验的 Minecraft 整合包安装工具"""
    setup_logger(level="DEBUG" if debug else None)


@main.command()
@click.argument("config", type=click.Path(), default="packguard.toml")
@click.option(
    "-o", "--optional", "optionals", multiple=True, help="启用的可选组件（可多次使用）"
)
def install(config: str, optionals: tuple):
    """下载、校验并安装整合包"""
    cfg = load_config(config)
    chosen = list(optionals) if optionals else cfg.selected_options
    _run(run_install(cfg, chosen))


@main.command()
@click.argument("config", type=click.Path(), default="packguard.toml")
def info(config: str):
    """显示远端整合包信息"""
    _run(run_info(load_config(config)))


@main.command()
@click.argument("config", type=click.Path(), default="packguard.toml")
def verify(config: str):
    """校验本地整合包缓存"""
    if not _run(run_verify(load_config(config))):
        raise SystemExit(1)


if __name__ == "__main__":
    main()
