"""
PackGuard - 经过签名校验的 Minecraft 整合包分发与安装工具
"""

__version__ = "0.1.0"
