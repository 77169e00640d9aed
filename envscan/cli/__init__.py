"""
CLI Layer - 命令行接口层
"""

from envscan.cli.app import app, scan, version

__all__ = [
    "app",
    "scan",
    "version",
]
