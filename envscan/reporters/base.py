"""
报告器基类 - 定义报告器接口
"""

from typing import Protocol

from envscan.core.scanner.models import ScanResult


class Reporter(Protocol):
    """报告器协议"""

    def report(self, result: ScanResult) -> None:
        """生成报告"""
        ...
