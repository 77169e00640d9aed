"""
JSON 报告器 - 输出 JSON 格式报告
"""

import sys
from typing import TextIO

from envscan.core.scanner.models import ScanResult


class JsonReporter:
    """JSON 报告器"""

    def __init__(self, output: TextIO | None = None, relative_paths: bool = True):
        self.output = output or sys.stdout
        self.relative_paths = relative_paths

    def report(self, result: ScanResult) -> None:
        """输出排序后的环境变量记录数组"""
        print(result.to_json(self.relative_paths), file=self.output)
