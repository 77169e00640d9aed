"""
Core Layer - 核心层

包含语法树视图、JavaScript 解析器、扫描配置和环境变量扫描器。
"""

from envscan.core.config import ScanConfig
from envscan.core.parser import ParseError, ParseStrategy, parse_source
from envscan.core.syntax import NodeKind, Span, SyntaxNode
from envscan.core.scanner import (
    scan_code_files,
    EnvironmentVariableRecord,
    ScanResult,
)

__all__ = [
    # config
    "ScanConfig",
    # parser
    "ParseError",
    "ParseStrategy",
    "parse_source",
    # syntax
    "NodeKind",
    "Span",
    "SyntaxNode",
    # scanner
    "scan_code_files",
    "EnvironmentVariableRecord",
    "ScanResult",
]
