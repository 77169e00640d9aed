"""
扫描配置
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from envscan.core.parser import DEFAULT_STRATEGIES, ParseStrategy

# 扫描的文件扩展名
DEFAULT_EXTENSIONS: tuple[str, ...] = (".js", ".jsx", ".mjs")

# 模块解析时依次尝试的后缀
MODULE_SUFFIXES: tuple[str, ...] = (
    "",
    ".js",
    ".jsx",
    ".mjs",
    ".cjs",
    ".json",
    "/index.js",
    "/index.jsx",
    "/index.mjs",
)

# 第三方依赖目录
DEPENDENCY_DIR = "node_modules"


@dataclass
class ScanConfig:
    """
    扫描配置

    Attributes:
        extensions: 扫描的文件扩展名
        respect_gitignore: 是否应用 .gitignore / 默认忽略规则
        follow_modules: 是否读取被 require 的文件查找导出的字面量
        relative_paths: 输出路径是否相对于扫描根目录
        debug_dir: 声明无法定位时转储语法树的目录
        parse_strategies: 解析策略
    """
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    respect_gitignore: bool = True
    follow_modules: bool = False
    relative_paths: bool = True
    debug_dir: Optional[Path] = None
    parse_strategies: tuple[ParseStrategy, ...] = DEFAULT_STRATEGIES
