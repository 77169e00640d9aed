"""
Scanner 模块 - 扫描代码库提取 process.env 访问

模块化结构：
- models.py: 数据类定义
- patterns.py: 节点匹配谓词
- tree_filter.py: 可剪枝的语法树遍历
- resolver.py: 计算属性的声明解析
- normalizer.py: 记录归一化、去重、排序
- core.py: 主扫描函数
"""

from envscan.core.scanner.models import (
    SourceUnit,
    MatchCandidate,
    AliasCandidate,
    SiteKind,
    DeclarationSite,
    EnvironmentVariableRecord,
    SkippedFile,
    ScanResult,
)
from envscan.core.scanner.core import (
    analyze_unit,
    collect_source_files,
    find_candidates,
    format_env_var,
    load_unit,
    scan_code_files,
    scan_files,
)
from envscan.core.scanner.resolver import (
    DeclarationResolver,
    ModuleCache,
    resolve_module_path,
)
from envscan.core.scanner.normalizer import aggregate, access_path, to_record

__all__ = [
    # Models
    "SourceUnit",
    "MatchCandidate",
    "AliasCandidate",
    "SiteKind",
    "DeclarationSite",
    "EnvironmentVariableRecord",
    "SkippedFile",
    "ScanResult",
    # Core
    "analyze_unit",
    "collect_source_files",
    "find_candidates",
    "format_env_var",
    "load_unit",
    "scan_code_files",
    "scan_files",
    # Resolver
    "DeclarationResolver",
    "ModuleCache",
    "resolve_module_path",
    # Normalizer
    "aggregate",
    "access_path",
    "to_record",
]
