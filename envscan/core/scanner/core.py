"""
核心扫描函数

单个文件的分析流程：
1. 过滤语法树，收集 process.env 访问和待定的 env 别名
2. 第二遍确认文件中存在 const { env } = process，才将待定别名视为访问
3. 对计算属性解析声明链
4. 归一化为记录

整体扫描在所有文件分析完成后统一去重排序。
"""

import logging
from functools import partial
from pathlib import Path
from typing import Callable, Iterator, Optional

from envscan.core.config import ScanConfig
from envscan.core.parser import ParseError, parse_source
from envscan.core.scanner.models import (
    AliasCandidate,
    EnvironmentVariableRecord,
    MatchCandidate,
    ScanResult,
    SkippedFile,
    SourceUnit,
    display_path,
)
from envscan.core.scanner.normalizer import aggregate, needs_resolution, to_record
from envscan.core.scanner.patterns import (
    binds_env_from_process,
    is_direct_env_access,
    is_env_alias_candidate,
)
from envscan.core.scanner.resolver import DeclarationResolver, ModuleCache
from envscan.core.scanner.tree_filter import find_nodes, tree_filter
from envscan.core.syntax import NodeKind, SyntaxNode
from envscan.filters.pathspec_filter import PathspecFilter

logger = logging.getLogger(__name__)

# 进度回调类型，参数为显示路径
ProgressCallback = Callable[[str], None]


def load_unit(path: Path, config: Optional[ScanConfig] = None) -> SourceUnit:
    """
    读取并解析单个文件

    Raises:
        OSError / UnicodeDecodeError: 读取失败
        ParseError: 所有解析策略均失败
    """
    config = config or ScanConfig()
    content = path.read_text(encoding="utf-8")
    tree, strategy = parse_source(content, config.parse_strategies)
    logger.debug(f"Parsed {path} ({strategy})")
    return SourceUnit(path=path, source=content, tree=tree)


def _load_module(path: Path, config: ScanConfig) -> Optional[SourceUnit]:
    """被引用模块的按需加载，失败只记录日志"""
    if path.suffix.lower() == ".json" or not path.is_file():
        return None
    try:
        return load_unit(path, config)
    except (OSError, UnicodeDecodeError, ParseError) as e:
        logger.debug(f"Cannot load referenced module {path}: {e}")
        return None


def _candidates_for(node: SyntaxNode, unit: SourceUnit) -> list[MatchCandidate]:
    """将命中的节点展开为访问候选：成员访问一个，解构每个属性一个"""
    if node.kind is NodeKind.MEMBER_EXPRESSION:
        key = node.child("property")
        if key is None:
            return []
        return [MatchCandidate(node, key, node.computed, unit, node.span)]
    if node.kind is NodeKind.VARIABLE_DECLARATOR:
        target = node.child("id")
        if target is None or target.kind is not NodeKind.OBJECT_PATTERN:
            return []
        candidates = []
        for prop in target.children_of("properties"):
            key = prop.child("key")
            if prop.kind is not NodeKind.PROPERTY or key is None:
                logger.debug(f"{unit.path}: skipping {prop!r} in environment destructuring")
                continue
            candidates.append(MatchCandidate(prop, key, prop.computed, unit, prop.span))
        return candidates
    return []


def find_candidates(unit: SourceUnit) -> list[MatchCandidate]:
    """文件中所有 process.env 访问候选，按源码位置排序"""
    found = tree_filter(
        unit.tree,
        success=is_direct_env_access,
        maybe=is_env_alias_candidate,
    )
    candidates = [c for node in found.matches for c in _candidates_for(node, unit)]

    aliases = [AliasCandidate(node, unit) for node in found.maybes]
    if aliases and find_nodes(unit.tree, binds_env_from_process):
        for alias in aliases:
            candidates.extend(_candidates_for(alias.node, unit))

    candidates.sort(key=lambda c: c.span.sort_key() if c.span else (0, 0))
    return candidates


def analyze_unit(
    unit: SourceUnit,
    resolver: Optional[DeclarationResolver] = None,
) -> list[EnvironmentVariableRecord]:
    """分析单个文件，返回未去重的记录"""
    resolver = resolver or DeclarationResolver()
    records = []
    for candidate in find_candidates(unit):
        chain = resolver.resolve(candidate) if needs_resolution(candidate) else []
        records.append(to_record(candidate, chain))
    return records


def _safe_walk(path: Path, ignore: Optional[PathspecFilter]) -> Iterator[Path]:
    try:
        entries = sorted(path.iterdir())
    except OSError as e:
        logger.warning(f"Cannot list {path}: {e}")
        return
    for entry in entries:
        try:
            if entry.is_dir():
                if ignore is None or not ignore.should_ignore_dir(entry):
                    yield from _safe_walk(entry, ignore)
            elif entry.is_file():
                yield entry
        except OSError as e:
            logger.warning(f"Cannot stat {entry}: {e}")


def collect_source_files(root: Path, config: Optional[ScanConfig] = None) -> list[Path]:
    """列出 root 下所有待扫描的源文件（不含目录），按路径排序"""
    config = config or ScanConfig()
    root = Path(root).resolve()
    extensions = {ext.lower() for ext in config.extensions}
    ignore = PathspecFilter(root) if config.respect_gitignore else None
    files = []
    for path in _safe_walk(root, ignore):
        if path.suffix.lower() not in extensions:
            continue
        if ignore is not None and ignore.should_ignore(path):
            continue
        files.append(path)
    return sorted(files)


def scan_files(
    paths: list[Path],
    root: Path,
    config: Optional[ScanConfig] = None,
    on_file: Optional[ProgressCallback] = None,
) -> ScanResult:
    """扫描给定文件；读取或解析失败的文件被跳过"""
    config = config or ScanConfig()
    root = Path(root).resolve()
    result = ScanResult(root=root)
    modules = ModuleCache(partial(_load_module, config=config))
    resolver = DeclarationResolver(
        modules,
        follow_modules=config.follow_modules,
        debug_dir=config.debug_dir,
    )

    collected: list[EnvironmentVariableRecord] = []
    for path in paths:
        shown = display_path(path, root)
        if on_file:
            on_file(shown)
        try:
            unit = load_unit(path, config)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read {shown}: {e}")
            result.skipped_files.append(SkippedFile(path, f"read failed: {e}"))
            continue
        except ParseError as e:
            logger.warning(f"Skipping {shown} - unparsable")
            logger.debug(str(e))
            result.skipped_files.append(SkippedFile(path, "unparsable"))
            continue
        modules.add(unit)
        collected.extend(analyze_unit(unit, resolver))
        result.files_scanned += 1

    result.records = aggregate(collected)
    return result


def scan_code_files(
    root: Path,
    config: Optional[ScanConfig] = None,
    on_file: Optional[ProgressCallback] = None,
) -> ScanResult:
    """扫描目录下的所有源文件"""
    config = config or ScanConfig()
    paths = collect_source_files(root, config)
    return scan_files(paths, root, config, on_file)


def format_env_var(record: EnvironmentVariableRecord, root: Optional[Path] = None) -> str:
    """将记录格式化为 IDE 风格的一行文本"""
    span = record.reference_span
    line = f":{span.start_line}:{span.start_column}" if span else ""
    label = record.name if record.name is not None else f"[{record.computed}]"
    return f"{display_path(record.reference_file, root)}{line}: {label}"
