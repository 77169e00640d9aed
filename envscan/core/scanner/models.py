"""
数据模型定义

包含扫描器使用的所有数据类。
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from envscan.core.syntax import Span, SyntaxNode


@dataclass(frozen=True)
class SourceUnit:
    """
    一个已解析的源文件

    Attributes:
        path: 文件绝对路径
        source: 源码文本
        tree: 语法树根节点（只读）
    """
    path: Path
    source: str
    tree: SyntaxNode


@dataclass
class MatchCandidate:
    """
    一次 process.env 访问

    Attributes:
        node: 访问所在节点（成员表达式或解构属性）
        key: 命名环境变量的节点
        computed: 键是否为计算属性
        unit: 所属源文件
        span: 源码位置
        warnings: 解析过程中附加的警告
    """
    node: SyntaxNode
    key: SyntaxNode
    computed: bool
    unit: SourceUnit
    span: Optional[Span]
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AliasCandidate:
    """
    待确认的 env 别名使用（maybe）

    仅在单个文件的扫描中存在。
    """
    node: SyntaxNode
    unit: SourceUnit


class SiteKind(str, Enum):
    """声明来源类型"""
    MODULE_REFERENCE = "module_reference"
    LITERAL_VALUE = "literal_value"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class DeclarationSite:
    """
    值的声明来源

    Attributes:
        kind: 来源类型
        filename: 所在文件（模块引用时为被引用文件）
        span: 源码位置
        value: 字面量值（仅 LITERAL_VALUE）
    """
    kind: SiteKind
    filename: Optional[Path]
    span: Optional[Span] = None
    value: Any = None

    @classmethod
    def module_reference(cls, path: Path) -> "DeclarationSite":
        return cls(SiteKind.MODULE_REFERENCE, path)

    @classmethod
    def literal(cls, filename: Path, span: Optional[Span], value: Any) -> "DeclarationSite":
        return cls(SiteKind.LITERAL_VALUE, filename, span, value)

    @classmethod
    def unresolved(cls, filename: Path, span: Optional[Span]) -> "DeclarationSite":
        return cls(SiteKind.UNRESOLVED, filename, span)


@dataclass
class EnvironmentVariableRecord:
    """
    环境变量记录

    Attributes:
        reference_file: 访问所在文件
        reference_span: 访问位置
        name: 字面量键名
        computed: 无法还原为字面量时的点分路径
        initialized: 声明链
        warnings: 解析警告
    """
    reference_file: Path
    reference_span: Optional[Span]
    name: Optional[str] = None
    computed: Optional[str] = None
    initialized: list[DeclarationSite] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if (self.name is None) == (self.computed is None):
            raise ValueError("Exactly one of name/computed must be set")

    @property
    def identity(self) -> str:
        return self.name if self.name is not None else self.computed

    def to_dict(self, root: Optional[Path] = None) -> dict:
        """序列化为输出格式，root 给出时路径相对于 root"""
        data: dict[str, Any] = {"type": "EnvironmentVariable"}
        if self.name is not None:
            data["name"] = self.name
        else:
            data["computed"] = self.computed
        data["reference"] = {
            "filename": display_path(self.reference_file, root),
            "loc": self.reference_span.to_dict() if self.reference_span else None,
        }
        if self.initialized:
            data["initialized"] = [_site_to_dict(site, root) for site in self.initialized]
        return data


def _site_to_dict(site: DeclarationSite, root: Optional[Path]) -> dict:
    entry: dict[str, Any] = {
        "filename": display_path(site.filename, root) if site.filename else None,
    }
    if site.span is not None:
        entry["loc"] = site.span.to_dict()
    if site.kind is SiteKind.LITERAL_VALUE:
        entry["value"] = site.value
    return entry


def display_path(path: Path, root: Optional[Path] = None) -> str:
    """root 下的路径显示为相对路径，其余保持原样"""
    if root is not None:
        try:
            return path.relative_to(root).as_posix()
        except ValueError:
            pass
    return str(path)


@dataclass(frozen=True)
class SkippedFile:
    """被跳过的文件"""
    path: Path
    reason: str


@dataclass
class ScanResult:
    """
    扫描结果

    Attributes:
        root: 扫描根目录
        records: 去重排序后的环境变量记录
        files_scanned: 成功分析的文件数
        skipped_files: 读取或解析失败的文件
    """
    root: Path
    records: list[EnvironmentVariableRecord] = field(default_factory=list)
    files_scanned: int = 0
    skipped_files: list[SkippedFile] = field(default_factory=list)

    def to_list(self, relative_paths: bool = True) -> list[dict]:
        root = self.root if relative_paths else None
        return [record.to_dict(root) for record in self.records]

    def to_json(self, relative_paths: bool = True) -> str:
        """序列化为 JSON 字符串"""
        return json.dumps(self.to_list(relative_paths), ensure_ascii=False, indent=2)
