"""
语法树视图

esprima 产出的 ESTree 字典树之上的只读包装：
- NodeKind: 核心关心的节点类型（封闭枚举，其余归为 UNKNOWN）
- Span: 源码位置
- SyntaxNode: 节点类型、按角色取子节点、有序遍历子节点
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Optional


class NodeKind(str, Enum):
    """ESTree 节点类型"""
    PROGRAM = "Program"
    IDENTIFIER = "Identifier"
    LITERAL = "Literal"
    TEMPLATE_LITERAL = "TemplateLiteral"
    TEMPLATE_ELEMENT = "TemplateElement"
    THIS_EXPRESSION = "ThisExpression"
    MEMBER_EXPRESSION = "MemberExpression"
    VARIABLE_DECLARATION = "VariableDeclaration"
    VARIABLE_DECLARATOR = "VariableDeclarator"
    ASSIGNMENT_EXPRESSION = "AssignmentExpression"
    ASSIGNMENT_PATTERN = "AssignmentPattern"
    CALL_EXPRESSION = "CallExpression"
    UNARY_EXPRESSION = "UnaryExpression"
    OBJECT_PATTERN = "ObjectPattern"
    OBJECT_EXPRESSION = "ObjectExpression"
    PROPERTY = "Property"
    REST_ELEMENT = "RestElement"
    EXPRESSION_STATEMENT = "ExpressionStatement"
    IMPORT_DECLARATION = "ImportDeclaration"
    IMPORT_DEFAULT_SPECIFIER = "ImportDefaultSpecifier"
    IMPORT_SPECIFIER = "ImportSpecifier"
    IMPORT_NAMESPACE_SPECIFIER = "ImportNamespaceSpecifier"
    EXPORT_NAMED_DECLARATION = "ExportNamedDeclaration"
    EXPORT_DEFAULT_DECLARATION = "ExportDefaultDeclaration"
    UNKNOWN = "<unknown>"

    @classmethod
    def from_tag(cls, tag: Optional[str]) -> "NodeKind":
        try:
            return cls(tag)
        except ValueError:
            return cls.UNKNOWN


# 遍历子节点时跳过的位置信息字段
_POSITION_FIELDS = frozenset({"loc", "range"})


@dataclass(frozen=True)
class Span:
    """
    源码位置

    Attributes:
        start_line: 起始行 (1-based)
        start_column: 起始列 (0-based)
        end_line: 结束行 (1-based)
        end_column: 结束列 (0-based)
        start_offset: 起始字符偏移（解析器提供 range 时）
        end_offset: 结束字符偏移
    """
    start_line: int
    start_column: int
    end_line: int
    end_column: int
    start_offset: Optional[int] = None
    end_offset: Optional[int] = None

    @classmethod
    def from_node(cls, data: dict) -> Optional["Span"]:
        loc = data.get("loc")
        if not isinstance(loc, dict):
            return None
        start = loc.get("start") or {}
        end = loc.get("end") or {}
        offsets = data.get("range")
        start_offset = end_offset = None
        if isinstance(offsets, (list, tuple)) and len(offsets) == 2:
            start_offset, end_offset = offsets
        return cls(
            start_line=start.get("line", 1),
            start_column=start.get("column", 0),
            end_line=end.get("line", start.get("line", 1)),
            end_column=end.get("column", start.get("column", 0)),
            start_offset=start_offset,
            end_offset=end_offset,
        )

    def sort_key(self) -> tuple[int, int]:
        return (self.start_line, self.start_column)

    def to_dict(self) -> dict:
        """ESTree loc 形状"""
        return {
            "start": {"line": self.start_line, "column": self.start_column},
            "end": {"line": self.end_line, "column": self.end_column},
        }


def _is_node(value: Any) -> bool:
    return isinstance(value, dict) and isinstance(value.get("type"), str)


class SyntaxNode:
    """ESTree 字典节点的只读视图"""

    __slots__ = ("_data",)

    def __init__(self, data: dict):
        if not _is_node(data):
            raise ValueError(f"Not a syntax node: {data!r:.80}")
        self._data = data

    def __repr__(self) -> str:
        span = self.span
        where = f"@{span.start_line}:{span.start_column}" if span else ""
        return f"<SyntaxNode {self.tag}{where}>"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SyntaxNode) and other._data is self._data

    def __hash__(self) -> int:
        return id(self._data)

    @property
    def tag(self) -> str:
        return self._data["type"]

    @property
    def kind(self) -> NodeKind:
        return NodeKind.from_tag(self.tag)

    @property
    def raw(self) -> dict:
        return self._data

    @property
    def span(self) -> Optional[Span]:
        return Span.from_node(self._data)

    def attr(self, name: str, default: Any = None) -> Any:
        """标量属性（name、value、computed、operator 等）"""
        return self._data.get(name, default)

    @property
    def name(self) -> Optional[str]:
        return self._data.get("name")

    @property
    def value(self) -> Any:
        return self._data.get("value")

    @property
    def computed(self) -> bool:
        return bool(self._data.get("computed", False))

    @property
    def operator(self) -> Optional[str]:
        return self._data.get("operator")

    def child(self, role: str) -> Optional["SyntaxNode"]:
        value = self._data.get(role)
        if _is_node(value):
            return SyntaxNode(value)
        return None

    def children_of(self, role: str) -> list["SyntaxNode"]:
        value = self._data.get(role)
        if isinstance(value, list):
            return [SyntaxNode(item) for item in value if _is_node(item)]
        if _is_node(value):
            return [SyntaxNode(value)]
        return []

    def children(self) -> Iterator["SyntaxNode"]:
        """按字段顺序遍历所有直接子节点"""
        for key, value in self._data.items():
            if key in _POSITION_FIELDS:
                continue
            if _is_node(value):
                yield SyntaxNode(value)
            elif isinstance(value, list):
                for item in value:
                    if _is_node(item):
                        yield SyntaxNode(item)

    def is_identifier(self, name: Optional[str] = None) -> bool:
        if self.kind is not NodeKind.IDENTIFIER:
            return False
        return name is None or self.name == name

    def text(self, source: Optional[str]) -> Optional[str]:
        """节点对应的源码片段，取自 range 字符偏移"""
        offsets = self._data.get("range")
        if source is None or not isinstance(offsets, (list, tuple)) or len(offsets) != 2:
            return None
        start, end = offsets
        return source[start:end]
