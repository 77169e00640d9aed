"""
tree-sitter 语法树转换

esprima 只支持到 ES2017，对象展开、可选链、?? 、类字段以及 Flow 类型注解
都会让它解析失败。此时改用 tree-sitter 解析，并把具体语法树转换为扫描器
使用的 ESTree 字典形状：
- 扫描器识别的节点（成员访问、声明、赋值、字面量、import/export 等）转换为对应的 ESTree 节点
- 其余节点保留 tree-sitter 的类型名，子节点放入 children 列表，遍历时照常深入
- ERROR 节点同样保留，容错解析时错误附近的代码仍会被扫描

位置信息与 esprima 一致：loc 行号从 1 开始、列号从 0 开始，range 为字符偏移。
"""

import logging
import re
from typing import Callable, Iterable, Optional

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

logger = logging.getLogger(__name__)

# 语法名 -> 语言工厂；tsx 用于带类型注解的 Flow 风格代码
GRAMMARS: dict[str, Callable[[], object]] = {
    "javascript": tree_sitter_javascript.language,
    "tsx": tree_sitter_typescript.language_tsx,
}

_languages: dict[str, Language] = {}

# 不参与转换的节点
_SKIPPED = frozenset({"comment", "hash_bang_line", "optional_chain"})

_IDENTIFIERS = frozenset({
    "identifier",
    "property_identifier",
    "shorthand_property_identifier",
    "shorthand_property_identifier_pattern",
    "statement_identifier",
})

_LOGICAL_OPERATORS = frozenset({"&&", "||", "??"})

_ESCAPE = re.compile(r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|[\s\S])")

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
    # 行续接
    "\n": "",
    "\r": "",
    "\r\n": "",
    "\u2028": "",
    "\u2029": "",
}


def get_language(grammar: str) -> Language:
    if grammar not in _languages:
        _languages[grammar] = Language(GRAMMARS[grammar]())
    return _languages[grammar]


def unescape(raw: str) -> str:
    """JS 字符串转义序列的值"""
    def replace(match: re.Match) -> str:
        escape = match.group(1)
        if escape[0] == "u" and len(escape) > 1:
            digits = escape[2:-1] if escape[1] == "{" else escape[1:]
            return chr(int(digits, 16))
        if escape[0] == "x" and len(escape) == 3:
            return chr(int(escape[1:], 16))
        return _SIMPLE_ESCAPES.get(escape, escape)

    return _ESCAPE.sub(replace, raw)


def number_value(text: str) -> Optional[int | float]:
    """数字字面量的值，整数保持为 int"""
    text = text.replace("_", "").lower()
    if text.endswith("n"):
        text = text[:-1]
    try:
        if text.startswith(("0x", "0o", "0b")):
            return int(text, 0)
        if text.isdigit():
            # 旧式八进制 017
            if len(text) > 1 and text[0] == "0" and not set(text) & {"8", "9"}:
                return int(text, 8)
            return int(text)
        return float(text)
    except ValueError:
        logger.debug(f"Unreadable number literal {text!r}")
        return None


def _first_error(root: Node) -> Node:
    node = root
    while True:
        for child in node.children:
            if child.type == "ERROR" or child.is_missing:
                return child
            if child.has_error:
                node = child
                break
        else:
            return node


def parse_tree(code: str, grammar: str = "javascript", recover: bool = False) -> dict:
    """
    用 tree-sitter 解析并转换为 ESTree 字典

    Args:
        code: 源码
        grammar: GRAMMARS 中的语法名
        recover: 为 False 时存在语法错误即失败；为 True 时保留 ERROR 节点继续转换

    Raises:
        ValueError: recover 为 False 且源码含语法错误
    """
    data = code.encode("utf-8")
    tree = Parser(get_language(grammar)).parse(data)
    root = tree.root_node
    if root.has_error:
        error = _first_error(root)
        where = f"line {error.start_point[0] + 1}, column {error.start_point[1]}"
        if not recover:
            raise ValueError(f"Syntax error at {where}")
        logger.debug(f"Recovered from syntax error at {where}")
    return TreeConverter(code, data).convert(root)


class TreeConverter:
    """tree-sitter 节点 -> ESTree 字典"""

    def __init__(self, code: str, data: bytes):
        self.data = data
        self._line_starts = [0] + [match.end() for match in re.finditer("\n", code)]
        # 字节偏移 -> 字符偏移，仅在含非 ASCII 字符时需要
        self._chars: Optional[list[int]] = None
        if len(data) != len(code):
            chars = []
            for index, char in enumerate(code):
                chars.extend([index] * len(char.encode("utf-8")))
            chars.append(len(code))
            self._chars = chars
        self._handlers: dict[str, Callable[[Node], Optional[dict]]] = {
            "program": self._program,
            "expression_statement": self._expression_statement,
            "lexical_declaration": self._variable_declaration,
            "variable_declaration": self._variable_declaration,
            "variable_declarator": self._variable_declarator,
            "this": lambda node: self.make(node, "ThisExpression"),
            "undefined": lambda node: self.make(node, "Identifier", name="undefined"),
            "private_property_identifier": self._private_identifier,
            "member_expression": self._member_expression,
            "subscript_expression": self._subscript_expression,
            "parenthesized_expression": self._parenthesized_expression,
            "call_expression": self._call_expression,
            "new_expression": self._new_expression,
            "assignment_expression": self._assignment_expression,
            "augmented_assignment_expression": self._assignment_expression,
            "unary_expression": self._unary_expression,
            "binary_expression": self._binary_expression,
            "ternary_expression": self._ternary_expression,
            "sequence_expression": self._sequence_expression,
            "spread_element": self._spread_element,
            "string": self._string,
            "number": self._number,
            "true": lambda node: self._literal(node, True),
            "false": lambda node: self._literal(node, False),
            "null": lambda node: self._literal(node, None),
            "regex": self._regex,
            "template_string": self._template_string,
            "object": self._object,
            "object_pattern": self._object,
            "array_pattern": self._array_pattern,
            "assignment_pattern": self._assignment_pattern,
            "rest_pattern": self._rest_pattern,
            "import_statement": self._import_statement,
            "export_statement": self._export_statement,
        }
        for kind in _IDENTIFIERS:
            self._handlers[kind] = self._identifier

    # 基础

    def offset(self, byte: int) -> int:
        return byte if self._chars is None else self._chars[byte]

    def text(self, node: Node) -> str:
        return self.data[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def _position(self, row: int, offset: int) -> dict:
        return {"line": row + 1, "column": offset - self._line_starts[row]}

    def make(self, node: Node, tag: str, **fields) -> dict:
        start = self.offset(node.start_byte)
        end = self.offset(node.end_byte)
        data = {"type": tag, **fields}
        data["range"] = [start, end]
        data["loc"] = {
            "start": self._position(node.start_point[0], start),
            "end": self._position(node.end_point[0], end),
        }
        return data

    def convert(self, node: Optional[Node]) -> Optional[dict]:
        if node is None or node.type in _SKIPPED:
            return None
        handler = self._handlers.get(node.type)
        if handler is None:
            return self.make(node, node.type, children=self.convert_all(node.named_children))
        return handler(node)

    def convert_all(self, nodes: Iterable[Node]) -> list[dict]:
        return [data for data in map(self.convert, nodes) if data is not None]

    def field(self, node: Node, name: str) -> Optional[dict]:
        return self.convert(node.child_by_field_name(name))

    @staticmethod
    def named(node: Node) -> list[Node]:
        return [child for child in node.named_children if child.type not in _SKIPPED]

    # 语句与声明

    def _program(self, node: Node) -> dict:
        return self.make(node, "Program", sourceType="module", body=self.convert_all(node.named_children))

    def _expression_statement(self, node: Node) -> dict:
        parts = self.named(node)
        return self.make(node, "ExpressionStatement", expression=self.convert(parts[0]) if parts else None)

    def _variable_declaration(self, node: Node) -> dict:
        kind = node.child_by_field_name("kind")
        declarators = [child for child in node.named_children if child.type == "variable_declarator"]
        return self.make(
            node,
            "VariableDeclaration",
            declarations=self.convert_all(declarators),
            kind=self.text(kind) if kind is not None else "var",
        )

    def _variable_declarator(self, node: Node) -> dict:
        return self.make(
            node,
            "VariableDeclarator",
            id=self.field(node, "name"),
            init=self.field(node, "value"),
        )

    # 表达式

    def _identifier(self, node: Node) -> dict:
        return self.make(node, "Identifier", name=self.text(node))

    def _private_identifier(self, node: Node) -> dict:
        return self.make(node, "PrivateIdentifier", name=self.text(node).lstrip("#"))

    def _member_expression(self, node: Node) -> dict:
        return self.make(
            node,
            "MemberExpression",
            computed=False,
            object=self.field(node, "object"),
            property=self.field(node, "property"),
            optional=node.child_by_field_name("optional_chain") is not None,
        )

    def _subscript_expression(self, node: Node) -> dict:
        return self.make(
            node,
            "MemberExpression",
            computed=True,
            object=self.field(node, "object"),
            property=self.field(node, "index"),
            optional=node.child_by_field_name("optional_chain") is not None,
        )

    def _parenthesized_expression(self, node: Node) -> Optional[dict]:
        parts = self.named(node)
        if len(parts) == 1:
            return self.convert(parts[0])
        return self.make(node, node.type, children=self.convert_all(parts))

    def _call_expression(self, node: Node) -> dict:
        arguments = node.child_by_field_name("arguments")
        if arguments is not None and arguments.type == "template_string":
            return self.make(
                node,
                "TaggedTemplateExpression",
                tag=self.field(node, "function"),
                quasi=self.convert(arguments),
            )
        return self.make(
            node,
            "CallExpression",
            callee=self.field(node, "function"),
            arguments=self.convert_all(self.named(arguments)) if arguments is not None else [],
            optional=node.child_by_field_name("optional_chain") is not None,
        )

    def _new_expression(self, node: Node) -> dict:
        arguments = node.child_by_field_name("arguments")
        return self.make(
            node,
            "NewExpression",
            callee=self.field(node, "constructor"),
            arguments=self.convert_all(self.named(arguments)) if arguments is not None else [],
        )

    def _assignment_expression(self, node: Node) -> dict:
        operator = node.child_by_field_name("operator")
        return self.make(
            node,
            "AssignmentExpression",
            operator=self.text(operator) if operator is not None else "=",
            left=self.field(node, "left"),
            right=self.field(node, "right"),
        )

    def _unary_expression(self, node: Node) -> dict:
        operator = node.child_by_field_name("operator")
        return self.make(
            node,
            "UnaryExpression",
            operator=self.text(operator) if operator is not None else None,
            prefix=True,
            argument=self.field(node, "argument"),
        )

    def _binary_expression(self, node: Node) -> dict:
        operator = node.child_by_field_name("operator")
        text = self.text(operator) if operator is not None else None
        return self.make(
            node,
            "LogicalExpression" if text in _LOGICAL_OPERATORS else "BinaryExpression",
            operator=text,
            left=self.field(node, "left"),
            right=self.field(node, "right"),
        )

    def _ternary_expression(self, node: Node) -> dict:
        return self.make(
            node,
            "ConditionalExpression",
            test=self.field(node, "condition"),
            consequent=self.field(node, "consequence"),
            alternate=self.field(node, "alternative"),
        )

    def _sequence_expression(self, node: Node) -> dict:
        return self.make(node, "SequenceExpression", expressions=self.convert_all(node.named_children))

    def _spread_element(self, node: Node) -> dict:
        parts = self.named(node)
        return self.make(node, "SpreadElement", argument=self.convert(parts[0]) if parts else None)

    # 字面量

    def _literal(self, node: Node, value: object, **fields) -> dict:
        return self.make(node, "Literal", value=value, raw=self.text(node), **fields)

    def _string(self, node: Node) -> dict:
        return self._literal(node, unescape(self.text(node)[1:-1]))

    def _number(self, node: Node) -> dict:
        return self._literal(node, number_value(self.text(node)))

    def _regex(self, node: Node) -> dict:
        pattern = node.child_by_field_name("pattern")
        flags = node.child_by_field_name("flags")
        return self._literal(node, None, regex={
            "pattern": self.text(pattern) if pattern is not None else "",
            "flags": self.text(flags) if flags is not None else "",
        })

    def _template_string(self, node: Node) -> dict:
        substitutions = [child for child in node.named_children if child.type == "template_substitution"]
        quasis = []
        expressions = []
        start = node.start_byte + 1
        for substitution in substitutions:
            quasis.append(self._template_element(start, substitution.start_byte, tail=False))
            parts = self.named(substitution)
            if parts:
                expressions.append(self.convert(parts[0]))
            start = substitution.end_byte
        quasis.append(self._template_element(start, node.end_byte - 1, tail=True))
        return self.make(node, "TemplateLiteral", quasis=quasis, expressions=expressions)

    def _template_element(self, start: int, end: int, tail: bool) -> dict:
        raw = self.data[start:end].decode("utf-8", errors="replace")
        first = self.offset(start)
        last = self.offset(end)
        return {
            "type": "TemplateElement",
            "value": {"raw": raw, "cooked": unescape(raw)},
            "tail": tail,
            "range": [first, last],
        }

    # 对象与解构

    def _object(self, node: Node) -> dict:
        tag = "ObjectPattern" if node.type == "object_pattern" else "ObjectExpression"
        properties = [self._property(child) for child in self.named(node)]
        return self.make(node, tag, properties=[prop for prop in properties if prop is not None])

    def _property(self, node: Node) -> Optional[dict]:
        if node.type in ("pair", "pair_pattern"):
            key = node.child_by_field_name("key")
            computed = key is not None and key.type == "computed_property_name"
            return self.make(
                node,
                "Property",
                key=self._property_key(key),
                computed=computed,
                value=self.field(node, "value"),
                kind="init",
                method=False,
                shorthand=False,
            )
        if node.type in ("shorthand_property_identifier", "shorthand_property_identifier_pattern"):
            return self.make(
                node,
                "Property",
                key=self._identifier(node),
                computed=False,
                value=self._identifier(node),
                kind="init",
                method=False,
                shorthand=True,
            )
        if node.type == "object_assignment_pattern":
            left = node.child_by_field_name("left")
            if left is not None and left.type in _IDENTIFIERS:
                return self.make(
                    node,
                    "Property",
                    key=self._identifier(left),
                    computed=False,
                    value=self.make(
                        node,
                        "AssignmentPattern",
                        left=self._identifier(left),
                        right=self.field(node, "right"),
                    ),
                    kind="init",
                    method=False,
                    shorthand=True,
                )
        return self.convert(node)

    def _property_key(self, key: Optional[Node]) -> Optional[dict]:
        if key is not None and key.type == "computed_property_name":
            parts = self.named(key)
            return self.convert(parts[0]) if parts else None
        return self.convert(key)

    def _array_pattern(self, node: Node) -> dict:
        return self.make(node, "ArrayPattern", elements=self.convert_all(node.named_children))

    def _assignment_pattern(self, node: Node) -> dict:
        return self.make(
            node,
            "AssignmentPattern",
            left=self.field(node, "left"),
            right=self.field(node, "right"),
        )

    def _rest_pattern(self, node: Node) -> dict:
        parts = self.named(node)
        return self.make(node, "RestElement", argument=self.convert(parts[0]) if parts else None)

    # 模块

    def _module_name(self, node: Optional[Node]) -> Optional[dict]:
        """import { "a-b" as c } 中的字符串名称同样视为标识符"""
        if node is None:
            return None
        if node.type == "string":
            return self.make(node, "Identifier", name=unescape(self.text(node)[1:-1]))
        return self._identifier(node)

    def _import_statement(self, node: Node) -> dict:
        specifiers = []
        for clause in node.named_children:
            if clause.type != "import_clause":
                continue
            for part in clause.named_children:
                if part.type == "identifier":
                    specifiers.append(self.make(part, "ImportDefaultSpecifier", local=self._identifier(part)))
                elif part.type == "namespace_import":
                    names = [child for child in part.named_children if child.type == "identifier"]
                    if names:
                        specifiers.append(
                            self.make(part, "ImportNamespaceSpecifier", local=self._identifier(names[0]))
                        )
                elif part.type == "named_imports":
                    for spec in part.named_children:
                        if spec.type != "import_specifier":
                            continue
                        imported = spec.child_by_field_name("name")
                        alias = spec.child_by_field_name("alias")
                        specifiers.append(self.make(
                            spec,
                            "ImportSpecifier",
                            local=self._module_name(alias or imported),
                            imported=self._module_name(imported),
                        ))
        return self.make(node, "ImportDeclaration", specifiers=specifiers, source=self.field(node, "source"))

    def _export_statement(self, node: Node) -> dict:
        declaration = node.child_by_field_name("declaration")
        if any(child.type == "default" for child in node.children):
            value = node.child_by_field_name("value") or declaration
            return self.make(node, "ExportDefaultDeclaration", declaration=self.convert(value))
        clauses = [child for child in node.named_children if child.type == "export_clause"]
        return self.make(
            node,
            "ExportNamedDeclaration",
            declaration=self.convert(declaration),
            specifiers=self.convert_all(clauses),
            source=self.field(node, "source"),
        )
