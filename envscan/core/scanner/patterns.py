"""
节点匹配谓词

识别 process.env 访问、env 别名以及模块引用：
- 直接引用: process.env.KEY / process.env["KEY"]
- 解构引用: const { KEY } = process.env
- 别名引用: const { env } = process; env.KEY / const { KEY } = env
- 模块引用: const config = require("./config")
"""

from typing import Optional

from envscan.core.syntax import NodeKind, SyntaxNode

PROCESS = "process"
ENV = "env"
REQUIRE = "require"


def is_process_env(node: Optional[SyntaxNode]) -> bool:
    """process.env 本身"""
    if node is None or node.kind is not NodeKind.MEMBER_EXPRESSION or node.computed:
        return False
    obj = node.child("object")
    prop = node.child("property")
    return (
        obj is not None and obj.is_identifier(PROCESS) and
        prop is not None and prop.is_identifier(ENV)
    )


def is_environment_access(node: SyntaxNode) -> bool:
    """process.env.X 或 process.env[X]"""
    return node.kind is NodeKind.MEMBER_EXPRESSION and is_process_env(node.child("object"))


def is_process_env_destructuring(node: SyntaxNode) -> bool:
    """const { A, B } = process.env"""
    if node.kind is not NodeKind.VARIABLE_DECLARATOR:
        return False
    target = node.child("id")
    return (
        target is not None and target.kind is NodeKind.OBJECT_PATTERN and
        is_process_env(node.child("init"))
    )


def is_env_alias_binding(node: SyntaxNode) -> bool:
    """初始值为裸标识符 env 的声明，如 const { KEY } = env"""
    if node.kind is not NodeKind.VARIABLE_DECLARATOR:
        return False
    init = node.child("init")
    return init is not None and init.is_identifier(ENV)


def is_env_alias_access(node: SyntaxNode) -> bool:
    """env.KEY 或 env["KEY"]"""
    if node.kind is not NodeKind.MEMBER_EXPRESSION:
        return False
    obj = node.child("object")
    return obj is not None and obj.is_identifier(ENV)


def is_env_alias_candidate(node: SyntaxNode) -> bool:
    return is_env_alias_binding(node) or is_env_alias_access(node)


def is_direct_env_access(node: SyntaxNode) -> bool:
    return is_environment_access(node) or is_process_env_destructuring(node)


def pattern_binding_name(value: Optional[SyntaxNode]) -> Optional[str]:
    """解构属性绑定的本地名称，{ a: b = 1 } 中为 b"""
    if value is None:
        return None
    if value.kind is NodeKind.ASSIGNMENT_PATTERN:
        value = value.child("left")
    if value is not None and value.kind is NodeKind.IDENTIFIER:
        return value.name
    return None


def binds_env_from_process(node: SyntaxNode) -> bool:
    """const { env } = process 或 const env = process.env"""
    if node.kind is not NodeKind.VARIABLE_DECLARATOR:
        return False
    target = node.child("id")
    init = node.child("init")
    if target is None or init is None:
        return False
    if target.is_identifier(ENV):
        return is_process_env(init)
    if target.kind is not NodeKind.OBJECT_PATTERN or not init.is_identifier(PROCESS):
        return False
    for prop in target.children_of("properties"):
        if prop.kind is NodeKind.PROPERTY and pattern_binding_name(prop.child("value")) == ENV:
            return True
    return False


def is_require_call(node: Optional[SyntaxNode]) -> bool:
    """require("literal")，且仅有一个参数"""
    if node is None or node.kind is not NodeKind.CALL_EXPRESSION:
        return False
    callee = node.child("callee")
    if callee is None or not callee.is_identifier(REQUIRE):
        return False
    args = node.children_of("arguments")
    return (
        len(node.attr("arguments") or []) == 1 and len(args) == 1 and
        args[0].kind is NodeKind.LITERAL and isinstance(args[0].value, str)
    )


def is_module_import_call(node: SyntaxNode) -> bool:
    """const x = require("./x")"""
    return node.kind is NodeKind.VARIABLE_DECLARATOR and is_require_call(node.child("init"))


def module_specifier(node: SyntaxNode) -> Optional[str]:
    """require 调用或 import 声明中的模块路径"""
    if node.kind is NodeKind.VARIABLE_DECLARATOR:
        node = node.child("init")
        if node is None:
            return None
    if is_require_call(node):
        return node.children_of("arguments")[0].value
    if node.kind is NodeKind.IMPORT_DECLARATION:
        source = node.child("source")
        if source is not None and isinstance(source.value, str):
            return source.value
    return None
