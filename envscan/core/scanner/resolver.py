"""
声明解析

为计算属性访问（process.env[KEY]、process.env[config.KEY]）查找值的来源：
- 同文件的变量声明、赋值、import 绑定
- require / import 模块引用（相对路径或 node_modules）
- 字面量、链式赋值 a = b = "X"、对象字面量属性
- void 0 视为有意缺省，不进入声明链

默认只记录被引用模块的路径；follow_modules 开启时再读取该模块一次，
查找导出的字面量。
"""

import json
import logging
import os
from pathlib import Path
from typing import Callable, Optional

from envscan.core.config import DEPENDENCY_DIR, MODULE_SUFFIXES
from envscan.core.scanner.models import DeclarationSite, MatchCandidate, SourceUnit
from envscan.core.scanner.patterns import (
    is_module_import_call,
    is_require_call,
    module_specifier,
    pattern_binding_name,
)
from envscan.core.scanner.tree_filter import find_nodes
from envscan.core.syntax import NodeKind, SyntaxNode

logger = logging.getLogger(__name__)

UnitLoader = Callable[[Path], Optional[SourceUnit]]

# CommonJS 导出槽位前缀
_MODULE_EXPORTS = ["module", "exports"]
_EXPORTS = ["exports"]


class ModuleCache:
    """按需解析被引用的模块，一次扫描内共享"""

    def __init__(self, loader: UnitLoader):
        self._loader = loader
        self._units: dict[Path, Optional[SourceUnit]] = {}

    def add(self, unit: SourceUnit) -> None:
        self._units[unit.path] = unit

    def get(self, path: Path) -> Optional[SourceUnit]:
        if path not in self._units:
            self._units[path] = self._loader(path)
        return self._units[path]


def path_segments(node: Optional[SyntaxNode]) -> Optional[list[str]]:
    """a.b["c"] -> ["a", "b", "c"]；不是静态路径时返回 None"""
    if node is None:
        return None
    if node.kind is NodeKind.IDENTIFIER:
        return [node.name]
    if node.kind is not NodeKind.MEMBER_EXPRESSION:
        return None
    head = path_segments(node.child("object"))
    if head is None:
        return None
    key = property_key(node.child("property"), node.computed)
    if key is None:
        return None
    return head + [key]


def property_key(node: Optional[SyntaxNode], computed: bool) -> Optional[str]:
    """属性键的静态名称：非计算标识符或字符串/数字字面量"""
    if node is None:
        return None
    if node.kind is NodeKind.IDENTIFIER and not computed:
        return node.name
    if node.kind is NodeKind.LITERAL and isinstance(node.value, (str, int, float)):
        value = node.value
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return str(value)
    return None


def _probe(base: Path) -> Optional[Path]:
    for suffix in MODULE_SUFFIXES:
        candidate = Path(f"{base}{suffix}")
        if candidate.is_file():
            return candidate
    return None


def _package_entry(package_dir: Path) -> Optional[Path]:
    manifest = package_dir / "package.json"
    if manifest.is_file():
        try:
            main = json.loads(manifest.read_text(encoding="utf-8")).get("main")
        except (OSError, ValueError) as e:
            logger.debug(f"Unreadable {manifest}: {e}")
            main = None
        if isinstance(main, str) and main:
            entry = _probe(Path(os.path.normpath(package_dir / main)))
            if entry is not None:
                return entry
    return _probe(package_dir)


def resolve_module_path(specifier: str, importer: Path) -> Optional[Path]:
    """
    解析模块路径

    - 相对路径: 相对于引用文件所在目录
    - 裸模块名: 从引用文件向上查找最近的、包含该包的 node_modules

    Returns:
        模块文件路径；找不到对应文件时返回 None
    """
    if not specifier:
        return None
    if specifier.startswith(("./", "../")) or specifier in (".", "..") or os.path.isabs(specifier):
        base = Path(os.path.normpath(importer.parent / specifier))
        return _probe(base)
    for ancestor in importer.parents:
        package = ancestor / DEPENDENCY_DIR / specifier
        if package.is_dir():
            return _package_entry(package)
        entry = _probe(package)
        if entry is not None:
            return entry
    return None


class DeclarationResolver:
    """计算属性的声明解析器"""

    def __init__(
        self,
        modules: Optional[ModuleCache] = None,
        follow_modules: bool = False,
        debug_dir: Optional[Path] = None,
    ):
        self.modules = modules
        self.follow_modules = follow_modules and modules is not None
        self.debug_dir = debug_dir

    def resolve(self, candidate: MatchCandidate) -> list[DeclarationSite]:
        """返回声明链（按发现顺序）；找不到声明时返回空列表"""
        parts = path_segments(candidate.key)
        if parts is None:
            return []
        unit = candidate.unit
        declarations = self._find_declarations(unit, parts)
        if not declarations:
            logger.debug(
                f"No declaration for {'.'.join(parts)} in {unit.path}, keeping computed path"
            )
            self._dump_tree(unit)
            return []
        chain: list[DeclarationSite] = []
        for declaration in declarations:
            chain.extend(self._declaration_sites(declaration, parts, unit, candidate))
        return chain

    def _find_declarations(self, unit: SourceUnit, parts: list[str]) -> list[SyntaxNode]:
        root = parts[0]

        def declares(node: SyntaxNode) -> bool:
            kind = node.kind
            if kind is NodeKind.VARIABLE_DECLARATOR:
                return root in _declarator_bindings(node)
            if kind is NodeKind.ASSIGNMENT_EXPRESSION and node.operator == "=":
                left = path_segments(node.child("left"))
                return left is not None and left == parts[:len(left)]
            if kind is NodeKind.IMPORT_DECLARATION:
                return any(
                    _local_name(spec) == root for spec in node.children_of("specifiers")
                )
            return False

        return find_nodes(unit.tree, declares)

    def _declaration_sites(
        self,
        declaration: SyntaxNode,
        parts: list[str],
        unit: SourceUnit,
        candidate: MatchCandidate,
    ) -> list[DeclarationSite]:
        kind = declaration.kind
        if kind is NodeKind.VARIABLE_DECLARATOR:
            init = declaration.child("init")
            if init is None:
                return []
            target = declaration.child("id")
            if target is not None and target.kind is NodeKind.IDENTIFIER:
                if is_module_import_call(declaration):
                    return self._module_sites(
                        module_specifier(declaration), parts[1:], unit, init, hops=1
                    )
                return self._value_sites(init, parts[1:], unit, hops=1)
            if target is not None and target.kind is NodeKind.OBJECT_PATTERN:
                key = _pattern_key_for(target, parts[0])
                if key is not None:
                    return self._value_sites(init, [key] + parts[1:], unit, hops=1)
        elif kind is NodeKind.ASSIGNMENT_EXPRESSION:
            left = path_segments(declaration.child("left"))
            return self._value_sites(declaration.child("right"), parts[len(left):], unit, hops=1)
        elif kind is NodeKind.IMPORT_DECLARATION:
            specifier = module_specifier(declaration)
            for spec in declaration.children_of("specifiers"):
                if _local_name(spec) != parts[0]:
                    continue
                export = _imported_name(spec)
                export_path = ([export] if export else []) + parts[1:]
                return self._module_sites(specifier, export_path, unit, declaration, hops=1)
        self._warn(candidate, f"Unsupported declaration {declaration!r} for {'.'.join(parts)}")
        return []

    def _value_sites(
        self,
        expr: Optional[SyntaxNode],
        rest: list[str],
        unit: SourceUnit,
        hops: int,
    ) -> list[DeclarationSite]:
        """表达式的值来源；rest 为仍需取的属性路径"""
        if expr is None:
            return []
        kind = expr.kind
        if kind is NodeKind.UNARY_EXPRESSION and expr.operator == "void":
            return []
        if kind is NodeKind.ASSIGNMENT_EXPRESSION and expr.operator == "=":
            return self._value_sites(expr.child("right"), rest, unit, hops)
        if not rest:
            literal = _literal_value(expr)
            if literal is not None:
                return [DeclarationSite.literal(unit.path, expr.span, literal[0])]
        if is_require_call(expr):
            return self._module_sites(module_specifier(expr), rest, unit, expr, hops)
        if kind is NodeKind.MEMBER_EXPRESSION and is_require_call(expr.child("object")):
            key = property_key(expr.child("property"), expr.computed)
            if key is not None:
                return self._module_sites(
                    module_specifier(expr.child("object")), [key] + rest, unit, expr, hops
                )
        if kind is NodeKind.OBJECT_EXPRESSION and rest:
            value = _object_property(expr, rest[0])
            if value is not None:
                return self._value_sites(value, rest[1:], unit, hops)
        return [DeclarationSite.unresolved(unit.path, expr.span)]

    def _module_sites(
        self,
        specifier: Optional[str],
        export_path: list[str],
        unit: SourceUnit,
        node: SyntaxNode,
        hops: int,
    ) -> list[DeclarationSite]:
        target = resolve_module_path(specifier, unit.path) if specifier else None
        if target is None:
            logger.debug(f"Cannot resolve module {specifier!r} from {unit.path}")
            return [DeclarationSite.unresolved(unit.path, node.span)]
        sites = [DeclarationSite.module_reference(target)]
        if self.follow_modules and hops > 0 and export_path:
            sites.extend(self._export_sites(target, export_path, hops - 1))
        return sites

    def _export_sites(self, target: Path, export_path: list[str], hops: int) -> list[DeclarationSite]:
        module = self.modules.get(target)
        if module is None:
            return []
        sites: list[DeclarationSite] = []
        for value, rest in _find_exports(module, export_path):
            sites.extend(self._value_sites(value, rest, module, hops))
        return sites

    def _warn(self, candidate: MatchCandidate, message: str) -> None:
        logger.warning(f"{candidate.unit.path}: {message}")
        candidate.warnings.append(message)

    def _dump_tree(self, unit: SourceUnit) -> None:
        if self.debug_dir is None:
            return
        name = unit.path.as_posix().strip("/").replace("/", "__") + ".tree.json"
        try:
            self.debug_dir.mkdir(parents=True, exist_ok=True)
            with open(self.debug_dir / name, "w", encoding="utf-8") as f:
                json.dump(unit.tree.raw, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.warning(f"Failed to write debug tree for {unit.path}: {e}")


def _declarator_bindings(node: SyntaxNode) -> set[str]:
    target = node.child("id")
    if target is None:
        return set()
    if target.kind is NodeKind.IDENTIFIER:
        return {target.name}
    if target.kind is NodeKind.OBJECT_PATTERN:
        names = set()
        for prop in target.children_of("properties"):
            if prop.kind is NodeKind.PROPERTY:
                name = pattern_binding_name(prop.child("value"))
                if name:
                    names.add(name)
        return names
    return set()


def _pattern_key_for(pattern: SyntaxNode, local: str) -> Optional[str]:
    """{ KEY: local } 中 local 对应的属性名"""
    for prop in pattern.children_of("properties"):
        if prop.kind is not NodeKind.PROPERTY:
            continue
        if pattern_binding_name(prop.child("value")) == local:
            return property_key(prop.child("key"), prop.computed)
    return None


def _local_name(specifier: SyntaxNode) -> Optional[str]:
    local = specifier.child("local")
    return local.name if local is not None else None


def _imported_name(specifier: SyntaxNode) -> Optional[str]:
    if specifier.kind is NodeKind.IMPORT_DEFAULT_SPECIFIER:
        return "default"
    if specifier.kind is NodeKind.IMPORT_SPECIFIER:
        imported = specifier.child("imported")
        return imported.name if imported is not None else None
    return None


def _literal_value(expr: SyntaxNode) -> Optional[tuple]:
    """字面量的值，包装为单元素元组以区分 null"""
    if expr.kind is NodeKind.LITERAL:
        if expr.attr("regex") is not None:
            return None
        return (expr.value,)
    if expr.kind is NodeKind.TEMPLATE_LITERAL and not expr.children_of("expressions"):
        quasis = expr.children_of("quasis")
        if len(quasis) == 1:
            value = quasis[0].value or {}
            cooked = value.get("cooked")
            return (cooked if cooked is not None else value.get("raw", ""),)
    return None


def _object_property(obj: SyntaxNode, key: str) -> Optional[SyntaxNode]:
    """对象字面量中 key 对应的值，重复键以最后一个为准"""
    found = None
    for prop in obj.children_of("properties"):
        if prop.kind is NodeKind.PROPERTY and property_key(prop.child("key"), prop.computed) == key:
            found = prop.child("value")
    return found


def _find_exports(module: SourceUnit, export_path: list[str]) -> list[tuple[SyntaxNode, list[str]]]:
    """
    在模块中查找导出槽位

    支持 module.exports.X =、exports.X =、module.exports = {...}、
    export const X =、export default {...}

    Returns:
        (值表达式, 剩余属性路径) 列表
    """
    name, rest = export_path[0], export_path[1:]
    commonjs_path = rest if name == "default" else export_path
    results: list[tuple[SyntaxNode, list[str]]] = []

    def is_export(node: SyntaxNode) -> bool:
        return node.kind in (
            NodeKind.ASSIGNMENT_EXPRESSION,
            NodeKind.EXPORT_NAMED_DECLARATION,
            NodeKind.EXPORT_DEFAULT_DECLARATION,
        )

    for node in find_nodes(module.tree, is_export):
        if node.kind is NodeKind.ASSIGNMENT_EXPRESSION:
            if node.operator != "=":
                continue
            left = path_segments(node.child("left"))
            if left is None:
                continue
            for prefix in (_MODULE_EXPORTS, _EXPORTS):
                slot = left[len(prefix):]
                if left[:len(prefix)] != prefix or slot != commonjs_path[:len(slot)]:
                    continue
                if prefix is _EXPORTS and not slot:
                    continue
                results.append((node.child("right"), commonjs_path[len(slot):]))
                break
        elif node.kind is NodeKind.EXPORT_NAMED_DECLARATION:
            declaration = node.child("declaration")
            if declaration is None or declaration.kind is not NodeKind.VARIABLE_DECLARATION:
                continue
            for declarator in declaration.children_of("declarations"):
                target = declarator.child("id")
                if target is not None and target.is_identifier(name):
                    results.append((declarator.child("init"), rest))
        elif name == "default":
            results.append((node.child("declaration"), rest))
    return results
