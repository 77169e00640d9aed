"""
记录归一化与聚合

- access_path: 成员访问链的点分文本，如 config.KEY
- to_record: MatchCandidate -> EnvironmentVariableRecord
- aggregate: 按标识去重（保留首个）并排序
"""

from typing import Iterable, Optional

from envscan.core.scanner.models import (
    DeclarationSite,
    EnvironmentVariableRecord,
    MatchCandidate,
    SiteKind,
)
from envscan.core.syntax import NodeKind, SyntaxNode


def access_path(node: SyntaxNode, source: Optional[str] = None) -> str:
    """点分还原访问链，无法点分表示的表达式退回源码文本"""
    kind = node.kind
    if kind is NodeKind.IDENTIFIER:
        return node.name
    if kind is NodeKind.THIS_EXPRESSION:
        return "this"
    if kind is NodeKind.LITERAL:
        return literal_text(node.value)
    if kind is NodeKind.MEMBER_EXPRESSION:
        obj = node.child("object")
        prop = node.child("property")
        if obj is not None and prop is not None:
            return f"{access_path(obj, source)}.{access_path(prop, source)}"
    text = node.text(source)
    if text:
        return " ".join(text.split())
    return f"<{node.tag}>"


def literal_text(value: object) -> str:
    """字面量的文本形式，与 JS 的 String(value) 一致"""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def is_literal_key(key: SyntaxNode, computed: bool) -> bool:
    if key.kind is NodeKind.LITERAL:
        return True
    return not computed and key.kind is NodeKind.IDENTIFIER


def needs_resolution(candidate: MatchCandidate) -> bool:
    return not is_literal_key(candidate.key, candidate.computed)


def resolved_literal(chain: list[DeclarationSite]) -> Optional[str]:
    """
    声明链唯一确定的字面量键名

    链中存在 UNRESOLVED，或出现多个不同的字面量时返回 None。
    """
    values = set()
    for site in chain:
        if site.kind is SiteKind.UNRESOLVED:
            return None
        if site.kind is SiteKind.LITERAL_VALUE:
            value = site.value
            if not isinstance(value, (str, int, float)) or isinstance(value, bool):
                return None
            values.add(literal_text(value))
    if len(values) != 1:
        return None
    return values.pop()


def to_record(
    candidate: MatchCandidate,
    chain: Optional[list[DeclarationSite]] = None,
) -> EnvironmentVariableRecord:
    chain = list(chain or [])
    key = candidate.key
    name: Optional[str] = None
    computed: Optional[str] = None
    if is_literal_key(key, candidate.computed):
        name = key.name if key.kind is NodeKind.IDENTIFIER else literal_text(key.value)
    else:
        name = resolved_literal(chain)
        if name is None:
            computed = access_path(key, candidate.unit.source)
    return EnvironmentVariableRecord(
        reference_file=candidate.unit.path,
        reference_span=candidate.span,
        name=name,
        computed=computed,
        initialized=chain,
        warnings=list(candidate.warnings),
    )


def aggregate(records: Iterable[EnvironmentVariableRecord]) -> list[EnvironmentVariableRecord]:
    """首次出现的记录保留，后续同标识记录丢弃；按标识升序"""
    seen: dict[str, EnvironmentVariableRecord] = {}
    for record in records:
        if record.identity not in seen:
            seen[record.identity] = record
    return sorted(seen.values(), key=lambda record: record.identity)
