"""
语法树过滤

可剪枝的深度优先遍历：
- success 命中的节点被收集，不再深入
- maybe 命中的节点进入待定列表，不再深入
- leaves 中的节点类型直接终止
"""

from dataclasses import dataclass, field
from typing import Callable, Optional

from envscan.core.syntax import NodeKind, SyntaxNode

NodePredicate = Callable[[SyntaxNode], bool]

DEFAULT_LEAVES: frozenset[NodeKind] = frozenset({
    NodeKind.IDENTIFIER,
    NodeKind.LITERAL,
    NodeKind.TEMPLATE_ELEMENT,
    NodeKind.THIS_EXPRESSION,
})


@dataclass
class FilterResult:
    """过滤结果，两个列表均按源码顺序"""
    matches: list[SyntaxNode] = field(default_factory=list)
    maybes: list[SyntaxNode] = field(default_factory=list)


def tree_filter(
    root: Optional[SyntaxNode],
    success: NodePredicate,
    maybe: Optional[NodePredicate] = None,
    leaves: frozenset[NodeKind] = DEFAULT_LEAVES,
) -> FilterResult:
    """遍历 root 下所有节点，每个可达节点只访问一次"""
    result = FilterResult()
    if root is None:
        return result
    # 显式栈，避免压缩代码的深层嵌套触发递归上限
    stack = [root]
    while stack:
        node = stack.pop()
        if node.kind in leaves:
            continue
        if success(node):
            result.matches.append(node)
        elif maybe is not None and maybe(node):
            result.maybes.append(node)
        else:
            stack.extend(reversed(list(node.children())))
    return result


def find_nodes(root: Optional[SyntaxNode], predicate: NodePredicate) -> list[SyntaxNode]:
    return tree_filter(root, predicate).matches
