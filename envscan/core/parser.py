"""
JavaScript 解析器

按顺序尝试多种解析策略：
- esprima 严格 ES module + JSX
- esprima 容错 ES module + JSX
- esprima 容错 script
- tree-sitter JavaScript（ES2018 之后的语法：对象展开、可选链、类字段等）
- tree-sitter TSX（带类型注解的 Flow 风格代码）
- tree-sitter 容错解析，保留语法错误附近的代码
全部失败时抛出 ParseError，由扫描器记录并跳过该文件。
"""

import logging
import re
from dataclasses import dataclass, field

import esprima

from envscan.core.syntax import SyntaxNode
from envscan.core.tree_sitter_adapter import parse_tree

logger = logging.getLogger(__name__)

_HASHBANG = re.compile(r"^#![^\n]*")

ESPRIMA = "esprima"
TREE_SITTER = "tree-sitter"


@dataclass(frozen=True)
class ParseStrategy:
    """
    解析策略

    Attributes:
        name: 策略名称（用于日志）
        source_type: "module" 或 "script"（仅 esprima）
        options: esprima 的额外选项；tree-sitter 为 grammar 与 recover
        engine: "esprima" 或 "tree-sitter"
    """
    name: str
    source_type: str = "module"
    options: dict = field(default_factory=dict)
    engine: str = ESPRIMA


ESPRIMA_STRATEGIES: tuple[ParseStrategy, ...] = (
    ParseStrategy("module", "module", {"jsx": True}),
    ParseStrategy("module-tolerant", "module", {"jsx": True, "tolerant": True}),
    ParseStrategy("script-tolerant", "script", {"tolerant": True}),
)

TREE_SITTER_STRATEGIES: tuple[ParseStrategy, ...] = (
    ParseStrategy("modern", options={"grammar": "javascript"}, engine=TREE_SITTER),
    ParseStrategy("flow", options={"grammar": "tsx"}, engine=TREE_SITTER),
    ParseStrategy("loose", options={"grammar": "javascript", "recover": True}, engine=TREE_SITTER),
)

DEFAULT_STRATEGIES: tuple[ParseStrategy, ...] = ESPRIMA_STRATEGIES + TREE_SITTER_STRATEGIES


class ParseError(Exception):
    """所有解析策略均失败"""

    def __init__(self, attempts: list[tuple[str, str]]):
        self.attempts = attempts
        detail = "; ".join(f"{name}: {reason}" for name, reason in attempts)
        super().__init__(f"Unparsable source ({detail})")


def strip_hashbang(content: str) -> str:
    """将首行 #! 替换为等长空白，保持行列号不变"""
    match = _HASHBANG.match(content)
    if not match:
        return content
    return " " * match.end() + content[match.end():]


def _run_strategy(code: str, strategy: ParseStrategy) -> dict:
    if strategy.engine == TREE_SITTER:
        return parse_tree(
            code,
            grammar=strategy.options.get("grammar", "javascript"),
            recover=strategy.options.get("recover", False),
        )
    options = {"loc": True, "range": True, **strategy.options}
    if strategy.source_type == "script":
        return esprima.parseScript(code, options).toDict()
    return esprima.parseModule(code, options).toDict()


def parse_source(
    content: str,
    strategies: tuple[ParseStrategy, ...] = DEFAULT_STRATEGIES,
) -> tuple[SyntaxNode, str]:
    """
    解析源码

    Returns:
        (语法树根节点, 成功的策略名称)

    Raises:
        ParseError: 所有策略均失败
    """
    code = strip_hashbang(content)
    attempts: list[tuple[str, str]] = []
    for strategy in strategies:
        try:
            tree = _run_strategy(code, strategy)
        except Exception as e:
            logger.debug(f"Parse strategy {strategy.name} failed: {e}")
            attempts.append((strategy.name, str(e)))
            continue
        return SyntaxNode(tree), strategy.name
    raise ParseError(attempts)
