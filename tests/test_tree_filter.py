from envscan.core.scanner.patterns import (
    is_env_alias_candidate,
    is_environment_access,
)
from envscan.core.scanner.tree_filter import find_nodes, tree_filter
from envscan.core.syntax import NodeKind, SyntaxNode

from builders import (
    declaration,
    declarator,
    ident,
    lit,
    member,
    object_pattern,
    process_env,
    program,
    statement,
)


def test_collects_matches_in_source_order():
    tree = SyntaxNode(program(
        statement(member(process_env(), ident("B"))),
        statement(member(process_env(), ident("A"))),
    ))
    result = tree_filter(tree, is_environment_access)
    assert [m.child("property").name for m in result.matches] == ["B", "A"]
    assert result.maybes == []


def test_visits_every_non_leaf_node_once():
    tree = SyntaxNode(program(
        declaration(declarator(ident("a"), member(ident("x"), ident("y")))),
        statement(lit(1)),
    ))
    seen = []

    def record(node):
        seen.append(node.tag)
        return False

    tree_filter(tree, record)
    assert seen == [
        "Program",
        "VariableDeclaration",
        "VariableDeclarator",
        "MemberExpression",
        "ExpressionStatement",
    ]


def test_success_prunes_descent():
    inner = member(process_env(), ident("INNER"))
    outer = member(process_env(), inner, computed=True)
    result = tree_filter(SyntaxNode(statement(outer)), is_environment_access)
    assert len(result.matches) == 1
    assert result.matches[0].child("property").kind is NodeKind.MEMBER_EXPRESSION


def test_maybe_collected_and_pruned():
    alias = declarator(object_pattern("A"), ident("env"))
    tree = SyntaxNode(program(
        declaration(alias),
        statement(member(ident("env"), ident("B"))),
    ))
    result = tree_filter(tree, is_environment_access, maybe=is_env_alias_candidate)
    assert result.matches == []
    assert [m.tag for m in result.maybes] == ["VariableDeclarator", "MemberExpression"]


def test_success_wins_over_maybe():
    access = SyntaxNode(member(process_env(), ident("A")))
    result = tree_filter(access, is_environment_access, maybe=lambda node: True)
    assert result.matches == [access]
    assert result.maybes == []


def test_maybe_on_ancestor_hides_success_below():
    tree = SyntaxNode(statement(member(process_env(), ident("A"))))
    result = tree_filter(tree, is_environment_access, maybe=lambda node: True)
    assert result.matches == []
    assert [m.tag for m in result.maybes] == ["ExpressionStatement"]


def test_leaf_root_yields_nothing():
    assert tree_filter(SyntaxNode(ident("process")), lambda node: True).matches == []
    assert tree_filter(None, lambda node: True).matches == []


def test_deep_nesting_does_not_recurse():
    expr = {"type": "UnaryExpression", "operator": "!", "argument": member(process_env(), ident("DEEP"))}
    for _ in range(5000):
        expr = {"type": "UnaryExpression", "operator": "-", "argument": expr}
    matches = find_nodes(SyntaxNode(statement(expr)), is_environment_access)
    assert [m.child("property").name for m in matches] == ["DEEP"]
