import pytest

from envscan.core.syntax import NodeKind, Span, SyntaxNode

from builders import ident, lit, loc, member, process_env


def test_unknown_tags_map_to_unknown_kind():
    assert NodeKind.from_tag("MemberExpression") is NodeKind.MEMBER_EXPRESSION
    assert NodeKind.from_tag("JSXElement") is NodeKind.UNKNOWN
    assert NodeKind.from_tag(None) is NodeKind.UNKNOWN


def test_rejects_non_node_dicts():
    with pytest.raises(ValueError):
        SyntaxNode({"name": "x"})


def test_children_follow_field_order_and_skip_positions():
    node = SyntaxNode(member(process_env(), ident("FOO")))
    children = list(node.children())
    assert [child.tag for child in children] == ["MemberExpression", "Identifier"]
    assert children[1].name == "FOO"


def test_children_include_list_fields():
    node = SyntaxNode({"type": "ArrayExpression", "elements": [lit("a"), None, ident("b")]})
    assert [child.tag for child in node.children()] == ["Literal", "Identifier"]
    assert len(node.children_of("elements")) == 2


def test_child_by_role():
    node = SyntaxNode(member(ident("a"), ident("b"), computed=True))
    assert node.child("object").name == "a"
    assert node.child("missing") is None
    assert node.computed is True


def test_span_from_loc_and_range():
    span = Span.from_node({"type": "Identifier", "loc": loc(3, 4, 3, 9), "range": [20, 25]})
    assert span == Span(3, 4, 3, 9, 20, 25)
    assert span.to_dict() == {"start": {"line": 3, "column": 4}, "end": {"line": 3, "column": 9}}
    assert Span.from_node({"type": "Identifier"}) is None


def test_text_uses_range_offsets():
    source = "x = a.b;"
    node = SyntaxNode({"type": "MemberExpression", "loc": loc(1, 4, 1, 7), "range": [4, 7]})
    assert node.text(source) == "a.b"
    assert SyntaxNode(ident("a")).text(source) is None


def test_text_does_not_need_loc():
    node = SyntaxNode({"type": "MemberExpression", "range": [4, 7]})
    assert node.span is None
    assert node.text("x = a.b;") == "a.b"
    assert node.text(None) is None


def test_nodes_compare_by_underlying_dict():
    data = ident("a")
    assert SyntaxNode(data) == SyntaxNode(data)
    assert SyntaxNode(data) != SyntaxNode(ident("a"))
    assert len({SyntaxNode(data), SyntaxNode(data)}) == 1
