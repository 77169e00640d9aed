"""Hand-built ESTree dicts for tests that do not need the parser."""


def loc(line=1, column=0, end_line=None, end_column=None):
    return {
        "start": {"line": line, "column": column},
        "end": {"line": end_line or line, "column": end_column if end_column is not None else column + 1},
    }


def ident(name, line=1, column=0):
    return {"type": "Identifier", "name": name, "loc": loc(line, column)}


def lit(value, line=1, column=0):
    return {"type": "Literal", "value": value, "raw": repr(value), "loc": loc(line, column)}


def member(obj, prop, computed=False, line=1, column=0):
    return {
        "type": "MemberExpression",
        "computed": computed,
        "object": obj,
        "property": prop,
        "loc": loc(line, column),
    }


def process_env(line=1, column=0):
    return member(ident("process"), ident("env"), line=line, column=column)


def prop(key, value=None, computed=False):
    return {
        "type": "Property",
        "key": key,
        "value": value if value is not None else dict(key),
        "computed": computed,
        "shorthand": value is None,
        "kind": "init",
        "method": False,
        "loc": key.get("loc"),
    }


def object_pattern(*names):
    return {"type": "ObjectPattern", "properties": [prop(ident(name)) for name in names]}


def declarator(target, init, line=1):
    return {"type": "VariableDeclarator", "id": target, "init": init, "loc": loc(line)}


def declaration(*declarators):
    return {"type": "VariableDeclaration", "kind": "const", "declarations": list(declarators)}


def call(callee, *args):
    return {"type": "CallExpression", "callee": callee, "arguments": list(args)}


def statement(expression):
    return {"type": "ExpressionStatement", "expression": expression}


def program(*body):
    return {"type": "Program", "sourceType": "module", "body": list(body)}
