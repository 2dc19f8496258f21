"""
Tests for the Python AST adapter — node layout, spans, declarations, suppressions.
"""

from patternguard.core.ast_parser import parse_file, parse_python
from patternguard.models import node_kinds as K


def find_all(tree, kind, value=None):
    return [
        n for n in tree.root.descendants()
        if n.kind == kind and (value is None or n.value == value)
    ]


def test_parse_clean_code(clean_python_code):
    tree = parse_python(clean_python_code, "clean.py")
    assert tree.language == "python"
    assert tree.file_path == "clean.py"
    assert tree.parse_errors == ()
    assert tree.root.kind == K.MODULE
    assert tree.root.span.key == (0, len(clean_python_code))


def test_function_layout(clean_python_code):
    tree = parse_python(clean_python_code, "clean.py")
    add = find_all(tree, K.FUNCTION_DEF, "add")[0]

    identifier = add.child(K.IDENTIFIER)
    assert identifier.text == "add"

    params = add.child(K.PARAMETERS).children_of(K.PARAMETER)
    assert [p.value for p in params] == ["a", "b"]
    assert params[0].text == "a: int"
    assert params[0].child(K.ANNOTATION).children[0].value == "int"

    body = add.child(K.BLOCK)
    assert [n.kind for n in body.children] == [K.CONSTANT, K.RETURN]


def test_module_names_declared_up_front(clean_python_code):
    tree = parse_python(clean_python_code, "clean.py")
    module_level = [(n.kind, n.value) for n in tree.root.children]
    assert module_level == [
        (K.DECLARATION, "add"),
        (K.DECLARATION, "greet"),
        (K.FUNCTION_DEF, "add"),
        (K.FUNCTION_DEF, "greet"),
    ]
    assert tree.root.children[0].text == "add"


def test_module_binding_after_use_is_declared_first():
    source = "def bump():\n    global counter\n    counter += 1\n\ncounter = 0\n"
    tree = parse_python(source)
    first = tree.root.children[0]
    assert (first.kind, first.value) == (K.DECLARATION, "bump")
    counter = tree.root.children[1]
    assert (counter.kind, counter.value) == (K.DECLARATION, "counter")
    assert counter.span.start == source.index("global counter")
    assert [d.value for d in find_all(tree, K.DECLARATION)] == ["bump", "counter"]


def test_global_only_name_declared_in_module():
    tree = parse_python("def init():\n    global _conn\n    _conn = object()\n")
    assert [d.value for d in tree.root.children_of(K.DECLARATION)] == ["init", "_conn"]


def test_comprehension_target_not_a_module_name():
    tree = parse_python("names = [n for n in range(3)]\n")
    assert [d.value for d in find_all(tree, K.DECLARATION)] == ["names"]


def test_defaults_align_with_trailing_parameters():
    tree = parse_python("def f(a, b=1, *, c=True):\n    pass\n")
    params = {p.value: p for p in find_all(tree, K.PARAMETER)}
    assert params["a"].child(K.DEFAULT) is None
    assert params["b"].child(K.DEFAULT).children[0].value == "1"
    assert params["c"].child(K.DEFAULT).children[0].value == "True"
    assert params["c"].text == "c=True"


def test_spans_are_character_offsets():
    source = 'name = "héllo"; value = 1\n'
    tree = parse_python(source)
    value = find_all(tree, K.NAME, "value")[0]
    assert value.text == "value"
    assert value.span.start == source.index("value")


def test_global_statement_suppresses_local_declaration():
    source = "x = 1\n\ndef f():\n    global x\n    x = 2\n"
    tree = parse_python(source)
    body = find_all(tree, K.FUNCTION_DEF, "f")[0].child(K.BLOCK)
    assert [n.kind for n in body.children] == [K.GLOBAL_DECLARATION, K.ASSIGNMENT]
    assert [d.value for d in find_all(tree, K.DECLARATION)] == ["x", "f"]


def test_augmented_assignment_declares_local():
    tree = parse_python("def f():\n    total = 0\n    total += 1\n")
    body = find_all(tree, K.FUNCTION_DEF, "f")[0].child(K.BLOCK)
    assert [n.kind for n in body.children] == [
        K.DECLARATION,
        K.ASSIGNMENT,
        K.DECLARATION,
        K.AUGMENTED_ASSIGNMENT,
    ]


def test_local_assignment_declared():
    tree = parse_python("def f():\n    a, *rest = [1, 2]\n")
    body = find_all(tree, K.FUNCTION_DEF, "f")[0].child(K.BLOCK)
    assert [(n.kind, n.value) for n in body.children[:2]] == [
        (K.DECLARATION, "a"),
        (K.DECLARATION, "rest"),
    ]


def test_loop_and_with_targets_declared():
    source = "def f(paths):\n    for p in paths:\n        with open(p) as fh:\n            pass\n"
    tree = parse_python(source)
    assert {d.value for d in find_all(tree, K.DECLARATION)} == {"f", "p", "fh"}


def test_if_else_layout():
    source = "if a:\n    x = 1\nelif b:\n    x = 2\n"
    tree = parse_python(source)
    outer = find_all(tree, K.IF)[0]
    assert tree.root.children[0].value == "x"
    assert [c.kind for c in outer.children] == [K.NAME, K.BLOCK, K.ELSE]
    assert outer.children[2].children[0].kind == K.IF


def test_compare_and_not_payloads():
    tree = parse_python("ok = x is not None and not y\n")
    compare = find_all(tree, K.COMPARE)[0]
    assert compare.value == "is not"
    assert find_all(tree, K.BOOL_OP)[0].value == "and"
    assert find_all(tree, K.UNARY_NOT)[0].children[0].value == "y"


def test_lambda_has_parameters():
    tree = parse_python("f = lambda x, y=2: x + y\n")
    lam = find_all(tree, K.LAMBDA)[0]
    assert [p.value for p in lam.child(K.PARAMETERS).children] == ["x", "y"]


def test_syntax_error_gives_root_only_tree():
    source = "def broken(:\n"
    tree = parse_python(source, "broken.py")
    assert tree.parse_errors
    assert "SyntaxError" in tree.parse_errors[0]
    assert tree.root.children == ()
    assert tree.root.span.key == (0, len(source))


def test_suppression_on_same_line():
    source = "x = 1  # patternguard: disable=global-mutable-write, flag-argument\ny = 2\n"
    tree = parse_python(source)
    suppressions = find_all(tree, K.SUPPRESSION)
    assert [s.value for s in suppressions] == ["global-mutable-write", "flag-argument"]
    line_end = source.index("\n")
    assert all(s.span.key == (0, line_end) for s in suppressions)


def test_suppression_next_line():
    source = "# patternguard: disable-next-line\nx = 1\n"
    tree = parse_python(source)
    (suppression,) = find_all(tree, K.SUPPRESSION)
    assert suppression.value is None
    assert suppression.text == "x = 1"


def test_suppression_whole_file():
    source = "# patternguard: disable-file=deep-nesting\nx = 1\n"
    tree = parse_python(source)
    (suppression,) = find_all(tree, K.SUPPRESSION)
    assert suppression.value == "deep-nesting"
    assert suppression.span == tree.root.span


def test_custom_suppression_marker():
    source = "x = 1  # lint: disable\n"
    assert find_all(parse_python(source), K.SUPPRESSION) == []
    assert len(find_all(parse_python(source, marker="lint"), K.SUPPRESSION)) == 1


def test_tree_vocabulary():
    tree = parse_python("pass\n")
    assert K.FUNCTION_DEF in tree.scope_kinds
    assert K.LAMBDA in tree.scope_kinds
    assert tree.declaring_kinds == {K.DECLARATION, K.PARAMETER}
    assert tree.suppression_kinds == {K.SUPPRESSION}


def test_parse_file_rejects_unsupported_language():
    tree = parse_file("let x = 1;", "main.js")
    assert tree.language == "unknown"
    assert tree.parse_errors
    assert tree.root.children == ()


def test_parse_file_python():
    tree = parse_file("x = 1\n", "pkg/module.py")
    assert tree.language == "python"
    assert tree.parse_errors == ()
