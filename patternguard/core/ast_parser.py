"""
AST Parser — Builds the engine's Node facade from Python source.

Parses with the built-in `ast` module and lowers the tree into the canonical
kinds of patternguard.models.node_kinds. Spans are character offsets into the
source. Python's scoping is made explicit for the engine:

  * every name a scope binds (assignment target, loop variable, parameter,
    def/class name, `except ... as`) is preceded by a `declaration` node,
    unless the scope marks the name `global` or `nonlocal`;
  * module-level names, including any name a nested scope marks `global`,
    are declared once at the top of the module;
  * functions and lambdas open function scopes, classes open block scopes.

Comments cannot be seen through `ast`, so suppression markers are read with
`tokenize` and appended to the module as `suppression` nodes:

    x = 1  # patternguard: disable=global-mutable-write
    # patternguard: disable-next-line
    # patternguard: disable-file=duplicate-logic
"""

from __future__ import annotations

import ast
import io
import logging
import re
import tokenize

from patternguard.config import settings
from patternguard.models import node_kinds as K
from patternguard.models.ast_models import Node, ScopeKind, Span, SyntaxTree

logger = logging.getLogger("patternguard.ast_parser")

PYTHON_SCOPE_KINDS: dict[str, ScopeKind] = {
    K.MODULE: ScopeKind.MODULE,
    K.FUNCTION_DEF: ScopeKind.FUNCTION,
    K.LAMBDA: ScopeKind.FUNCTION,
    K.CLASS_DEF: ScopeKind.BLOCK,
}
PYTHON_DECLARING_KINDS = frozenset({K.DECLARATION, K.PARAMETER})
PYTHON_SUPPRESSION_KINDS = frozenset({K.SUPPRESSION})

_COMPARE_OPS: dict[type, str] = {
    ast.Eq: "==",
    ast.NotEq: "!=",
    ast.Lt: "<",
    ast.LtE: "<=",
    ast.Gt: ">",
    ast.GtE: ">=",
    ast.Is: "is",
    ast.IsNot: "is not",
    ast.In: "in",
    ast.NotIn: "not in",
}

_SCOPE_NODES = (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef, ast.Lambda)


def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


class _Offsets:
    """Maps ast (line, utf-8 byte column) positions to character offsets."""

    def __init__(self, source: str) -> None:
        self.source = source
        self.lines = source.split("\n")
        self.starts: list[int] = []
        pos = 0
        for line in self.lines:
            self.starts.append(pos)
            pos += len(line) + 1

    def offset(self, lineno: int, col: int) -> int:
        if lineno < 1:
            return 0
        if lineno > len(self.lines):
            return len(self.source)
        line = self.lines[lineno - 1]
        chars = len(line.encode("utf-8")[:col].decode("utf-8", errors="ignore"))
        return min(self.starts[lineno - 1] + chars, len(self.source))

    def line_span(self, lineno: int) -> Span | None:
        if lineno < 1 or lineno > len(self.lines):
            return None
        start = self.starts[lineno - 1]
        return Span(start=start, end=start + len(self.lines[lineno - 1].rstrip("\r")))


class _NodeBuilder:
    """Lowers a Python `ast` tree into Node objects."""

    def __init__(self, source: str) -> None:
        self.source = source
        self.offsets = _Offsets(source)
        # Names not declared at their binding site, innermost scope last. The
        # module entry holds the names declared up front by module().
        self._not_local: list[set[str]] = [set()]

    # ── Helpers ──

    def span(self, node: ast.AST) -> Span | None:
        lineno = getattr(node, "lineno", None)
        end_lineno = getattr(node, "end_lineno", None)
        if lineno is None or end_lineno is None:
            return None
        start = self.offsets.offset(lineno, node.col_offset)
        end = self.offsets.offset(end_lineno, node.end_col_offset or 0)
        return Span(start=start, end=max(start, end))

    def located(self, node: ast.AST) -> Span:
        """Span of a node that always carries a position (statements, args, handlers)."""
        span = self.span(node)
        if span is None:
            raise ValueError(f"{type(node).__name__} node has no source position")
        return span

    def make(
        self,
        kind: str,
        span: Span,
        children: list[Node] | tuple[Node, ...] = (),
        value: str | None = None,
    ) -> Node:
        return Node(kind=kind, span=span, children=tuple(children), value=value, source=self.source)

    @staticmethod
    def cover(nodes: list[Node], fallback: int) -> Span:
        if not nodes:
            return Span(start=fallback, end=fallback)
        return Span(
            start=min(n.span.start for n in nodes),
            end=max(n.span.end for n in nodes),
        )

    def declare(self, name: str, span: Span) -> list[Node]:
        if name in self._not_local[-1]:
            return []
        return [self.make(K.DECLARATION, span, value=name)]

    def declare_targets(self, target: ast.AST) -> list[Node]:
        """Declarations for every plain name bound by an assignment target."""
        decls: list[Node] = []
        if isinstance(target, ast.Name):
            span = self.span(target)
            if span is not None:
                decls.extend(self.declare(target.id, span))
        elif isinstance(target, (ast.Tuple, ast.List)):
            for elt in target.elts:
                decls.extend(self.declare_targets(elt))
        elif isinstance(target, ast.Starred):
            decls.extend(self.declare_targets(target.value))
        return decls

    @staticmethod
    def scope_globals(node: ast.AST) -> set[str]:
        """Names declared global/nonlocal directly in this scope's body."""
        names: set[str] = set()
        stack = list(ast.iter_child_nodes(node))
        while stack:
            child = stack.pop()
            if isinstance(child, (ast.Global, ast.Nonlocal)):
                names.update(child.names)
            elif not isinstance(child, _SCOPE_NODES):
                stack.extend(ast.iter_child_nodes(child))
        return names

    def identifier(self, node: ast.AST, name: str, keyword: str, start: int) -> Node:
        pattern = re.compile(rf"\b{keyword}\s+({re.escape(name)})\b")
        m = pattern.search(self.source, start)
        if m is None:
            span = Span(start=start, end=start)
        else:
            span = Span(start=m.start(1), end=m.end(1))
        return self.make(K.IDENTIFIER, span, value=name)

    # ── Dispatch ──

    def any(self, node: ast.AST) -> list[Node]:
        if isinstance(node, ast.stmt):
            return self.stmt(node)
        if isinstance(node, ast.expr):
            return self.expr(node)
        return self.generic(node)

    def generic(self, node: ast.AST) -> list[Node]:
        children: list[Node] = []
        for child in ast.iter_child_nodes(node):
            children.extend(self.any(child))
        span = self.span(node)
        if span is None:
            return children
        return [self.make(_snake(type(node).__name__), span, children)]

    def module(self, tree: ast.Module) -> list[Node]:
        """
        Lower the module body behind one declaration per module-level name.

        Python binds a module name for the whole module, so functions defined
        above the binding (or naming it only in a `global` statement) still
        resolve to the module frame.
        """
        bindings = self.module_bindings(tree)
        hoisted = [self.make(K.DECLARATION, span, value=name) for name, span in bindings.items()]
        self._not_local[0] = set(bindings)
        return [*hoisted, *self.statements(tree.body)]

    def module_bindings(self, tree: ast.Module) -> dict[str, Span]:
        """Every name bound in module scope, with the span of its first binding."""
        found: list[tuple[str, Span]] = []
        stack: list[ast.AST] = list(tree.body)
        while stack:
            node = stack.pop()
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
                keyword = "class" if isinstance(node, ast.ClassDef) else "def"
                start = self.located(node).start
                found.append((node.name, self.identifier(node, node.name, keyword, start).span))
                continue
            if isinstance(node, ast.Lambda):
                continue
            if isinstance(node, ast.comprehension):
                # comprehension targets are local to the comprehension
                stack.extend([node.iter, *node.ifs])
                continue
            if isinstance(node, ast.Name) and isinstance(node.ctx, ast.Store):
                found.append((node.id, self.located(node)))
            elif isinstance(node, ast.ExceptHandler) and node.name:
                found.append((node.name, self.located(node)))
            stack.extend(ast.iter_child_nodes(node))

        # `global` in any nested scope binds in the module
        for node in ast.walk(tree):
            if isinstance(node, ast.Global):
                found.extend((name, self.located(node)) for name in node.names)

        bindings: dict[str, Span] = {}
        for name, span in sorted(found, key=lambda item: item[1].start):
            bindings.setdefault(name, span)
        return bindings

    def statements(self, body: list[ast.stmt]) -> list[Node]:
        nodes: list[Node] = []
        for stmt in body:
            nodes.extend(self.stmt(stmt))
        return nodes

    def block(self, body: list[ast.stmt], kind: str = K.BLOCK) -> list[Node]:
        if not body:
            return []
        children = self.statements(body)
        first, last = self.span(body[0]), self.span(body[-1])
        if first is None or last is None:
            span = self.cover(children, 0)
        else:
            span = Span(start=first.start, end=last.end)
        return [self.make(kind, span, children)]

    def stmt(self, node: ast.stmt) -> list[Node]:
        handler = getattr(self, f"_stmt_{type(node).__name__}", None)
        if handler is None:
            return self.generic(node)
        return handler(node)

    def expr(self, node: ast.expr | None) -> list[Node]:
        if node is None:
            return []
        handler = getattr(self, f"_expr_{type(node).__name__}", None)
        if handler is None:
            return self.generic(node)
        return handler(node)

    # ── Definitions ──

    def _function(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> list[Node]:
        span = self.located(node)
        ident = self.identifier(node, node.name, "def", span.start)
        decls = self.declare(node.name, ident.span)

        self._not_local.append(self.scope_globals(node))
        try:
            children: list[Node] = [ident, self.parameters(node.args, ident.span.end)]
            if node.returns is not None:
                returns_span = self.span(node.returns)
                if returns_span is not None:
                    children.append(self.make(K.ANNOTATION, returns_span, self.expr(node.returns)))
            children.extend(self.block(node.body))
        finally:
            self._not_local.pop()

        return [*decls, self.make(K.FUNCTION_DEF, span, children, value=node.name)]

    _stmt_FunctionDef = _function
    _stmt_AsyncFunctionDef = _function

    def _stmt_ClassDef(self, node: ast.ClassDef) -> list[Node]:
        span = self.located(node)
        ident = self.identifier(node, node.name, "class", span.start)
        decls = self.declare(node.name, ident.span)

        children: list[Node] = [ident]
        for base in node.bases:
            children.extend(self.expr(base))
        self._not_local.append(self.scope_globals(node))
        try:
            children.extend(self.block(node.body))
        finally:
            self._not_local.pop()

        return [*decls, self.make(K.CLASS_DEF, span, children, value=node.name)]

    def parameters(self, args: ast.arguments, fallback: int) -> Node:
        positional = [*args.posonlyargs, *args.args]
        pad = len(positional) - len(args.defaults)
        pairs: list[tuple[ast.arg, ast.expr | None]] = [
            (arg, args.defaults[i - pad] if i >= pad else None)
            for i, arg in enumerate(positional)
        ]
        if args.vararg is not None:
            pairs.append((args.vararg, None))
        pairs.extend(zip(args.kwonlyargs, args.kw_defaults))
        if args.kwarg is not None:
            pairs.append((args.kwarg, None))

        params = [self.parameter(arg, default) for arg, default in pairs]
        return self.make(K.PARAMETERS, self.cover(params, fallback), params)

    def parameter(self, arg: ast.arg, default: ast.expr | None) -> Node:
        span = self.located(arg)
        children: list[Node] = []
        if arg.annotation is not None:
            ann_span = self.span(arg.annotation)
            if ann_span is not None:
                children.append(self.make(K.ANNOTATION, ann_span, self.expr(arg.annotation)))
        if default is not None:
            default_span = self.span(default)
            if default_span is not None:
                children.append(self.make(K.DEFAULT, default_span, self.expr(default)))
                span = Span(start=span.start, end=max(span.end, default_span.end))
        return self.make(K.PARAMETER, span, children, value=arg.arg)

    # ── Statements ──

    def _stmt_If(self, node: ast.If) -> list[Node]:
        children = [*self.expr(node.test), *self.block(node.body)]
        children.extend(self.block(node.orelse, kind=K.ELSE))
        return [self.make(K.IF, self.span(node), children)]

    def _loop(self, node: ast.For | ast.AsyncFor) -> list[Node]:
        children = [
            *self.expr(node.target),
            *self.expr(node.iter),
            *self.declare_targets(node.target),
            *self.block(node.body),
            *self.block(node.orelse, kind=K.ELSE),
        ]
        return [self.make(K.FOR, self.span(node), children)]

    _stmt_For = _loop
    _stmt_AsyncFor = _loop

    def _stmt_While(self, node: ast.While) -> list[Node]:
        children = [
            *self.expr(node.test),
            *self.block(node.body),
            *self.block(node.orelse, kind=K.ELSE),
        ]
        return [self.make(K.WHILE, self.span(node), children)]

    def _with(self, node: ast.With | ast.AsyncWith) -> list[Node]:
        children: list[Node] = []
        for item in node.items:
            children.extend(self.expr(item.context_expr))
            if item.optional_vars is not None:
                children.extend(self.expr(item.optional_vars))
                children.extend(self.declare_targets(item.optional_vars))
        children.extend(self.block(node.body))
        return [self.make(K.WITH, self.span(node), children)]

    _stmt_With = _with
    _stmt_AsyncWith = _with

    def _try(self, node: ast.Try) -> list[Node]:
        children = [*self.block(node.body)]
        for handler in node.handlers:
            handler_span = self.located(handler)
            handler_children = [*self.expr(handler.type)]
            if handler.name:
                handler_children.extend(self.declare(handler.name, handler_span))
            handler_children.extend(self.block(handler.body))
            children.append(self.make(K.EXCEPT, handler_span, handler_children))
        children.extend(self.block(node.orelse, kind=K.ELSE))
        children.extend(self.block(node.finalbody))
        return [self.make(K.TRY, self.span(node), children)]

    _stmt_Try = _try
    _stmt_TryStar = _try

    def _stmt_Return(self, node: ast.Return) -> list[Node]:
        return [self.make(K.RETURN, self.span(node), self.expr(node.value))]

    def _stmt_Assign(self, node: ast.Assign) -> list[Node]:
        decls: list[Node] = []
        targets: list[Node] = []
        for target in node.targets:
            decls.extend(self.declare_targets(target))
            targets.extend(self.expr(target))
        assignment = self.make(K.ASSIGNMENT, self.span(node), [*targets, *self.expr(node.value)])
        return [*decls, assignment]

    def _stmt_AnnAssign(self, node: ast.AnnAssign) -> list[Node]:
        decls = self.declare_targets(node.target)
        children = [*self.expr(node.target), *self.expr(node.value)]
        return [*decls, self.make(K.ASSIGNMENT, self.span(node), children)]

    def _stmt_AugAssign(self, node: ast.AugAssign) -> list[Node]:
        # `x += 1` binds x in the current scope unless it is marked global
        decls = self.declare_targets(node.target)
        children = [*self.expr(node.target), *self.expr(node.value)]
        op = _snake(type(node.op).__name__)
        return [*decls, self.make(K.AUGMENTED_ASSIGNMENT, self.span(node), children, value=op)]

    def _scope_names(self, node: ast.Global | ast.Nonlocal) -> list[Node]:
        span = self.span(node)
        return [self.make(K.GLOBAL_DECLARATION, span, value=name) for name in node.names]

    _stmt_Global = _scope_names
    _stmt_Nonlocal = _scope_names

    def _stmt_Import(self, node: ast.Import) -> list[Node]:
        span = self.span(node)
        return [self.make(K.IMPORT, span, value=alias.name) for alias in node.names]

    def _stmt_ImportFrom(self, node: ast.ImportFrom) -> list[Node]:
        module = "." * node.level + (node.module or "")
        return [self.make(K.IMPORT, self.span(node), value=module)]

    def _stmt_Expr(self, node: ast.Expr) -> list[Node]:
        return self.expr(node.value)

    # ── Expressions ──

    def _expr_Name(self, node: ast.Name) -> list[Node]:
        return [self.make(K.NAME, self.span(node), value=node.id)]

    def _expr_Attribute(self, node: ast.Attribute) -> list[Node]:
        return [self.make(K.ATTRIBUTE, self.span(node), self.expr(node.value), value=node.attr)]

    def _expr_Call(self, node: ast.Call) -> list[Node]:
        children = [*self.expr(node.func)]
        for arg in node.args:
            children.extend(self.expr(arg))
        for keyword in node.keywords:
            children.extend(self.expr(keyword.value))
        return [self.make(K.CALL, self.span(node), children)]

    def _expr_UnaryOp(self, node: ast.UnaryOp) -> list[Node]:
        operand = self.expr(node.operand)
        if isinstance(node.op, ast.Not):
            return [self.make(K.UNARY_NOT, self.span(node), operand)]
        return [self.make(K.UNARY_OP, self.span(node), operand, value=_snake(type(node.op).__name__))]

    def _expr_Compare(self, node: ast.Compare) -> list[Node]:
        children = [*self.expr(node.left)]
        for comparator in node.comparators:
            children.extend(self.expr(comparator))
        ops = " ".join(_COMPARE_OPS.get(type(op), "?") for op in node.ops)
        return [self.make(K.COMPARE, self.span(node), children, value=ops)]

    def _expr_BoolOp(self, node: ast.BoolOp) -> list[Node]:
        children: list[Node] = []
        for value in node.values:
            children.extend(self.expr(value))
        op = "and" if isinstance(node.op, ast.And) else "or"
        return [self.make(K.BOOL_OP, self.span(node), children, value=op)]

    def _expr_BinOp(self, node: ast.BinOp) -> list[Node]:
        children = [*self.expr(node.left), *self.expr(node.right)]
        return [self.make(K.BINARY_OP, self.span(node), children, value=_snake(type(node.op).__name__))]

    def _expr_Constant(self, node: ast.Constant) -> list[Node]:
        return [self.make(K.CONSTANT, self.span(node), value=repr(node.value))]

    def _expr_Subscript(self, node: ast.Subscript) -> list[Node]:
        children = [*self.expr(node.value), *self.expr(node.slice)]
        return [self.make(K.SUBSCRIPT, self.span(node), children)]

    def _sequence(self, node: ast.Tuple | ast.List) -> list[Node]:
        children: list[Node] = []
        for elt in node.elts:
            children.extend(self.expr(elt))
        kind = K.TUPLE if isinstance(node, ast.Tuple) else K.LIST
        return [self.make(kind, self.span(node), children)]

    _expr_Tuple = _sequence
    _expr_List = _sequence

    def _expr_Starred(self, node: ast.Starred) -> list[Node]:
        return [self.make(K.STARRED, self.span(node), self.expr(node.value))]

    def _expr_IfExp(self, node: ast.IfExp) -> list[Node]:
        children = [*self.expr(node.test), *self.expr(node.body), *self.expr(node.orelse)]
        return [self.make(K.IF_EXP, self.span(node), children)]

    def _expr_NamedExpr(self, node: ast.NamedExpr) -> list[Node]:
        decls = self.declare_targets(node.target)
        children = [*self.expr(node.target), *self.expr(node.value)]
        return [*decls, self.make(K.ASSIGNMENT, self.span(node), children)]

    def _expr_Lambda(self, node: ast.Lambda) -> list[Node]:
        span = self.located(node)
        self._not_local.append(set())
        try:
            children = [self.parameters(node.args, span.start), *self.expr(node.body)]
        finally:
            self._not_local.pop()
        return [self.make(K.LAMBDA, span, children)]


# ── Suppression comments ──


def _suppression_pattern(marker: str) -> re.Pattern[str]:
    return re.compile(
        rf"#\s*{re.escape(marker)}:\s*"
        r"(?P<directive>disable-next-line|disable-file|disable)"
        r"(?:\s*=\s*(?P<rules>[\w\-]+(?:\s*,\s*[\w\-]+)*))?"
    )


def _suppression_nodes(source: str, offsets: _Offsets, marker: str) -> list[Node]:
    pattern = _suppression_pattern(marker)
    whole_file = Span(start=0, end=len(source))
    nodes: list[Node] = []
    try:
        for tok in tokenize.generate_tokens(io.StringIO(source).readline):
            if tok.type != tokenize.COMMENT:
                continue
            m = pattern.search(tok.string)
            if m is None:
                continue
            directive = m["directive"]
            lineno = tok.start[0]
            if directive == "disable-file":
                span = whole_file
            elif directive == "disable-next-line":
                span = offsets.line_span(lineno + 1)
            else:
                span = offsets.line_span(lineno)
            if span is None:
                continue
            rules: list[str | None] = (
                [r.strip() for r in m["rules"].split(",")] if m["rules"] else [None]
            )
            for rule_id in rules:
                nodes.append(
                    Node(kind=K.SUPPRESSION, span=span, value=rule_id, source=source)
                )
    except (tokenize.TokenError, SyntaxError) as e:
        logger.warning(f"Could not scan comments for suppressions: {e}")
    return nodes


# ── Entry points ──


def _tree(root: Node, source: str, file_path: str, parse_errors: list[str]) -> SyntaxTree:
    return SyntaxTree(
        root=root,
        source=source,
        file_path=file_path,
        language="python",
        scope_kinds=PYTHON_SCOPE_KINDS,
        declaring_kinds=PYTHON_DECLARING_KINDS,
        suppression_kinds=PYTHON_SUPPRESSION_KINDS,
        parse_errors=tuple(parse_errors),
    )


def parse_python(
    source: str,
    file_path: str = "<unknown>",
    marker: str | None = None,
) -> SyntaxTree:
    """
    Parse Python source code into the engine's SyntaxTree.

    Args:
        source: Python source code string.
        file_path: Path to the source file (for reference in output).
        marker: Suppression comment marker; defaults to settings.suppression_marker.

    Returns:
        SyntaxTree rooted at a `module` node. On a syntax error the root has no
        children and parse_errors says why.
    """
    root_span = Span(start=0, end=len(source))
    try:
        tree = ast.parse(source, filename=file_path)
    except SyntaxError as e:
        logger.warning(f"{file_path}: cannot parse: {e.msg} (line {e.lineno})")
        root = Node(kind=K.MODULE, span=root_span, source=source)
        return _tree(root, source, file_path, [f"SyntaxError at line {e.lineno}: {e.msg}"])

    builder = _NodeBuilder(source)
    children = builder.module(tree)
    children.extend(
        _suppression_nodes(source, builder.offsets, marker or settings.suppression_marker)
    )
    root = Node(kind=K.MODULE, span=root_span, children=tuple(children), source=source)
    return _tree(root, source, file_path, [])


def parse_file(source: str, file_path: str) -> SyntaxTree:
    """
    Parse a source file based on its extension.

    Only Python is bundled; other languages need an external adapter that
    produces the same facade.
    """
    if not file_path.endswith((".py", ".pyi")) and "." in file_path.rsplit("/", 1)[-1]:
        root = Node(kind=K.MODULE, span=Span(start=0, end=len(source)), source=source)
        return SyntaxTree(
            root=root,
            source=source,
            file_path=file_path,
            language="unknown",
            parse_errors=(f"No bundled parser for '{file_path}'",),
        )
    return parse_python(source, file_path)
