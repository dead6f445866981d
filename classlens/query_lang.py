"""
Mini query language (ad hoc filtering)
======================================

Backs the CLI `where` command. Examples:
- where checkins greater 50 and day equals Monday
- where teacher contains "jane" or (class starts "Studio Barre" and revenue > 1000)
- where date after 2024-01-01 and location in "Kwality House, Supreme HQ"

Each comparison compiles to a `FieldFilter`; AND/OR/parentheses combine them.

Grammar:
    expr       := term (OR term)*
    term       := factor (AND factor)*
    factor     := "(" expr ")" | comparison
    comparison := IDENT OP VALUE
    OP         := == | = | > | <
                | contains | equals | starts | ends | greater | less
                | after | before | on | in
    VALUE      := date | number | quoted string | bareword
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional
import re

from .errors import QueryParseError
from .models import Slot, SlotField
from .query import FieldFilter, Operator


_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<LPAREN>\() |
        (?P<RPAREN>\)) |
        (?P<OP>==|=|>|<) |
        (?P<KW>\b(?:AND|OR|contains|equals|starts|ends|greater|less|after|before|on|in)(?=[\s("']|$)) |
        (?P<DATE>\d{4}-\d{2}-\d{2}) |
        (?P<NUMBER>-?\d+(?:\.\d+)?) |
        (?P<STRING>"([^"\\]|\\.)*"|'([^'\\]|\\.)*') |
        (?P<IDENT>[A-Za-z_][A-Za-z0-9_'/:!-]*)
    )\s*
    """,
    re.VERBOSE | re.IGNORECASE
)

@dataclass(frozen=True)
class Token:
    kind: str
    value: str

def tokenize(s: str) -> List[Token]:
    """Turn an expression string into tokens."""
    pos = 0
    out: List[Token] = []
    s = s.strip()
    while pos < len(s):
        m = _TOKEN_RE.match(s, pos)
        if not m or m.end() == pos:
            raise QueryParseError(f"Unexpected character near: {s[pos:pos+20]!r}")
        pos = m.end()
        if m.group("STRING") is not None:
            out.append(Token("STRING", m.group("STRING")))
            continue
        for kind in ("LPAREN", "RPAREN", "OP", "KW", "DATE", "NUMBER", "IDENT"):
            val = m.group(kind)
            if val is None:
                continue
            if kind == "KW":
                v = val.lower()
                if v in ("and", "or"):
                    out.append(Token(v.upper(), v.upper()))
                else:
                    out.append(Token("OP", v))
            else:
                out.append(Token(kind, val))
            break
    return out

# AST nodes
@dataclass(frozen=True)
class Node: ...

@dataclass(frozen=True)
class And(Node):
    left: Node
    right: Node

@dataclass(frozen=True)
class Or(Node):
    left: Node
    right: Node

@dataclass(frozen=True)
class Cmp(Node):
    filter: FieldFilter

def parse(expr: str) -> Node:
    toks = tokenize(expr)
    if not toks:
        raise QueryParseError("Empty expression")
    p = _Parser(toks)
    node = p.parse_expr()
    if not p.at_end():
        raise QueryParseError(f"Unexpected token: {p.peek().value}")
    return node

class _Parser:
    def __init__(self, toks: List[Token]) -> None:
        self.toks = toks
        self.i = 0

    def at_end(self) -> bool:
        return self.i >= len(self.toks)

    def peek(self) -> Token:
        return self.toks[self.i]

    def take(self, kind: str) -> Token:
        if self.at_end():
            raise QueryParseError(f"Expected {kind}, got end of input")
        t = self.peek()
        if t.kind != kind:
            raise QueryParseError(f"Expected {kind}, got {t.kind} ({t.value})")
        self.i += 1
        return t

    def match(self, *kinds: str) -> Optional[Token]:
        if self.at_end():
            return None
        if self.peek().kind in kinds:
            t = self.peek()
            self.i += 1
            return t
        return None

    def parse_expr(self) -> Node:
        node = self.parse_term()
        while self.match("OR"):
            rhs = self.parse_term()
            node = Or(node, rhs)
        return node

    def parse_term(self) -> Node:
        node = self.parse_factor()
        while self.match("AND"):
            rhs = self.parse_factor()
            node = And(node, rhs)
        return node

    def parse_factor(self) -> Node:
        if self.match("LPAREN"):
            node = self.parse_expr()
            self.take("RPAREN")
            return node
        return self.parse_comparison()

    def parse_comparison(self) -> Node:
        field = SlotField.parse(self.take("IDENT").value)
        op = Operator.parse(self.take("OP").value)
        val_tok = self.match("DATE", "NUMBER", "STRING", "IDENT")
        if not val_tok:
            raise QueryParseError("Expected a value after operator")
        return Cmp(FieldFilter(field=field, operator=op, value=_coerce_value(val_tok)))

def _coerce_value(tok: Token) -> str:
    if tok.kind == "STRING":
        s = tok.value
        if s[0] == s[-1] and s[0] in ("'", '"'):
            s = s[1:-1]
        return re.sub(r"\\(.)", r"\1", s)
    return tok.value


def compile_where(expr: str) -> Callable[[Slot], bool]:
    """Parse `expr` into a predicate over slots."""
    return _compile(parse(expr))

def _compile(node: Node) -> Callable[[Slot], bool]:
    if isinstance(node, And):
        left, right = _compile(node.left), _compile(node.right)
        return lambda s: left(s) and right(s)
    if isinstance(node, Or):
        left, right = _compile(node.left), _compile(node.right)
        return lambda s: left(s) or right(s)
    if isinstance(node, Cmp):
        return node.filter.matches
    raise QueryParseError("Unknown AST node")

def where(slots: Iterable[Slot], expr: str) -> List[Slot]:
    """Filter slots with a boolean expression."""
    pred = compile_where(expr)
    return [s for s in slots if pred(s)]
