"""Record filtering ahead of clustering.

Two layers are applied to every decoded record, once:

- ``is_discordant``: the pair must be mapped on both ends, on two different
  contigs.
- an optional user expression (``--filter``). A read is *discarded* when the
  expression evaluates to true, e.g. ``mapq < 20 or duplicate``.

Expressions are parsed with :mod:`ast` and evaluated by walking the tree; no
Python code is ever executed.
"""

from __future__ import annotations

import ast
import logging
import operator
from typing import Any, Callable, Dict, Optional

from .errors import ConfigurationError
from .models import AlignedRecord

logger = logging.getLogger(__name__)

_FLAG_DUPLICATE = 0x400
_FLAG_SECONDARY = 0x100
_FLAG_SUPPLEMENTARY = 0x800
_FLAG_QCFAIL = 0x200

_RECORD_NAMES: Dict[str, Callable[[AlignedRecord], Any]] = {
    "read_name": lambda r: r.query_name,
    "contig": lambda r: r.reference_name,
    "start": lambda r: r.start,
    "end": lambda r: r.end,
    "mate_contig": lambda r: r.mate_reference_name,
    "mate_start": lambda r: r.mate_start,
    "reverse": lambda r: r.is_reverse,
    "paired": lambda r: r.is_paired,
    "mate_unmapped": lambda r: r.is_mate_unmapped,
    "unmapped": lambda r: r.is_unmapped,
    "clipped": lambda r: r.is_clipped,
    "mapq": lambda r: r.mapping_quality,
    "flag": lambda r: r.flag,
    "duplicate": lambda r: bool(r.flag & _FLAG_DUPLICATE),
    "secondary": lambda r: bool(r.flag & _FLAG_SECONDARY),
    "supplementary": lambda r: bool(r.flag & _FLAG_SUPPLEMENTARY),
    "qcfail": lambda r: bool(r.flag & _FLAG_QCFAIL),
    "partition": lambda r: r.partition,
}

_CONSTANTS = {"true": True, "false": False, "True": True, "False": False}

_BINOPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
}

_CMPOPS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
}


def is_discordant(rec: AlignedRecord) -> bool:
    """True for a mapped, paired read whose mate is mapped on another contig."""
    if rec.is_unmapped:
        return False
    if not rec.is_paired:
        return False
    if rec.is_mate_unmapped:
        return False
    if rec.reference_name == rec.mate_reference_name:
        return False
    return True


class FilterExpression:
    """A compiled ``--filter`` expression."""

    def __init__(self, source: str) -> None:
        self.source = source
        try:
            tree = ast.parse(source.strip(), mode="eval")
        except SyntaxError as e:
            raise ConfigurationError(f"Invalid filter expression '{source}': {e.msg}") from e
        self._check(tree.body)
        self._tree = tree.body

    def _check(self, node: ast.AST) -> None:
        if isinstance(node, ast.BoolOp):
            for v in node.values:
                self._check(v)
        elif isinstance(node, ast.UnaryOp):
            if not isinstance(node.op, (ast.Not, ast.USub)):
                raise self._unsupported(node)
            self._check(node.operand)
        elif isinstance(node, ast.BinOp):
            if type(node.op) not in _BINOPS:
                raise self._unsupported(node)
            self._check(node.left)
            self._check(node.right)
        elif isinstance(node, ast.Compare):
            if any(type(op) not in _CMPOPS for op in node.ops):
                raise self._unsupported(node)
            self._check(node.left)
            for c in node.comparators:
                self._check(c)
        elif isinstance(node, (ast.Tuple, ast.List)):
            for e in node.elts:
                self._check(e)
        elif isinstance(node, ast.Name):
            if node.id not in _RECORD_NAMES and node.id not in _CONSTANTS:
                raise ConfigurationError(
                    f"Unknown name '{node.id}' in filter expression. "
                    f"Available: {', '.join(sorted(_RECORD_NAMES))}"
                )
        elif isinstance(node, ast.Constant):
            if not isinstance(node.value, (bool, int, float, str)):
                raise self._unsupported(node)
        else:
            raise self._unsupported(node)

    def _unsupported(self, node: ast.AST) -> ConfigurationError:
        return ConfigurationError(
            f"Unsupported syntax '{type(node).__name__}' in filter expression '{self.source}'"
        )

    def _eval(self, node: ast.AST, rec: AlignedRecord) -> Any:
        if isinstance(node, ast.BoolOp):
            if isinstance(node.op, ast.And):
                return all(self._eval(v, rec) for v in node.values)
            return any(self._eval(v, rec) for v in node.values)
        if isinstance(node, ast.UnaryOp):
            value = self._eval(node.operand, rec)
            return (not value) if isinstance(node.op, ast.Not) else -value
        if isinstance(node, ast.BinOp):
            return _BINOPS[type(node.op)](self._eval(node.left, rec), self._eval(node.right, rec))
        if isinstance(node, ast.Compare):
            left = self._eval(node.left, rec)
            for op, comparator in zip(node.ops, node.comparators):
                right = self._eval(comparator, rec)
                if not _CMPOPS[type(op)](left, right):
                    return False
                left = right
            return True
        if isinstance(node, (ast.Tuple, ast.List)):
            return tuple(self._eval(e, rec) for e in node.elts)
        if isinstance(node, ast.Name):
            if node.id in _CONSTANTS:
                return _CONSTANTS[node.id]
            return _RECORD_NAMES[node.id](rec)
        if isinstance(node, ast.Constant):
            return node.value
        raise self._unsupported(node)

    def matches(self, rec: AlignedRecord) -> bool:
        return bool(self._eval(self._tree, rec))

    def __repr__(self) -> str:
        return f"FilterExpression({self.source!r})"


class DiscordantPairFilter:
    """Accept discordant pairs that the optional expression does not discard."""

    def __init__(self, expression: Optional[str] = None) -> None:
        self.expression: Optional[FilterExpression] = None
        if expression is not None and expression.strip():
            self.expression = FilterExpression(expression)

    def accepts(self, rec: AlignedRecord) -> bool:
        if not is_discordant(rec):
            return False
        if self.expression is not None and self.expression.matches(rec):
            return False
        return True

    __call__ = accepts
