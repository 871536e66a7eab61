# ================================================================================
# XPath Sub-Evaluator
# ================================================================================
#
# XPath 1.0 subset evaluated against ``Node`` trees.
#
# Supported:
#   - absolute and relative location paths, "//", ".", "..", "@", "*"
#   - node type tests text() and node()
#   - all forward/reverse axes except namespace
#   - predicates (positional and boolean), and/or, = != < <= > >=, + -, |
#   - filter expressions such as (//a)[1]
#   - contains, starts-with, ends-with, normalize-space, string,
#     string-length, concat, translate, not, true, false, boolean, count,
#     position, last, number
#
# The snapshot root hangs under a virtual document node, so "/html" selects a
# root element named html and "//x" searches the whole tree.
#
# ================================================================================

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple, Union

from .exceptions import InvalidQuerySyntax, MalformedExpression
from .predicates import contains, ends_with, normalize_space, starts_with
from .tree import Node


DEFAULT_MAX_STEPS = 200_000

AXES = frozenset({
    "ancestor",
    "ancestor-or-self",
    "attribute",
    "child",
    "descendant",
    "descendant-or-self",
    "following",
    "following-sibling",
    "parent",
    "preceding",
    "preceding-sibling",
    "self",
})
NODE_TYPES = frozenset({"text", "node"})

# name -> (min args, max args or None for variadic)
FUNCTIONS: Dict[str, Tuple[int, Optional[int]]] = {
    "boolean": (1, 1),
    "concat": (2, None),
    "contains": (2, 2),
    "count": (1, 1),
    "ends-with": (2, 2),
    "false": (0, 0),
    "last": (0, 0),
    "normalize-space": (0, 1),
    "not": (1, 1),
    "number": (0, 1),
    "position": (0, 0),
    "starts-with": (2, 2),
    "string": (0, 1),
    "string-length": (0, 1),
    "translate": (3, 3),
    "true": (0, 0),
}


# --------------------------------------------------------------------------------
# Tokenizer
# --------------------------------------------------------------------------------

class Token(NamedTuple):
    type: str
    value: str
    position: int


_TWO_CHAR_TOKENS = {"//": "DSLASH", "..": "DDOT", "::": "AXIS", "!=": "OP", "<=": "OP", ">=": "OP"}
_ONE_CHAR_TOKENS = {
    "/": "SLASH",
    "(": "LPAREN",
    ")": "RPAREN",
    "[": "LBRACKET",
    "]": "RBRACKET",
    ".": "DOT",
    "@": "AT",
    ",": "COMMA",
    "|": "PIPE",
    "*": "STAR",
    "=": "OP",
    "<": "OP",
    ">": "OP",
    "+": "OP",
    "-": "OP",
}


def tokenize(expression: str) -> List[Token]:
    """Split an XPath expression into tokens."""
    tokens: List[Token] = []
    pos = 0
    length = len(expression)

    while pos < length:
        ch = expression[pos]

        if ch in " \t\n\r":
            pos += 1
            continue

        if ch in ("'", '"'):
            end = expression.find(ch, pos + 1)
            if end == -1:
                raise InvalidQuerySyntax("Unterminated string literal", expression=expression, position=pos)
            tokens.append(Token("STRING", expression[pos + 1:end], pos))
            pos = end + 1
            continue

        if ch.isdigit() or (ch == "." and pos + 1 < length and expression[pos + 1].isdigit()):
            start = pos
            while pos < length and expression[pos].isdigit():
                pos += 1
            if pos < length and expression[pos] == ".":
                pos += 1
                while pos < length and expression[pos].isdigit():
                    pos += 1
            tokens.append(Token("NUMBER", expression[start:pos], start))
            continue

        if ch.isalpha() or ch == "_":
            start = pos
            while pos < length and (expression[pos].isalnum() or expression[pos] in "_-."):
                pos += 1
            tokens.append(Token("NAME", expression[start:pos], start))
            continue

        pair = expression[pos:pos + 2]
        if pair in _TWO_CHAR_TOKENS:
            tokens.append(Token(_TWO_CHAR_TOKENS[pair], pair, pos))
            pos += 2
            continue

        if ch in _ONE_CHAR_TOKENS:
            tokens.append(Token(_ONE_CHAR_TOKENS[ch], ch, pos))
            pos += 1
            continue

        raise InvalidQuerySyntax(f"Unexpected character {ch!r}", expression=expression, position=pos)

    tokens.append(Token("EOF", "", length))
    return tokens


# --------------------------------------------------------------------------------
# AST
# --------------------------------------------------------------------------------

@dataclass(frozen=True)
class Literal:
    value: str


@dataclass(frozen=True)
class NumberLiteral:
    value: float


@dataclass(frozen=True)
class FunctionCall:
    name: str
    args: Tuple[Any, ...]


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: Any
    right: Any


@dataclass(frozen=True)
class Negate:
    operand: Any


@dataclass(frozen=True)
class NodeTest:
    name: Optional[str] = None  # element/attribute name or "*"
    node_type: Optional[str] = None  # "text" or "node"


@dataclass(frozen=True)
class Step:
    axis: str
    test: NodeTest
    predicates: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class LocationPath:
    absolute: bool
    steps: Tuple[Step, ...]


@dataclass(frozen=True)
class FilterPath:
    primary: Any
    predicates: Tuple[Any, ...]
    steps: Tuple[Step, ...]


_ANY_NODE = NodeTest(node_type="node")
_DESCENDANT_OR_SELF = Step("descendant-or-self", _ANY_NODE)


# --------------------------------------------------------------------------------
# Parser
# --------------------------------------------------------------------------------

class XPathParser:
    """Recursive-descent parser producing an immutable AST."""

    def __init__(self, expression: str) -> None:
        self.expression = expression
        self.tokens = tokenize(expression)
        self.pos = 0

    def _error(self, message: str, token: Optional[Token] = None) -> InvalidQuerySyntax:
        token = token or self._peek()
        return InvalidQuerySyntax(message, expression=self.expression, position=token.position)

    def _peek(self, offset: int = 0) -> Token:
        index = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def _advance(self) -> Token:
        token = self._peek()
        self.pos += 1
        return token

    def _expect(self, token_type: str, message: str) -> Token:
        if self._peek().type != token_type:
            raise self._error(message)
        return self._advance()

    def parse(self) -> Any:
        if self._peek().type == "EOF":
            raise self._error("Empty XPath expression")
        expr = self._parse_or()
        token = self._peek()
        if token.type == "RBRACKET":
            raise self._error("Unbalanced ]")
        if token.type == "RPAREN":
            raise self._error("Unbalanced )")
        if token.type != "EOF":
            raise self._error(f"Unexpected token {token.value!r}")
        return expr

    def _is_keyword(self, word: str) -> bool:
        token = self._peek()
        return token.type == "NAME" and token.value == word

    def _parse_or(self) -> Any:
        left = self._parse_and()
        while self._is_keyword("or"):
            self._advance()
            left = BinaryOp("or", left, self._parse_and())
        return left

    def _parse_and(self) -> Any:
        left = self._parse_equality()
        while self._is_keyword("and"):
            self._advance()
            left = BinaryOp("and", left, self._parse_equality())
        return left

    def _parse_equality(self) -> Any:
        left = self._parse_relational()
        while self._peek().type == "OP" and self._peek().value in ("=", "!="):
            op = self._advance().value
            left = BinaryOp(op, left, self._parse_relational())
        return left

    def _parse_relational(self) -> Any:
        left = self._parse_additive()
        while self._peek().type == "OP" and self._peek().value in ("<", "<=", ">", ">="):
            op = self._advance().value
            left = BinaryOp(op, left, self._parse_additive())
        return left

    def _parse_additive(self) -> Any:
        left = self._parse_unary()
        while self._peek().type == "OP" and self._peek().value in ("+", "-"):
            op = self._advance().value
            left = BinaryOp(op, left, self._parse_unary())
        return left

    def _parse_unary(self) -> Any:
        if self._peek().type == "OP" and self._peek().value == "-":
            self._advance()
            return Negate(self._parse_unary())
        return self._parse_union()

    def _parse_union(self) -> Any:
        left = self._parse_path()
        while self._peek().type == "PIPE":
            self._advance()
            left = BinaryOp("|", left, self._parse_path())
        return left

    def _starts_step(self) -> bool:
        return self._peek().type in ("DOT", "DDOT", "AT", "STAR", "NAME")

    def _starts_primary(self) -> bool:
        token = self._peek()
        if token.type in ("STRING", "NUMBER", "LPAREN"):
            return True
        return (
            token.type == "NAME"
            and self._peek(1).type == "LPAREN"
            and token.value not in NODE_TYPES
        )

    def _parse_path(self) -> Any:
        token = self._peek()

        if token.type == "SLASH":
            self._advance()
            steps = self._parse_relative_steps() if self._starts_step() else ()
            return LocationPath(True, tuple(steps))

        if token.type == "DSLASH":
            self._advance()
            if not self._starts_step():
                raise self._error("Expected a step after //")
            return LocationPath(True, (_DESCENDANT_OR_SELF,) + tuple(self._parse_relative_steps()))

        if self._starts_primary():
            primary = self._parse_primary()
            predicates = self._parse_predicates()
            steps: Tuple[Step, ...] = ()
            if self._peek().type in ("SLASH", "DSLASH"):
                steps = tuple(self._parse_continuation())
            if not predicates and not steps:
                return primary
            return FilterPath(primary, predicates, steps)

        if self._starts_step():
            return LocationPath(False, tuple(self._parse_relative_steps()))

        if token.type == "EOF":
            raise self._error("Unexpected end of expression")
        raise self._error(f"Unexpected token {token.value!r}")

    def _parse_continuation(self) -> List[Step]:
        steps: List[Step] = []
        while self._peek().type in ("SLASH", "DSLASH"):
            if self._advance().type == "DSLASH":
                steps.append(_DESCENDANT_OR_SELF)
            if not self._starts_step():
                raise self._error("Expected a step after /")
            steps.append(self._parse_step())
        return steps

    def _parse_relative_steps(self) -> List[Step]:
        steps = [self._parse_step()]
        steps.extend(self._parse_continuation())
        return steps

    def _parse_step(self) -> Step:
        token = self._peek()

        if token.type == "DOT":
            self._advance()
            return Step("self", _ANY_NODE)
        if token.type == "DDOT":
            self._advance()
            return Step("parent", _ANY_NODE)

        axis = "child"
        if token.type == "AT":
            self._advance()
            axis = "attribute"
        elif token.type == "NAME" and self._peek(1).type == "AXIS":
            if token.value not in AXES:
                raise self._error(f"Unknown axis: {token.value}")
            axis = token.value
            self._advance()
            self._advance()

        test = self._parse_node_test()
        return Step(axis, test, self._parse_predicates())

    def _parse_node_test(self) -> NodeTest:
        token = self._peek()
        if token.type == "STAR":
            self._advance()
            return NodeTest(name="*")
        if token.type != "NAME":
            raise self._error("Expected a node test")
        self._advance()
        if self._peek().type == "LPAREN":
            if token.value not in NODE_TYPES:
                raise self._error(f"Unexpected function {token.value}() in location step", token)
            self._advance()
            self._expect("RPAREN", f"Expected ) after {token.value}(")
            return NodeTest(node_type=token.value)
        return NodeTest(name=token.value.lower())

    def _parse_predicates(self) -> Tuple[Any, ...]:
        predicates = []
        while self._peek().type == "LBRACKET":
            self._advance()
            if self._peek().type == "RBRACKET":
                raise self._error("Empty predicate")
            predicates.append(self._parse_or())
            self._expect("RBRACKET", "Unbalanced [: expected ]")
        return tuple(predicates)

    def _parse_primary(self) -> Any:
        token = self._advance()

        if token.type == "STRING":
            return Literal(token.value)
        if token.type == "NUMBER":
            return NumberLiteral(float(token.value))
        if token.type == "LPAREN":
            expr = self._parse_or()
            self._expect("RPAREN", "Unbalanced (: expected )")
            return expr

        name = token.value
        if name not in FUNCTIONS:
            raise self._error(f"Unknown function: {name}()", token)
        self._expect("LPAREN", f"Expected ( after {name}")
        args = []
        if self._peek().type != "RPAREN":
            args.append(self._parse_or())
            while self._peek().type == "COMMA":
                self._advance()
                args.append(self._parse_or())
        self._expect("RPAREN", f"Unbalanced (: expected ) to close {name}()")

        minimum, maximum = FUNCTIONS[name]
        if len(args) < minimum or (maximum is not None and len(args) > maximum):
            raise self._error(f"Wrong number of arguments for {name}(): {len(args)}", token)
        return FunctionCall(name, tuple(args))


def parse_xpath(expression: str) -> Any:
    """
    Compile an XPath expression into an AST.

    Raises:
        InvalidQuerySyntax: unbalanced brackets/quotes, unknown axes or
            functions, wrong argument counts
    """
    if not expression or not expression.strip():
        raise InvalidQuerySyntax("Empty XPath expression", expression=expression)
    return XPathParser(expression).parse()


# --------------------------------------------------------------------------------
# Evaluation
# --------------------------------------------------------------------------------

class _Document:
    """Virtual parent of the snapshot root."""

    tag = "#document"
    text = ""

    def __init__(self, root: Node) -> None:
        self.root = root
        self.children = [root]
        self.attributes: Dict[str, str] = {}


class AttributeItem(NamedTuple):
    owner: Node
    name: str
    value: str


class TextItem(NamedTuple):
    owner: Node
    value: str


Item = Union[Node, _Document, AttributeItem, TextItem]


class _Context(NamedTuple):
    item: Any
    position: int
    size: int


class XPathEvaluator:
    """Evaluates one parsed expression against one snapshot."""

    def __init__(self, root: Node, max_steps: int = DEFAULT_MAX_STEPS) -> None:
        self.root = root
        self.document = _Document(root)
        self.max_steps = max_steps
        self.steps_taken = 0
        self._preorder: List[Node] = list(root.iter_preorder())
        self._order = {id(node): index for index, node in enumerate(self._preorder)}
        self._functions: Dict[str, Callable[..., Any]] = {
            "boolean": lambda ctx, x: self.to_boolean(x),
            "concat": lambda ctx, *xs: "".join(self.to_string(x) for x in xs),
            "contains": lambda ctx, a, b: contains(self.to_string(a), self.to_string(b)),
            "count": lambda ctx, ns: float(len(self._node_set(ns, "count"))),
            "ends-with": lambda ctx, a, b: ends_with(self.to_string(a), self.to_string(b)),
            "false": lambda ctx: False,
            "last": lambda ctx: float(ctx.size),
            "normalize-space": lambda ctx, *x: normalize_space(self._string_arg(ctx, x)),
            "not": lambda ctx, x: not self.to_boolean(x),
            "number": lambda ctx, *x: self.to_number(x[0] if x else [ctx.item]),
            "position": lambda ctx: float(ctx.position),
            "starts-with": lambda ctx, a, b: starts_with(self.to_string(a), self.to_string(b)),
            "string": lambda ctx, *x: self._string_arg(ctx, x),
            "string-length": lambda ctx, *x: float(len(self._string_arg(ctx, x))),
            "translate": self._translate,
            "true": lambda ctx: True,
        }

    # -- public ---------------------------------------------------------

    def select(self, expr: Any, context: Optional[Node] = None) -> List[Node]:
        """Evaluate ``expr`` and return matching elements in document order."""
        start = self.document if context is None else context
        value = self._eval(expr, _Context(start, 1, 1))
        if not isinstance(value, list):
            raise MalformedExpression(
                f"XPath result is {self._type_name(value)}, not a set of elements"
            )
        for item in value:
            if not isinstance(item, Node):
                raise MalformedExpression(
                    f"XPath result contains {self._type_name(item)}; it should select elements"
                )
        return value

    # -- conversions ----------------------------------------------------

    def string_value(self, item: Item) -> str:
        if isinstance(item, (AttributeItem, TextItem)):
            return item.value
        if isinstance(item, _Document):
            return item.root.text_content()
        return item.text_content()

    def to_string(self, value: Any) -> str:
        if isinstance(value, list):
            return self.string_value(value[0]) if value else ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, float):
            return _format_number(value)
        return value

    def to_number(self, value: Any) -> float:
        if isinstance(value, bool):
            return 1.0 if value else 0.0
        if isinstance(value, float):
            return value
        text = self.to_string(value).strip(" \t\n\r")
        try:
            return float(text)
        except ValueError:
            return math.nan

    def to_boolean(self, value: Any) -> bool:
        if isinstance(value, list):
            return bool(value)
        if isinstance(value, bool):
            return value
        if isinstance(value, float):
            return value != 0 and not math.isnan(value)
        return len(value) > 0

    # -- evaluation -----------------------------------------------------

    def _tick(self, amount: int = 1) -> None:
        self.steps_taken += amount
        if self.steps_taken > self.max_steps:
            raise MalformedExpression(
                f"XPath evaluation aborted after {self.max_steps} steps"
            )

    def _eval(self, expr: Any, ctx: _Context) -> Any:
        if isinstance(expr, Literal):
            return expr.value
        if isinstance(expr, NumberLiteral):
            return expr.value
        if isinstance(expr, LocationPath):
            start = [self.document] if expr.absolute else [ctx.item]
            return self._apply_steps(start, expr.steps)
        if isinstance(expr, FilterPath):
            return self._eval_filter(expr, ctx)
        if isinstance(expr, FunctionCall):
            args = [self._eval(arg, ctx) for arg in expr.args]
            return self._functions[expr.name](ctx, *args)
        if isinstance(expr, Negate):
            return -self.to_number(self._eval(expr.operand, ctx))
        if isinstance(expr, BinaryOp):
            return self._eval_binary(expr, ctx)
        raise MalformedExpression(f"Unsupported XPath construct: {expr!r}")

    def _eval_binary(self, expr: BinaryOp, ctx: _Context) -> Any:
        op = expr.op
        if op == "or":
            return self.to_boolean(self._eval(expr.left, ctx)) or self.to_boolean(self._eval(expr.right, ctx))
        if op == "and":
            return self.to_boolean(self._eval(expr.left, ctx)) and self.to_boolean(self._eval(expr.right, ctx))

        left = self._eval(expr.left, ctx)
        right = self._eval(expr.right, ctx)

        if op == "|":
            return self._sorted_unique(self._node_set(left, "|") + self._node_set(right, "|"))
        if op == "+":
            return self.to_number(left) + self.to_number(right)
        if op == "-":
            return self.to_number(left) - self.to_number(right)
        return self._compare(op, left, right)

    def _eval_filter(self, expr: FilterPath, ctx: _Context) -> Any:
        value = self._eval(expr.primary, ctx)
        items = self._node_set(value, "a predicate or path")
        for predicate in expr.predicates:
            items = self._filter(items, predicate)
        return self._apply_steps(items, expr.steps) if expr.steps else items

    def _apply_steps(self, items: List[Any], steps: Tuple[Step, ...]) -> List[Any]:
        current = items
        for step in steps:
            collected: List[Any] = []
            for item in current:
                candidates = [c for c in self._axis(step.axis, item) if self._test(step, c)]
                for predicate in step.predicates:
                    candidates = self._filter(candidates, predicate)
                collected.extend(candidates)
            current = self._sorted_unique(collected)
        return current

    def _filter(self, items: List[Any], predicate: Any) -> List[Any]:
        size = len(items)
        kept = []
        for position, item in enumerate(items, 1):
            value = self._eval(predicate, _Context(item, position, size))
            if isinstance(value, float) and not isinstance(value, bool):
                if value == position:
                    kept.append(item)
            elif self.to_boolean(value):
                kept.append(item)
        return kept

    def _test(self, step: Step, item: Any) -> bool:
        test = step.test
        if test.node_type == "node":
            return True
        if test.node_type == "text":
            return isinstance(item, TextItem)
        if step.axis == "attribute":
            return isinstance(item, AttributeItem) and test.name in ("*", item.name)
        return isinstance(item, Node) and test.name in ("*", item.tag)

    # -- axes -----------------------------------------------------------

    def _parent(self, item: Any) -> Optional[Any]:
        if isinstance(item, _Document):
            return None
        if isinstance(item, (AttributeItem, TextItem)):
            return item.owner
        parent = item.parent
        if parent is None and item is self.root:
            return self.document
        return parent

    def _children(self, item: Any) -> List[Any]:
        if isinstance(item, _Document):
            return [item.root]
        if not isinstance(item, Node):
            return []
        children: List[Any] = [TextItem(item, item.text)] if item.text else []
        children.extend(item.children)
        return children

    def _descendants(self, item: Any) -> List[Any]:
        if isinstance(item, _Document):
            return [item.root] + self._descendants(item.root)
        if not isinstance(item, Node):
            return []
        result: List[Any] = [TextItem(item, item.text)] if item.text else []
        for node in item.iter_descendants():
            result.append(node)
            if node.text:
                result.append(TextItem(node, node.text))
        return result

    def _ancestors(self, item: Any) -> List[Any]:
        result = []
        parent = self._parent(item)
        while parent is not None:
            result.append(parent)
            parent = self._parent(parent)
        return result

    def _axis(self, axis: str, item: Any) -> List[Any]:
        if axis == "child":
            result = self._children(item)
        elif axis == "descendant":
            result = self._descendants(item)
        elif axis == "descendant-or-self":
            result = [item] + self._descendants(item)
        elif axis == "self":
            result = [item]
        elif axis == "parent":
            parent = self._parent(item)
            result = [parent] if parent is not None else []
        elif axis == "ancestor":
            result = self._ancestors(item)
        elif axis == "ancestor-or-self":
            result = [item] + self._ancestors(item)
        elif axis == "attribute":
            result = (
                [AttributeItem(item, name, value) for name, value in sorted(item.attributes.items())]
                if isinstance(item, Node) else []
            )
        elif axis == "following-sibling":
            result = item.following_siblings() if isinstance(item, Node) else []
        elif axis == "preceding-sibling":
            result = item.preceding_siblings() if isinstance(item, Node) else []
        elif axis == "following":
            result = self._following(item)
        else:  # preceding
            result = self._preceding(item)
        self._tick(len(result) + 1)
        return result

    def _following(self, item: Any) -> List[Any]:
        if isinstance(item, (AttributeItem, TextItem)):
            item = item.owner
        if not isinstance(item, Node):
            return []
        index = self._order[id(item)]
        subtree_size = sum(1 for _ in item.iter_preorder())
        return self._preorder[index + subtree_size:]

    def _preceding(self, item: Any) -> List[Any]:
        if isinstance(item, (AttributeItem, TextItem)):
            item = item.owner
        if not isinstance(item, Node):
            return []
        ancestors = {id(node) for node in item.iter_ancestors()}
        index = self._order[id(item)]
        return [node for node in reversed(self._preorder[:index]) if id(node) not in ancestors]

    # -- helpers --------------------------------------------------------

    def _order_key(self, item: Any) -> Tuple[int, int, str]:
        if isinstance(item, _Document):
            return (-1, 0, "")
        if isinstance(item, TextItem):
            return (self._order[id(item.owner)], 1, "")
        if isinstance(item, AttributeItem):
            return (self._order[id(item.owner)], 2, item.name)
        return (self._order[id(item)], 0, "")

    def _sorted_unique(self, items: List[Any]) -> List[Any]:
        unique = {self._order_key(item): item for item in items}
        return [unique[key] for key in sorted(unique)]

    def _node_set(self, value: Any, where: str) -> List[Any]:
        if not isinstance(value, list):
            raise MalformedExpression(
                f"Expected a node-set for {where}, got {self._type_name(value)}"
            )
        return value

    def _string_arg(self, ctx: _Context, args: Tuple[Any, ...]) -> str:
        if args:
            return self.to_string(args[0])
        return self.string_value(ctx.item)

    def _translate(self, ctx: _Context, value: Any, source: Any, target: Any) -> str:
        text, src, dst = self.to_string(value), self.to_string(source), self.to_string(target)
        mapping: Dict[str, Optional[str]] = {}
        for index, ch in enumerate(src):
            if ch not in mapping:
                mapping[ch] = dst[index] if index < len(dst) else None
        return "".join(mapping.get(ch, ch) or "" for ch in text)

    def _compare(self, op: str, left: Any, right: Any) -> bool:
        if isinstance(left, list) and isinstance(right, list):
            right_values = [self.string_value(item) for item in right]
            return any(
                self._compare_atomic(op, self.string_value(a), b)
                for a in left
                for b in right_values
            )
        if isinstance(left, list) or isinstance(right, list):
            swapped = not isinstance(left, list)
            node_set, other = (right, left) if swapped else (left, right)
            if isinstance(other, bool):
                pair = (other, self.to_boolean(node_set)) if swapped else (self.to_boolean(node_set), other)
                return self._compare_atomic(op, *pair)
            for item in node_set:
                value: Any = self.string_value(item)
                if isinstance(other, float):
                    value = self.to_number(value)
                pair = (other, value) if swapped else (value, other)
                if self._compare_atomic(op, *pair):
                    return True
            return False
        return self._compare_atomic(op, left, right)

    def _compare_atomic(self, op: str, left: Any, right: Any) -> bool:
        if op in ("=", "!="):
            if isinstance(left, bool) or isinstance(right, bool):
                left, right = self.to_boolean(left), self.to_boolean(right)
            elif isinstance(left, float) or isinstance(right, float):
                left, right = self.to_number(left), self.to_number(right)
            else:
                left, right = self.to_string(left), self.to_string(right)
            return (left == right) if op == "=" else (left != right)

        a, b = self.to_number(left), self.to_number(right)
        if op == "<":
            return a < b
        if op == "<=":
            return a <= b
        if op == ">":
            return a > b
        return a >= b

    @staticmethod
    def _type_name(value: Any) -> str:
        if isinstance(value, bool):
            return "a boolean"
        if isinstance(value, float):
            return "a number"
        if isinstance(value, str):
            return "a string"
        if isinstance(value, AttributeItem):
            return "an attribute"
        if isinstance(value, TextItem):
            return "a text node"
        if isinstance(value, _Document):
            return "the document node"
        return type(value).__name__


def _format_number(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == int(value):
        return str(int(value))
    return repr(value)


def evaluate(
    expr: Any,
    root: Node,
    context: Optional[Node] = None,
    max_steps: int = DEFAULT_MAX_STEPS,
) -> List[Node]:
    """Evaluate a parsed expression; relative paths start at ``context`` or the document."""
    return XPathEvaluator(root, max_steps=max_steps).select(expr, context)


__all__ = [
    "DEFAULT_MAX_STEPS",
    "AXES",
    "FUNCTIONS",
    "parse_xpath",
    "evaluate",
    "XPathEvaluator",
]
