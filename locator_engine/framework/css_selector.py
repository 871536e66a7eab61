# CSS selector sub-evaluator for the locator engine
# Supports the selector subset used by UI locator maps, compiled once and
# matched against ``Node`` trees.

from __future__ import annotations

from typing import List, Optional, Tuple

from .exceptions import InvalidQuerySyntax
from .predicates import contains, ends_with, has_word, hyphen_prefix, normalize_space, starts_with
from .tree import Node


# Pseudo-classes the matcher understands; anything else is a compile error
SIMPLE_PSEUDO_CLASSES = frozenset({
    "first-child",
    "last-child",
    "only-child",
    "first-of-type",
    "last-of-type",
    "only-of-type",
    "empty",
    "root",
    "visible",
})
FUNCTIONAL_PSEUDO_CLASSES = frozenset({
    "nth-child",
    "nth-last-child",
    "nth-of-type",
    "not",
    "has-text",
})

_WHITESPACE = " \t\n\r\f"


class TokenType:
    TAG = "TAG"  # div, span, attribute names, pseudo names
    ID = "ID"  # #foo
    CLASS = "CLASS"  # .bar
    UNIVERSAL = "UNIVERSAL"  # *
    ATTR_START = "ATTR_START"  # [
    ATTR_END = "ATTR_END"  # ]
    ATTR_OP = "ATTR_OP"  # =, ~=, |=, ^=, $=, *=
    STRING = "STRING"  # quoted or unquoted value
    COMBINATOR = "COMBINATOR"  # >, +, ~, or whitespace (descendant)
    COMMA = "COMMA"
    COLON = "COLON"
    ARGUMENT = "ARGUMENT"  # raw text inside a functional pseudo-class
    EOF = "EOF"


class Token:
    __slots__ = ("type", "value", "position")

    def __init__(self, token_type: str, value: Optional[str] = None, position: int = 0) -> None:
        self.type = token_type
        self.value = value
        self.position = position

    def __repr__(self) -> str:
        return f"Token({self.type}, {self.value!r})"


class SelectorTokenizer:
    """Tokenizes a CSS selector string."""

    def __init__(self, selector: str) -> None:
        self.selector = selector
        self.pos = 0
        self.length = len(selector)

    def _error(self, message: str) -> InvalidQuerySyntax:
        return InvalidQuerySyntax(message, expression=self.selector, position=self.pos)

    def _peek(self, offset: int = 0) -> str:
        pos = self.pos + offset
        if pos < self.length:
            return self.selector[pos]
        return ""

    def _skip_whitespace(self) -> None:
        while self.pos < self.length and self.selector[self.pos] in _WHITESPACE:
            self.pos += 1

    def _is_name_start(self, ch: str) -> bool:
        return ch.isalpha() or ch == "_" or ch == "-" or ord(ch) > 127

    def _is_name_char(self, ch: str) -> bool:
        return self._is_name_start(ch) or ch.isdigit()

    def _read_name(self) -> str:
        start = self.pos
        while self.pos < self.length and self._is_name_char(self.selector[self.pos]):
            self.pos += 1
        return self.selector[start:self.pos]

    def _read_string(self, quote: str) -> str:
        # Skip opening quote; backslash escapes the next character
        self.pos += 1
        parts: List[str] = []
        while self.pos < self.length:
            ch = self.selector[self.pos]
            if ch == quote:
                self.pos += 1
                return "".join(parts)
            if ch == "\\":
                self.pos += 1
                if self.pos < self.length:
                    parts.append(self.selector[self.pos])
                    self.pos += 1
                continue
            parts.append(ch)
            self.pos += 1
        raise self._error("Unterminated string in selector")

    def _read_unquoted_attr_value(self) -> str:
        start = self.pos
        while self.pos < self.length:
            ch = self.selector[self.pos]
            if ch in _WHITESPACE or ch == "]":
                break
            if ch in "'\"[":
                raise self._error(f"Unexpected {ch!r} in unquoted attribute value")
            self.pos += 1
        return self.selector[start:self.pos]

    def _read_argument(self) -> str:
        # Raw text up to the matching ")", skipping over quoted strings
        depth = 1
        start = self.pos
        while self.pos < self.length:
            ch = self.selector[self.pos]
            if ch in "'\"":
                self._read_string(ch)
                continue
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth == 0:
                    arg = self.selector[start:self.pos].strip()
                    self.pos += 1
                    return arg
            self.pos += 1
        raise self._error("Unbalanced parenthesis in pseudo-class argument")

    def tokenize(self) -> List[Token]:
        tokens: List[Token] = []
        pending_whitespace = False

        while self.pos < self.length:
            ch = self.selector[self.pos]
            start = self.pos

            if ch in _WHITESPACE:
                pending_whitespace = True
                self._skip_whitespace()
                continue

            if ch in ">+~":
                pending_whitespace = False
                self.pos += 1
                self._skip_whitespace()
                tokens.append(Token(TokenType.COMBINATOR, ch, start))
                continue

            # Whitespace between two compounds is the descendant combinator
            if pending_whitespace and tokens and ch != ",":
                if tokens[-1].type not in (TokenType.COMBINATOR, TokenType.COMMA):
                    tokens.append(Token(TokenType.COMBINATOR, " ", start))
            pending_whitespace = False

            if ch == "*":
                self.pos += 1
                tokens.append(Token(TokenType.UNIVERSAL, None, start))
                continue

            if ch == "#":
                self.pos += 1
                name = self._read_name()
                if not name:
                    raise self._error("Expected identifier after #")
                tokens.append(Token(TokenType.ID, name, start))
                continue

            if ch == ".":
                self.pos += 1
                name = self._read_name()
                if not name:
                    raise self._error("Expected identifier after .")
                tokens.append(Token(TokenType.CLASS, name, start))
                continue

            if ch == "[":
                self._tokenize_attribute(tokens)
                continue

            if ch == ",":
                self.pos += 1
                self._skip_whitespace()
                tokens.append(Token(TokenType.COMMA, None, start))
                continue

            if ch == ":":
                self.pos += 1
                tokens.append(Token(TokenType.COLON, None, start))
                name = self._read_name()
                if not name:
                    raise self._error("Expected pseudo-class name after :")
                tokens.append(Token(TokenType.TAG, name.lower(), start + 1))
                if self._peek() == "(":
                    self.pos += 1
                    arg_start = self.pos
                    tokens.append(Token(TokenType.ARGUMENT, self._read_argument(), arg_start))
                continue

            if self._is_name_start(ch):
                name = self._read_name()
                tokens.append(Token(TokenType.TAG, name.lower(), start))
                continue

            raise self._error(f"Unexpected character {ch!r}")

        tokens.append(Token(TokenType.EOF, None, self.pos))
        return tokens

    def _tokenize_attribute(self, tokens: List[Token]) -> None:
        tokens.append(Token(TokenType.ATTR_START, None, self.pos))
        self.pos += 1
        self._skip_whitespace()

        attr_name = self._read_name()
        if not attr_name:
            raise self._error("Expected attribute name")
        tokens.append(Token(TokenType.TAG, attr_name, self.pos))
        self._skip_whitespace()

        ch = self._peek()
        if ch == "]":
            self.pos += 1
            tokens.append(Token(TokenType.ATTR_END, None, self.pos))
            return

        if ch == "=":
            self.pos += 1
            tokens.append(Token(TokenType.ATTR_OP, "=", self.pos))
        elif ch and ch in "~|^$*":
            self.pos += 1
            if self._peek() != "=":
                raise self._error(f"Expected = after {ch}")
            self.pos += 1
            tokens.append(Token(TokenType.ATTR_OP, ch + "=", self.pos))
        elif not ch:
            raise self._error("Unbalanced [ in attribute selector")
        else:
            raise self._error(f"Unexpected character in attribute selector: {ch!r}")

        self._skip_whitespace()
        quote = self._peek()
        if quote in ("'", '"') and quote:
            value = self._read_string(quote)
        else:
            value = self._read_unquoted_attr_value()
        tokens.append(Token(TokenType.STRING, value, self.pos))

        self._skip_whitespace()
        if self._peek() != "]":
            raise self._error("Expected ] to close attribute selector")
        self.pos += 1
        tokens.append(Token(TokenType.ATTR_END, None, self.pos))


# AST Node types for parsed selectors


class SimpleSelector:
    """A single simple selector (tag, id, class, attribute, or pseudo-class)."""

    TYPE_TAG = "tag"
    TYPE_ID = "id"
    TYPE_CLASS = "class"
    TYPE_UNIVERSAL = "universal"
    TYPE_ATTR = "attr"
    TYPE_PSEUDO = "pseudo"

    __slots__ = ("type", "name", "operator", "value", "nth", "inner")

    def __init__(
        self,
        selector_type: str,
        name: Optional[str] = None,
        operator: Optional[str] = None,
        value: Optional[str] = None,
        nth: Optional[Tuple[int, int]] = None,
        inner: Optional["SelectorList"] = None,
    ) -> None:
        self.type = selector_type
        self.name = name
        self.operator = operator
        self.value = value
        self.nth = nth  # (a, b) for :nth-*()
        self.inner = inner  # parsed argument of :not()

    def __repr__(self) -> str:
        return f"SimpleSelector({self.type!r}, name={self.name!r}, op={self.operator!r}, value={self.value!r})"


class CompoundSelector:
    """A sequence of simple selectors (e.g., div.foo#bar)."""

    __slots__ = ("selectors",)

    def __init__(self, selectors: List[SimpleSelector]) -> None:
        self.selectors = tuple(selectors)

    def __repr__(self) -> str:
        return f"CompoundSelector({list(self.selectors)!r})"


class ComplexSelector:
    """A chain of compound selectors joined by combinators."""

    __slots__ = ("parts",)

    def __init__(self, parts: List[Tuple[Optional[str], CompoundSelector]]) -> None:
        # First item has combinator=None
        self.parts = tuple(parts)

    def __repr__(self) -> str:
        return f"ComplexSelector({list(self.parts)!r})"


class SelectorList:
    """A comma-separated list of complex selectors."""

    __slots__ = ("selectors",)

    def __init__(self, selectors: List[ComplexSelector]) -> None:
        self.selectors = tuple(selectors)

    def __repr__(self) -> str:
        return f"SelectorList({list(self.selectors)!r})"


def parse_nth_expression(expr: str) -> Optional[Tuple[int, int]]:
    """Parse ``An+B``, ``odd``, ``even`` or a plain index; ``None`` if invalid."""
    expr = expr.strip().lower().replace(" ", "")
    if not expr:
        return None
    if expr == "odd":
        return (2, 1)
    if expr == "even":
        return (2, 0)

    if "n" not in expr:
        try:
            return (0, int(expr))
        except ValueError:
            return None

    a_part, _, b_part = expr.partition("n")
    if a_part in ("", "+"):
        a = 1
    elif a_part == "-":
        a = -1
    else:
        try:
            a = int(a_part)
        except ValueError:
            return None

    b = 0
    if b_part:
        if b_part[0] not in "+-":
            return None
        try:
            b = int(b_part)
        except ValueError:
            return None
    return (a, b)


class SelectorParser:
    """Parses a token list into a ``SelectorList``."""

    def __init__(self, tokens: List[Token], source: str) -> None:
        self.tokens = tokens
        self.source = source
        self.pos = 0

    def _error(self, message: str, token: Optional[Token] = None) -> InvalidQuerySyntax:
        token = token or self._peek()
        return InvalidQuerySyntax(message, expression=self.source, position=token.position)

    def _peek(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return self.tokens[-1]

    def _advance(self) -> Token:
        token = self._peek()
        self.pos += 1
        return token

    def _expect(self, token_type: str) -> Token:
        token = self._peek()
        if token.type != token_type:
            raise self._error(f"Expected {token_type}, got {token.type}")
        return self._advance()

    def parse(self) -> SelectorList:
        selectors = [self._parse_complex_selector()]
        while self._peek().type == TokenType.COMMA:
            self._advance()
            selectors.append(self._parse_complex_selector())

        if self._peek().type != TokenType.EOF:
            raise self._error(f"Unexpected token: {self._peek()!r}")
        return SelectorList(selectors)

    def _parse_complex_selector(self) -> ComplexSelector:
        compound = self._parse_compound_selector()
        if compound is None:
            raise self._error("Expected selector")
        parts: List[Tuple[Optional[str], CompoundSelector]] = [(None, compound)]

        while self._peek().type == TokenType.COMBINATOR:
            combinator = self._advance().value
            compound = self._parse_compound_selector()
            if compound is None:
                raise self._error("Expected selector after combinator")
            parts.append((combinator, compound))

        return ComplexSelector(parts)

    def _parse_compound_selector(self) -> Optional[CompoundSelector]:
        simple_selectors: List[SimpleSelector] = []

        while True:
            token = self._peek()

            if token.type == TokenType.TAG:
                self._advance()
                simple_selectors.append(SimpleSelector(SimpleSelector.TYPE_TAG, name=token.value))
            elif token.type == TokenType.UNIVERSAL:
                self._advance()
                simple_selectors.append(SimpleSelector(SimpleSelector.TYPE_UNIVERSAL))
            elif token.type == TokenType.ID:
                self._advance()
                simple_selectors.append(SimpleSelector(SimpleSelector.TYPE_ID, name=token.value))
            elif token.type == TokenType.CLASS:
                self._advance()
                simple_selectors.append(SimpleSelector(SimpleSelector.TYPE_CLASS, name=token.value))
            elif token.type == TokenType.ATTR_START:
                simple_selectors.append(self._parse_attribute_selector())
            elif token.type == TokenType.COLON:
                simple_selectors.append(self._parse_pseudo_selector())
            else:
                break

        if not simple_selectors:
            return None
        return CompoundSelector(simple_selectors)

    def _parse_attribute_selector(self) -> SimpleSelector:
        self._expect(TokenType.ATTR_START)
        attr_name = self._expect(TokenType.TAG).value

        if self._peek().type == TokenType.ATTR_END:
            self._advance()
            return SimpleSelector(SimpleSelector.TYPE_ATTR, name=attr_name)

        operator = self._expect(TokenType.ATTR_OP).value
        value = self._expect(TokenType.STRING).value
        self._expect(TokenType.ATTR_END)
        return SimpleSelector(SimpleSelector.TYPE_ATTR, name=attr_name, operator=operator, value=value)

    def _parse_pseudo_selector(self) -> SimpleSelector:
        self._expect(TokenType.COLON)
        name_token = self._expect(TokenType.TAG)
        name = name_token.value

        if self._peek().type != TokenType.ARGUMENT:
            if name in FUNCTIONAL_PSEUDO_CLASSES:
                raise self._error(f":{name} requires an argument", name_token)
            if name not in SIMPLE_PSEUDO_CLASSES:
                raise self._error(f"Unsupported pseudo-class: :{name}", name_token)
            return SimpleSelector(SimpleSelector.TYPE_PSEUDO, name=name)

        arg_token = self._advance()
        arg = arg_token.value or ""
        if name not in FUNCTIONAL_PSEUDO_CLASSES:
            raise self._error(f"Unsupported functional pseudo-class: :{name}()", name_token)

        if name == "not":
            if not arg:
                raise self._error(":not() requires a selector", arg_token)
            return SimpleSelector(SimpleSelector.TYPE_PSEUDO, name=name, inner=parse_selector(arg))

        if name == "has-text":
            text = arg
            if text[:1] in ("'", '"'):
                text = SelectorTokenizer(arg)._read_string(arg[0])
            return SimpleSelector(SimpleSelector.TYPE_PSEUDO, name=name, value=text)

        nth = parse_nth_expression(arg)
        if nth is None:
            raise self._error(f"Invalid :{name}() argument: {arg!r}", arg_token)
        return SimpleSelector(SimpleSelector.TYPE_PSEUDO, name=name, nth=nth)


def parse_selector(selector_string: str) -> SelectorList:
    """
    Parse a CSS selector string into a ``SelectorList``.

    Raises:
        InvalidQuerySyntax: empty selector, unbalanced brackets or quotes,
            unknown pseudo-classes, malformed ``An+B`` arguments
    """
    if not selector_string or not selector_string.strip():
        raise InvalidQuerySyntax("Empty CSS selector", expression=selector_string)

    source = selector_string.strip()
    tokens = SelectorTokenizer(source).tokenize()
    return SelectorParser(tokens, source).parse()


class SelectorMatcher:
    """Matches parsed selectors against ``Node`` objects."""

    def matches(self, node: Node, selector: SelectorList) -> bool:
        return any(self._matches_complex(node, complex_sel) for complex_sel in selector.selectors)

    def _matches_complex(self, node: Node, selector: ComplexSelector) -> bool:
        # Work backwards from the rightmost compound selector
        parts = selector.parts
        if not self._matches_compound(node, parts[-1][1]):
            return False
        return self._matches_from(node, parts, len(parts) - 1)

    def _matches_from(self, current: Node, parts, index: int) -> bool:
        # Backtracks so that "a b > c" tries every ancestor matching "b"
        if index == 0:
            return True
        combinator = parts[index][0]
        prev_compound = parts[index - 1][1]

        if combinator == ">":
            parent = current.parent
            return (
                parent is not None
                and self._matches_compound(parent, prev_compound)
                and self._matches_from(parent, parts, index - 1)
            )

        if combinator == "+":
            siblings = current.preceding_siblings()
            return (
                bool(siblings)
                and self._matches_compound(siblings[0], prev_compound)
                and self._matches_from(siblings[0], parts, index - 1)
            )

        if combinator == "~":
            candidates = current.preceding_siblings()
        else:  # descendant
            candidates = list(current.iter_ancestors())

        return any(
            self._matches_compound(candidate, prev_compound)
            and self._matches_from(candidate, parts, index - 1)
            for candidate in candidates
        )

    def _matches_compound(self, node: Node, compound: CompoundSelector) -> bool:
        return all(self._matches_simple(node, simple) for simple in compound.selectors)

    def _matches_simple(self, node: Node, selector: SimpleSelector) -> bool:
        sel_type = selector.type

        if sel_type == SimpleSelector.TYPE_UNIVERSAL:
            return True
        if sel_type == SimpleSelector.TYPE_TAG:
            return node.tag == selector.name
        if sel_type == SimpleSelector.TYPE_ID:
            return node.attributes.get("id") == selector.name
        if sel_type == SimpleSelector.TYPE_CLASS:
            return selector.name in node.class_list
        if sel_type == SimpleSelector.TYPE_ATTR:
            return self._matches_attribute(node, selector)
        return self._matches_pseudo(node, selector)

    def _matches_attribute(self, node: Node, selector: SimpleSelector) -> bool:
        attr_value = node.attributes.get(selector.name)
        if attr_value is None:
            return False
        if selector.operator is None:
            return True

        value = selector.value or ""
        op = selector.operator

        if op == "=":
            return attr_value == value
        if op == "~=":
            return has_word(attr_value, value)
        if op == "|=":
            return hyphen_prefix(attr_value, value)
        # Empty operands never match for the substring operators
        if not value:
            return False
        if op == "^=":
            return starts_with(attr_value, value)
        if op == "$=":
            return ends_with(attr_value, value)
        return contains(attr_value, value)

    def _matches_pseudo(self, node: Node, selector: SimpleSelector) -> bool:
        name = selector.name

        if name == "visible":
            return node.visible
        if name == "has-text":
            return contains(normalize_space(node.text_content()), normalize_space(selector.value or ""))
        if name == "not":
            return not self.matches(node, selector.inner)
        if name == "root":
            return node.parent is None
        if name == "empty":
            return not node.children and not node.text

        parent = node.parent
        if parent is None:
            return False
        siblings = parent.children
        same_type = [child for child in siblings if child.tag == node.tag]

        if name == "first-child":
            return siblings[0] is node
        if name == "last-child":
            return siblings[-1] is node
        if name == "only-child":
            return len(siblings) == 1
        if name == "first-of-type":
            return same_type[0] is node
        if name == "last-of-type":
            return same_type[-1] is node
        if name == "only-of-type":
            return len(same_type) == 1

        a, b = selector.nth
        if name == "nth-child":
            return _matches_nth(_position(siblings, node), a, b)
        if name == "nth-last-child":
            return _matches_nth(len(siblings) - _position(siblings, node) + 1, a, b)
        return _matches_nth(_position(same_type, node), a, b)


def _position(nodes: List[Node], node: Node) -> int:
    """1-based position of ``node`` within ``nodes``."""
    for index, candidate in enumerate(nodes):
        if candidate is node:
            return index + 1
    return 0


def _matches_nth(index: int, a: int, b: int) -> bool:
    """Check if 1-based index matches the An+B formula."""
    if a == 0:
        return index == b
    diff = index - b
    if a > 0:
        return diff >= 0 and diff % a == 0
    return diff <= 0 and diff % a == 0


_matcher = SelectorMatcher()


def matches(node: Node, selector: SelectorList) -> bool:
    """Check a node against an already parsed selector."""
    return _matcher.matches(node, selector)


__all__ = [
    "SelectorList",
    "parse_selector",
    "parse_nth_expression",
    "matches",
]
