"""
apt_evolution/parser.py - Text format for expression trees

Trees are written as prefix S-expressions:

    ( Picture
    ( Sin ( + X 0.250000000 ) )
    Y
    ( Clip ( Noise X Y ) -0.500000000 ) )

Leaves X and Y appear bare, constants as decimal literals and every
operator as a parenthesised group holding exactly its arity in children.
"""
import logging
from enum import Enum
from typing import TYPE_CHECKING, Iterator, NamedTuple, Optional, Union

from .ast_nodes import ASTNode, Constant, KEYWORDS, Picture, VARIABLES, node_from_keyword
from .errors import ParseError

if TYPE_CHECKING:
    from .genome import Genome

logger = logging.getLogger(__name__)

IDENT_CHARS = frozenset("+=/*abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789")
DIGITS = frozenset("0123456789")
WHITESPACE = frozenset(" \t\r\n")


class TokenType(Enum):
    OPEN_PAREN = '('
    CLOSE_PAREN = ')'
    OP = 'op'
    CONSTANT = 'constant'


class Token(NamedTuple):
    type: TokenType
    value: str
    position: int


class Lexer:
    """Pull-based tokenizer: each next_token() call scans just far enough for one token"""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def __iter__(self) -> Iterator[Token]:
        token = self.next_token()
        while token is not None:
            yield token
            token = self.next_token()

    def next_token(self) -> Optional[Token]:
        """The next token, or None at end of input"""
        text = self.text
        while self.pos < len(text) and text[self.pos] in WHITESPACE:
            self.pos += 1
        if self.pos >= len(text):
            return None

        start = self.pos
        char = text[start]
        if char == '(':
            self.pos += 1
            return Token(TokenType.OPEN_PAREN, char, start)
        if char == ')':
            self.pos += 1
            return Token(TokenType.CLOSE_PAREN, char, start)
        if char in DIGITS or char in '-.':
            return self._lex_number(start)
        if char in IDENT_CHARS:
            self._accept_run(IDENT_CHARS)
            return Token(TokenType.OP, text[start:self.pos], start)
        raise ParseError("Unexpected character", char, start)

    def _accept_run(self, valid: frozenset) -> None:
        while self.pos < len(self.text) and self.text[self.pos] in valid:
            self.pos += 1

    def _lex_number(self, start: int) -> Token:
        if self.text[self.pos] == '-':
            self.pos += 1
        self._accept_run(DIGITS)
        if self.pos < len(self.text) and self.text[self.pos] == '.':
            self.pos += 1
            self._accept_run(DIGITS)

        literal = self.text[start:self.pos]
        if literal == '-':
            # A lone minus is the subtraction operator
            return Token(TokenType.OP, literal, start)
        if not any(char in DIGITS for char in literal):
            raise ParseError("Malformed number", literal, start)
        if self.pos < len(self.text) and self.text[self.pos] in IDENT_CHARS:
            self._accept_run(IDENT_CHARS)
            raise ParseError("Malformed number", self.text[start:self.pos], start)
        return Token(TokenType.CONSTANT, literal, start)


class Parser:
    """Recursive-descent parser over a Lexer with one token of lookahead"""

    def __init__(self, text: str):
        self.lexer = Lexer(text)
        self.current = self.lexer.next_token()

    def _advance(self) -> Token:
        token = self.current
        if token is None:
            raise ParseError("Unexpected end of input", position=len(self.lexer.text))
        self.current = self.lexer.next_token()
        return token

    def parse(self) -> ASTNode:
        """Parse exactly one tree spanning the whole input"""
        try:
            tree = self.parse_tree(allow_picture=True)
        except RecursionError:
            raise ParseError("Tree nested too deeply", position=self.lexer.pos) from None
        if self.current is not None:
            raise ParseError("Trailing input after tree", self.current.value, self.current.position)
        return tree

    def parse_tree(self, allow_picture: bool = False) -> ASTNode:
        token = self._advance()

        if token.type == TokenType.CONSTANT:
            try:
                return Constant(float(token.value))
            except ValueError:
                raise ParseError("Malformed number", token.value, token.position) from None

        if token.type == TokenType.OP:
            if token.value not in KEYWORDS:
                raise ParseError("Unknown operator keyword", token.value, token.position)
            if token.value not in VARIABLES:
                raise ParseError("Operator must be parenthesised", token.value, token.position)
            return node_from_keyword(token.value)

        if token.type == TokenType.CLOSE_PAREN:
            raise ParseError("Unbalanced parentheses", token.value, token.position)

        keyword = self._advance()
        if keyword.type != TokenType.OP or keyword.value not in KEYWORDS:
            raise ParseError("Unknown operator keyword", keyword.value, keyword.position)
        if keyword.value == Picture.keyword and not allow_picture:
            raise ParseError("Picture is only allowed at the root", keyword.value, keyword.position)

        node = node_from_keyword(keyword.value)
        for i in range(node.arity):
            if self.current is not None and self.current.type == TokenType.CLOSE_PAREN:
                raise ParseError(
                    f"{keyword.value} takes {node.arity} children, got {i}",
                    self.current.value, self.current.position)
            node.set_child(i, self.parse_tree())

        closing = self._advance()
        if closing.type != TokenType.CLOSE_PAREN:
            raise ParseError(
                f"Expected ')' closing {keyword.value} after {node.arity} children",
                closing.value, closing.position)
        return node


def parse_tree(text: str) -> ASTNode:
    """Parse the text of a single channel tree"""
    tree = Parser(text).parse()
    if isinstance(tree, Picture):
        raise ParseError("Expected a channel tree, got a Picture", Picture.keyword, 0)
    return tree


def parse(text: str) -> 'Genome':
    """Parse a ( Picture r g b ) text into a Genome"""
    from .genome import Genome

    tree = Parser(text).parse()
    if not isinstance(tree, Picture):
        raise ParseError("Expected a Picture at the root", tree.keyword, 0)
    logger.debug("Parsed picture of %d nodes", tree.node_count())
    return Genome.from_picture(tree)


def to_text(tree: Union[ASTNode, 'Genome']) -> str:
    """Serialize a tree or a Genome to the text format"""
    return tree.to_text()
