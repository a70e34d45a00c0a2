"""
apt_evolution/ast_nodes.py - Expression tree nodes, evaluation and random construction

Every tree is built from a closed set of node classes grouped by arity:
Variable and Constant (leaves), UnaryOp, BinaryOp, TernaryOp and the
root-only Picture. Children are owned by their parent; the parent link
held by each child is a weak reference used only to splice replacements.
"""
import random
import weakref
from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np
from scipy import special

from . import simplex
from .errors import ConstructionInvariantViolation

CONSTANT_PRECISION = 9
MAX_RANDOM_INSERTIONS = 15
FRACTAL_OCTAVES = 5


class ASTNode(ABC):
    """Base class for all AST nodes"""

    arity = 0
    keyword = ''

    def __init__(self):
        self._parent = None
        self._children: List[Optional['ASTNode']] = [None] * self.arity

    @property
    def parent(self) -> Optional['ASTNode']:
        """The node currently holding this one as a child, or None for a root"""
        if self._parent is None:
            return None
        return self._parent()

    @parent.setter
    def parent(self, node: Optional['ASTNode']):
        self._parent = weakref.ref(node) if node is not None else None

    @property
    def children(self) -> List[Optional['ASTNode']]:
        return self._children

    def set_children(self, children: Iterable[Optional['ASTNode']]) -> None:
        """Replace the whole child sequence, re-pointing each child's parent here"""
        children = list(children)
        if len(children) != self.arity:
            raise ValueError(f"{self.keyword} takes {self.arity} children, got {len(children)}")
        self._children = children
        for child in children:
            if child is not None:
                child.parent = self

    def set_child(self, index: int, child: 'ASTNode') -> None:
        self._children[index] = child
        child.parent = self

    def node_count(self) -> int:
        """Size of the subtree rooted here"""
        return 1 + sum(child.node_count() for child in self._children if child is not None)

    def get_all_nodes(self) -> List['ASTNode']:
        """Get all nodes in this subtree, pre-order"""
        nodes = [self]
        for child in self._children:
            if child is not None:
                nodes.extend(child.get_all_nodes())
        return nodes

    def get_depth(self) -> int:
        """Get maximum depth of this subtree"""
        depths = [child.get_depth() for child in self._children if child is not None]
        return 1 + max(depths, default=0)

    def is_complete(self) -> bool:
        return all(child is not None and child.is_complete() for child in self._children)

    def copy(self) -> 'ASTNode':
        """Create a deep copy of this node"""
        return copy_subtree(self)

    def _complete_children(self) -> List['ASTNode']:
        if any(child is None for child in self._children):
            raise ConstructionInvariantViolation(f"{self.keyword} node has an empty child slot")
        return self._children

    @abstractmethod
    def evaluate(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        """Evaluate the node given input coordinates"""
        pass

    @abstractmethod
    def _clone(self) -> 'ASTNode':
        """A childless node of the same variant"""
        pass

    def to_text(self) -> str:
        parts = [self.keyword] + [child.to_text() for child in self._complete_children()]
        return "( " + " ".join(parts) + " )"

    def __str__(self):
        return self.to_text()

    def __repr__(self):
        return f"<{type(self).__name__} {self.keyword!r}>"


class Variable(ASTNode):
    """Input variables: X, Y"""

    def __init__(self, name: str):
        if name not in VARIABLES:
            raise ValueError(f"Unknown variable: {name}")
        super().__init__()
        self.name = name
        self.keyword = name

    def evaluate(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        return x if self.name == 'X' else y

    def _clone(self) -> 'Variable':
        return Variable(self.name)

    def to_text(self) -> str:
        return self.name


class Constant(ASTNode):
    """Numeric constant, kept at the precision it is written out with"""

    keyword = 'Constant'

    def __init__(self, value: Optional[float] = None):
        super().__init__()
        if value is None:
            # Uniform over the 9-decimal grid in [-1, 1)
            scale = 10 ** CONSTANT_PRECISION
            value = random.randrange(-scale, scale) / scale
        self.value = round(float(value), CONSTANT_PRECISION)

    def evaluate(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        return np.full_like(x, self.value, dtype=np.float64)

    def _clone(self) -> 'Constant':
        return Constant(self.value)

    def to_text(self) -> str:
        return f"{self.value:.{CONSTANT_PRECISION}f}"


# --- Operator semantics ---

def _clip(value, bound):
    bound = np.abs(bound)
    return np.where(value > bound, bound, np.where(value < -bound, -bound, value))


def _square(a, b):
    return np.square(np.multiply(a, b))


def _wrap(value):
    t = (value - 1.0) / 2.0
    return -1.0 + 2.0 * (t - np.floor(t))


def _gamma(value):
    value = np.asarray(value, dtype=np.float64)
    pole = (value <= 0) & (value == np.floor(value))
    return np.where(pole, np.inf, special.gamma(value))


def _lerp(a, b, t):
    return a + t * (b - a)


def _noise(a, b):
    return 80.0 * simplex.snoise2(a, b) - 2.0


def _fbm(a, b, c):
    return 2 * 3.627 * simplex.fbm3(a, b, 5 * c, FRACTAL_OCTAVES, 0.5, 2.0) + 0.492 - 1


def _turbulence(a, b, c):
    return 2 * 6.96 * simplex.turbulence3(a, b, 5 * c, FRACTAL_OCTAVES, 0.5, 2.0) - 1


UNARY_FUNCTIONS: Dict[str, Callable] = {
    'Negate': np.negative,
    'Ceil': np.ceil,
    'Floor': np.floor,
    'Sin': np.sin,
    'Cos': np.cos,
    'Log': np.log2,
    'Abs': np.abs,
    'Atan': np.arctan,
    'Gamma': _gamma,
    'Wrap': _wrap,
}

BINARY_FUNCTIONS: Dict[str, Callable] = {
    '+': np.add,
    '-': np.subtract,
    '*': np.multiply,
    '/': np.true_divide,
    'Clip': _clip,
    'Square': _square,
    'Hypot': np.hypot,
    'Noise': _noise,
}

TERNARY_FUNCTIONS: Dict[str, Callable] = {
    'Lerp': _lerp,
    'FBM': _fbm,
    'Turbulence': _turbulence,
}


class OperatorNode(ASTNode):
    """Shared shape of the fixed-arity operators"""

    functions: Dict[str, Callable] = {}

    def __init__(self, op: str, *children: Optional[ASTNode]):
        if op not in self.functions:
            raise ValueError(f"Unknown {type(self).__name__} operator: {op}")
        super().__init__()
        self.op = op
        self.keyword = op
        if children:
            self.set_children(children)

    def evaluate(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        args = [child.evaluate(x, y) for child in self._complete_children()]
        return self.functions[self.op](*args)

    def _clone(self) -> 'OperatorNode':
        return type(self)(self.op)


class UnaryOp(OperatorNode):
    """Unary operations: Negate, Ceil, Floor, Sin, Cos, Log, Abs, Atan, Gamma, Wrap"""

    arity = 1
    functions = UNARY_FUNCTIONS


class BinaryOp(OperatorNode):
    """Binary operations: + - * /, Clip, Square, Hypot, Noise"""

    arity = 2
    functions = BINARY_FUNCTIONS


class TernaryOp(OperatorNode):
    """Ternary operations: Lerp, FBM, Turbulence"""

    arity = 3
    functions = TERNARY_FUNCTIONS


class Picture(ASTNode):
    """Root grouping the r, g and b trees in the text format. Never evaluated."""

    arity = 3
    keyword = 'Picture'

    def __init__(self, r: Optional[ASTNode] = None, g: Optional[ASTNode] = None,
                 b: Optional[ASTNode] = None):
        super().__init__()
        self.set_children([r, g, b])

    def evaluate(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        raise ConstructionInvariantViolation("Picture nodes cannot be evaluated; evaluate each channel")

    def _clone(self) -> 'Picture':
        return Picture()

    def to_text(self) -> str:
        channels = [child.to_text() for child in self._complete_children()]
        return "( Picture\n" + "\n".join(channels) + " )"


# Primitive sets for random generation
VARIABLES = ['X', 'Y']
UNARY_OPS = list(UNARY_FUNCTIONS)
BINARY_OPS = list(BINARY_FUNCTIONS)
TERNARY_OPS = list(TERNARY_FUNCTIONS)
OPERATORS = UNARY_OPS + BINARY_OPS + TERNARY_OPS
KEYWORDS = OPERATORS + VARIABLES + [Picture.keyword]


def node_from_keyword(keyword: str) -> ASTNode:
    """Create an empty node for a text-format keyword"""
    if keyword in UNARY_FUNCTIONS:
        return UnaryOp(keyword)
    elif keyword in BINARY_FUNCTIONS:
        return BinaryOp(keyword)
    elif keyword in TERNARY_FUNCTIONS:
        return TernaryOp(keyword)
    elif keyword in VARIABLES:
        return Variable(keyword)
    elif keyword == Picture.keyword:
        return Picture()
    else:
        raise ValueError(f"Unknown operator keyword: {keyword}")


def evaluate(node: ASTNode, x, y):
    """
    Evaluate a complete tree over scalar or array coordinates.

    IEEE special values (inf, nan) propagate silently. Scalar inputs
    give a Python float, array inputs an array of their broadcast shape.
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    with np.errstate(all='ignore'):
        result = node.evaluate(x, y)
    shape = np.broadcast(x, y).shape
    result = np.array(np.broadcast_to(result, shape), dtype=np.float64)
    if result.ndim == 0:
        return float(result)
    return result


# --- Tree surgery ---

def nth(tree: ASTNode, index: int) -> ASTNode:
    """Return the node at a pre-order index (root is 0)"""
    if index >= 0:
        stack = [tree]
        count = 0
        while stack:
            node = stack.pop()
            if count == index:
                return node
            count += 1
            stack.extend(reversed([child for child in node.children if child is not None]))
    raise ConstructionInvariantViolation(
        f"Node index {index} out of range for a tree of {tree.node_count()} nodes")


def copy_subtree(node: ASTNode, parent: Optional[ASTNode] = None) -> ASTNode:
    """Deep copy of a subtree; the copy hangs off `parent` rather than the source's parent"""
    clone = node._clone()
    clone.parent = parent
    clone.set_children(
        copy_subtree(child, clone) if child is not None else None
        for child in node.children
    )
    return clone


def replace_node(old: ASTNode, new: ASTNode) -> None:
    """
    Put `new` in the slot `old` occupies in its parent.

    When `old` is a root there is no slot to fill; the caller must swap
    its own root reference.
    """
    parent = old.parent
    if parent is not None:
        for i, child in enumerate(parent.children):
            if child is old:
                parent.children[i] = new
                break
        else:
            raise ConstructionInvariantViolation("Node is not among its parent's children")
    new.parent = parent
    old.parent = None


# --- Random construction ---

def random_operator() -> ASTNode:
    """Uniform choice among the 21 non-leaf variants"""
    return node_from_keyword(random.choice(OPERATORS))


def random_leaf() -> ASTNode:
    """Uniform choice among Constant, X and Y"""
    choice = random.randrange(3)
    if choice == 0:
        return Constant()
    return Variable(VARIABLES[choice - 1])


def add_random(tree: ASTNode, node: ASTNode) -> bool:
    """Drop `node` into an empty slot found by a random walk down from `tree`"""
    current = tree
    while current.arity > 0:
        index = random.randrange(current.arity)
        child = current.children[index]
        if child is None:
            current.set_child(index, node)
            return True
        current = child
    return False


def first_empty_slot(tree: ASTNode) -> Optional[Tuple[ASTNode, int]]:
    """The (node, slot index) of the first empty child slot in pre-order"""
    for i, child in enumerate(tree.children):
        if child is None:
            return tree, i
        slot = first_empty_slot(child)
        if slot is not None:
            return slot
    return None


def fill_leaves(tree: ASTNode) -> None:
    """Close every empty slot with a random leaf"""
    slot = first_empty_slot(tree)
    while slot is not None:
        node, index = slot
        node.set_child(index, random_leaf())
        slot = first_empty_slot(tree)


def create_random_tree(max_insertions: int = MAX_RANDOM_INSERTIONS) -> ASTNode:
    """Build a complete random tree: operator root, random insertions, leaf closing pass"""
    root = random_operator()
    for _ in range(random.randrange(max_insertions)):
        add_random(root, random_operator())
    fill_leaves(root)
    return root
