"""
apt_evolution - Interactive evolution of arithmetic picture trees

An image is three expression trees, one per colour channel, each mapping
a coordinate (x, y) in [-1, 1]^2 to a channel value. Trees are bred by
subtree crossover and node mutation from survivors chosen outside the
program.
"""

__version__ = "0.1.0"
__author__ = "APT Evolution Project"

from .errors import AptError, ParseError, ConstructionInvariantViolation
from .ast_nodes import (
    ASTNode, Variable, Constant, UnaryOp, BinaryOp, TernaryOp, Picture,
    node_from_keyword, evaluate, nth, copy_subtree, replace_node,
    random_operator, random_leaf, create_random_tree,
    VARIABLES, UNARY_OPS, BINARY_OPS, TERNARY_OPS
)
from .parser import Lexer, Parser, parse, parse_tree, to_text
from .genome import Genome, construct_random_individual
from .population import Population, mutate, mutate_node, cross, evolve
from .evaluator import Evaluator, evaluate_individual
from .archive import EvolutionArchive

__all__ = [
    'AptError', 'ParseError', 'ConstructionInvariantViolation',
    'ASTNode', 'Variable', 'Constant', 'UnaryOp', 'BinaryOp', 'TernaryOp', 'Picture',
    'node_from_keyword', 'evaluate', 'nth', 'copy_subtree', 'replace_node',
    'random_operator', 'random_leaf', 'create_random_tree',
    'VARIABLES', 'UNARY_OPS', 'BINARY_OPS', 'TERNARY_OPS',
    'Lexer', 'Parser', 'parse', 'parse_tree', 'to_text',
    'Genome', 'construct_random_individual',
    'Population', 'mutate', 'mutate_node', 'cross', 'evolve',
    'Evaluator', 'evaluate_individual',
    'EvolutionArchive'
]
