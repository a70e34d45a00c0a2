"""Shared fixtures for apt_evolution tests."""

import random

import pytest

from apt_evolution.ast_nodes import ASTNode


@pytest.fixture(autouse=True)
def seeded_random() -> None:
    """Make every test reproducible."""

    random.seed(1234)


def _check_tree(tree: ASTNode) -> None:
    for node in tree.get_all_nodes():
        assert len(node.children) == node.arity
        for child in node.children:
            assert child is not None
            assert child.parent is node
        assert node.node_count() == 1 + sum(child.node_count() for child in node.children)


@pytest.fixture
def well_formed():
    """Checker asserting completeness, arity, parent links and node counts."""

    return _check_tree
