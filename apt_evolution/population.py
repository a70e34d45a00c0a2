"""
apt_evolution/population.py - Population management and genetic operators
"""
import logging
import random
from typing import Any, Dict, List, Sequence

import numpy as np

from .ast_nodes import ASTNode, copy_subtree, nth, random_leaf, random_operator, replace_node
from .genome import Genome

logger = logging.getLogger(__name__)

POPULATION_SIZE = 16
MAX_MUTATIONS = 8

# Out of 24 draws, 22 pick an operator and 2 a leaf
_MUTATION_DRAWS = 24
_LEAF_DRAWS = 2


def mutate_node(node: ASTNode) -> ASTNode:
    """
    Replace `node` in place with a random variant.

    Existing children are reattached by position into the new node's
    slots; children beyond its arity are dropped and slots left over are
    closed with random leaves. Returns the new node, which the caller
    must adopt as root if `node` was one.
    """
    if random.randrange(_MUTATION_DRAWS) < _MUTATION_DRAWS - _LEAF_DRAWS:
        mutated = random_operator()
    else:
        mutated = random_leaf()

    for i, child in enumerate(node.children[:mutated.arity]):
        if child is not None:
            mutated.set_child(i, child)
    for i, child in enumerate(mutated.children):
        if child is None:
            mutated.set_child(i, random_leaf())

    replace_node(node, mutated)
    return mutated


def mutate(tree: ASTNode, at_index: int) -> ASTNode:
    """Mutate the node at a pre-order index and return the tree's root afterwards"""
    node = nth(tree, at_index)
    mutated = mutate_node(node)
    logger.debug("Mutated %s into %s at index %d", node.keyword, mutated.keyword, at_index)
    return mutated if node is tree else tree


def cross(a: Genome, b: Genome) -> Genome:
    """
    Child of `a` with one subtree replaced by a copy of a subtree of `b`.

    Both parents are left untouched.
    """
    child = a.copy()
    recipient_channel = child.pick_random_channel()
    donor_channel = b.pick_random_channel()

    recipient_tree = child.trees[recipient_channel]
    donor_tree = b.trees[donor_channel]

    recipient = nth(recipient_tree, random.randrange(recipient_tree.node_count()))
    donor = nth(donor_tree, random.randrange(donor_tree.node_count()))

    donor_copy = copy_subtree(donor)
    replace_node(recipient, donor_copy)
    if recipient is recipient_tree:
        child.trees[recipient_channel] = donor_copy
    return child


def evolve(survivors: Sequence[Genome], target_size: int = POPULATION_SIZE) -> List[Genome]:
    """
    Breed the next generation from the selected survivors.

    Each survivor in turn is crossed with a random survivor, remaining
    slots cross two random survivors, and every offspring then receives
    between 0 and MAX_MUTATIONS - 1 mutation passes.
    """
    if not survivors:
        raise ValueError("Cannot evolve from an empty list of survivors")
    if target_size < 1:
        raise ValueError(f"Population size must be positive, got {target_size}")

    offspring = []
    for i in range(min(len(survivors), target_size)):
        offspring.append(cross(survivors[i], random.choice(survivors)))
    while len(offspring) < target_size:
        offspring.append(cross(random.choice(survivors), random.choice(survivors)))

    for genome in offspring:
        for _ in range(random.randrange(MAX_MUTATIONS)):
            genome.mutate()

    logger.info("Evolved %d offspring from %d survivors", len(offspring), len(survivors))
    return offspring


class Population:
    """The current generation of genomes"""

    def __init__(self, size: int = POPULATION_SIZE, genomes: Sequence[Genome] = None):
        self.size = size
        self.generation = 0

        if genomes is None:
            self.genomes = [Genome.random() for _ in range(size)]
        else:
            self.genomes = list(genomes)
            self.size = len(self.genomes)

    def select(self, indices: Sequence[int]) -> List[Genome]:
        """The genomes at the given positions"""
        return [self.genomes[i] for i in indices]

    def evolve_generation(self, selected_indices: Sequence[int]) -> None:
        """Replace the whole population with offspring of the selected genomes"""
        survivors = self.select(selected_indices)
        self.genomes = evolve(survivors, self.size)
        self.generation += 1

    def get_stats(self) -> Dict[str, Any]:
        """Get population statistics"""
        if not self.genomes:
            return {}

        complexities = [g.get_complexity() for g in self.genomes]
        depths = [g.get_depth() for g in self.genomes]

        return {
            'generation': self.generation,
            'population_size': len(self.genomes),
            'complexity': {
                'min': int(min(complexities)),
                'max': int(max(complexities)),
                'mean': float(np.mean(complexities)),
                'std': float(np.std(complexities))
            },
            'depth': {
                'min': int(min(depths)),
                'max': int(max(depths)),
                'mean': float(np.mean(depths)),
                'std': float(np.std(depths))
            }
        }

    def diversity_stats(self) -> Dict[str, float]:
        """Share of structurally distinct genomes"""
        if len(self.genomes) < 2:
            return {'structural_diversity': 0.0, 'unique_structures': len(self.genomes)}

        unique_structures = len({g.to_text() for g in self.genomes})
        return {
            'structural_diversity': unique_structures / len(self.genomes),
            'unique_structures': unique_structures
        }
