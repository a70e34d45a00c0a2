"""
apt_evolution/genome.py - Genome representation and text serialization
"""
import random
from typing import Dict, List, Optional, Tuple

from .ast_nodes import ASTNode, Picture, copy_subtree, create_random_tree, nth

CHANNELS = ('r', 'g', 'b')


class Genome:
    """An individual: one expression tree per colour channel"""

    def __init__(self, trees: Optional[Dict[str, ASTNode]] = None):
        if trees is None:
            trees = self._create_random_trees()
        if set(trees) != set(CHANNELS):
            raise ValueError(f"Genome needs exactly the channels {CHANNELS}, got {sorted(trees)}")
        for tree in trees.values():
            if isinstance(tree, Picture):
                raise ValueError("A channel tree cannot be rooted on a Picture")
            tree.parent = None
        self.trees = {channel: trees[channel] for channel in CHANNELS}

    @classmethod
    def random(cls) -> 'Genome':
        return cls()

    @staticmethod
    def _create_random_trees() -> Dict[str, ASTNode]:
        """Create r, g and b independently"""
        return {channel: create_random_tree() for channel in CHANNELS}

    @property
    def r(self) -> ASTNode:
        return self.trees['r']

    @property
    def g(self) -> ASTNode:
        return self.trees['g']

    @property
    def b(self) -> ASTNode:
        return self.trees['b']

    def pick_random_channel(self) -> str:
        return random.choice(CHANNELS)

    def get_complexity(self) -> int:
        """Get total complexity (number of nodes) across all trees"""
        return sum(tree.node_count() for tree in self.trees.values())

    def get_depth(self) -> int:
        """Get maximum depth across all trees"""
        return max(tree.get_depth() for tree in self.trees.values())

    def copy(self) -> 'Genome':
        """Create a deep copy of this genome"""
        return Genome({channel: copy_subtree(tree) for channel, tree in self.trees.items()})

    def mutate(self) -> Tuple[str, int]:
        """
        One mutation pass: a uniformly chosen node of a uniformly chosen
        channel is replaced. Returns the (channel, index) that was hit.
        """
        from .population import mutate

        channel = self.pick_random_channel()
        index = random.randrange(self.trees[channel].node_count())
        self.trees[channel] = mutate(self.trees[channel], index)
        return channel, index

    def node_at(self, channel: str, index: int) -> ASTNode:
        return nth(self.trees[channel], index)

    def to_picture(self) -> Picture:
        """A Picture root over copies of the channel trees"""
        return Picture(*(copy_subtree(self.trees[channel]) for channel in CHANNELS))

    @classmethod
    def from_picture(cls, picture: Picture) -> 'Genome':
        """Take ownership of a Picture's three channel trees"""
        trees = dict(zip(CHANNELS, picture.children))
        picture.set_children([None, None, None])
        return cls(trees)

    def to_text(self) -> str:
        """Serialize to the ( Picture r g b ) text format"""
        return self.to_picture().to_text()

    @classmethod
    def from_text(cls, text: str) -> 'Genome':
        from .parser import parse

        return parse(text)

    def save(self, filename: str) -> str:
        text = self.to_text()
        with open(filename, 'w') as f:
            f.write(text)
        return text

    @classmethod
    def load(cls, filename: str) -> 'Genome':
        with open(filename, 'r') as f:
            return cls.from_text(f.read())

    def get_all_nodes(self) -> List[Tuple[str, ASTNode]]:
        """Get all nodes from all trees with their channel names"""
        all_nodes = []
        for channel, tree in self.trees.items():
            for node in tree.get_all_nodes():
                all_nodes.append((channel, node))
        return all_nodes

    def __str__(self) -> str:
        lines = [f"Genome: complexity {self.get_complexity()}, depth {self.get_depth()}"]
        for channel, tree in self.trees.items():
            text = tree.to_text()
            lines.append(f"  {channel}: {text[:100]}{'...' if len(text) > 100 else ''}")
        return '\n'.join(lines)


def construct_random_individual() -> Genome:
    return Genome.random()
