# ==========================================
# apt_evolution/evaluator.py
# ==========================================
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence, Tuple

import numpy as np
from numba import jit
from PIL import Image

from .ast_nodes import evaluate
from .genome import CHANNELS, Genome

logger = logging.getLogger(__name__)


class Evaluator:
    """Handles evaluation and rendering of genomes"""

    def __init__(self, workers: int = 1):
        self.workers = workers

    def create_coordinate_grids(self, size: Tuple[int, int]) -> Tuple[np.ndarray, np.ndarray]:
        """Pixel (xi, yi) maps to (2*xi/width - 1, 2*yi/height - 1)"""
        height, width = size
        x = np.arange(width, dtype=np.float64) / width * 2 - 1
        y = np.arange(height, dtype=np.float64) / height * 2 - 1
        X, Y = np.meshgrid(x, y)
        return X, Y

    def evaluate_genome_image(self, genome: Genome, size: Tuple[int, int] = (256, 256)) -> np.ndarray:
        """Raw channel values as a (height, width, 3) float array"""
        X, Y = self.create_coordinate_grids(size)
        return np.stack([evaluate(genome.trees[channel], X, Y) for channel in CHANNELS], axis=-1)

    def evaluate_individual(self, genome: Genome, width: int, height: int) -> np.ndarray:
        """Row-major (r, g, b) triples as a (width * height, 3) float array"""
        return self.evaluate_genome_image(genome, (height, width)).reshape(-1, 3)

    def to_pixels(self, values: np.ndarray) -> np.ndarray:
        """Map channel values in [-1, 1] to bytes, saturating outside the range"""
        return _channel_to_bytes(np.ascontiguousarray(values, dtype=np.float64).ravel()).reshape(values.shape)

    def render_image(self, genome: Genome, size: Tuple[int, int] = (512, 512),
                     filename: str = None) -> Image.Image:
        """Render genome as an image"""
        rgb_array = self.to_pixels(self.evaluate_genome_image(genome, size))
        img = Image.fromarray(rgb_array)
        if filename:
            img.save(filename)
            logger.debug("Saved %dx%d render to %s", size[1], size[0], filename)
        return img

    def batch_evaluate_population(self, genomes: Sequence[Genome],
                                  size: Tuple[int, int] = (64, 64)) -> List[np.ndarray]:
        """Evaluate many genomes; results line up with the input order"""
        def evaluate_one(genome):
            return self.evaluate_genome_image(genome, size)

        if self.workers <= 1:
            return [evaluate_one(genome) for genome in genomes]
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            return list(executor.map(evaluate_one, genomes))

    def batch_render_population(self, genomes: Sequence[Genome],
                                size: Tuple[int, int] = (64, 64)) -> List[Image.Image]:
        return [Image.fromarray(self.to_pixels(values))
                for values in self.batch_evaluate_population(genomes, size)]


@jit(nopython=True, nogil=True)
def _channel_to_bytes(values):
    out = np.empty(values.shape[0], dtype=np.uint8)
    for i in range(values.shape[0]):
        v = values[i]
        if np.isnan(v):
            out[i] = 0
            continue
        scaled = np.floor(v * 127.5 + 127.5 + 0.5)
        if scaled < 0.0:
            out[i] = 0
        elif scaled > 255.0:
            out[i] = 255
        else:
            out[i] = np.uint8(scaled)
    return out


def evaluate_individual(genome: Genome, width: int, height: int) -> np.ndarray:
    return Evaluator().evaluate_individual(genome, width, height)
