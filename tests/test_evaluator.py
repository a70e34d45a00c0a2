"""Unit tests for grid evaluation and pixel rendering."""

import math

import numpy as np
import pytest
from PIL import Image

from apt_evolution.evaluator import Evaluator, evaluate_individual
from apt_evolution.genome import Genome
from apt_evolution.parser import parse


@pytest.fixture
def evaluator() -> Evaluator:
    return Evaluator()


@pytest.fixture
def coordinate_genome() -> Genome:
    return parse("( Picture X Y 0.500000000 )")


class TestGrids:
    def test_pixel_coordinates(self, evaluator: Evaluator) -> None:
        X, Y = evaluator.create_coordinate_grids((2, 4))
        assert X.shape == (2, 4)
        np.testing.assert_array_equal(X[0], [-1.0, -0.5, 0.0, 0.5])
        np.testing.assert_array_equal(Y[:, 0], [-1.0, 0.0])


class TestEvaluateIndividual:
    def test_row_major_triples(self, coordinate_genome: Genome) -> None:
        width, height = 4, 2
        values = evaluate_individual(coordinate_genome, width, height)
        assert values.shape == (width * height, 3)
        for yi in range(height):
            for xi in range(width):
                r, g, b = values[yi * width + xi]
                assert r == xi / width * 2 - 1
                assert g == yi / height * 2 - 1
                assert b == 0.5

    def test_matches_image_layout(self, evaluator: Evaluator) -> None:
        genome = Genome.random()
        image = evaluator.evaluate_genome_image(genome, (5, 7))
        assert image.shape == (5, 7, 3)
        np.testing.assert_array_equal(image.reshape(-1, 3), evaluator.evaluate_individual(genome, 7, 5))


class TestPixels:
    def test_byte_mapping(self, evaluator: Evaluator) -> None:
        values = np.array([-1.0, 1.0, 0.0, 5.0, -5.0, math.nan, math.inf, -math.inf, 0.5])
        pixels = evaluator.to_pixels(values)
        assert pixels.dtype == np.uint8
        assert pixels.tolist() == [0, 255, 128, 255, 0, 0, 255, 0, 191]

    def test_keeps_shape(self, evaluator: Evaluator) -> None:
        assert evaluator.to_pixels(np.zeros((3, 2, 3))).shape == (3, 2, 3)

    def test_render_image(self, evaluator: Evaluator, coordinate_genome: Genome, tmp_path) -> None:
        filename = tmp_path / "render.png"
        image = evaluator.render_image(coordinate_genome, size=(6, 8), filename=str(filename))
        assert image.size == (8, 6)
        assert image.mode == 'RGB'
        assert filename.exists()
        reloaded = Image.open(filename)
        assert reloaded.getpixel((0, 0)) == (0, 0, 191)
        assert reloaded.getpixel((4, 3)) == (128, 128, 191)


class TestBatch:
    def test_parallel_results_keep_input_order(self) -> None:
        genomes = [Genome.random() for _ in range(6)]
        sequential = Evaluator(workers=1).batch_evaluate_population(genomes, (8, 8))
        parallel = Evaluator(workers=4).batch_evaluate_population(genomes, (8, 8))
        assert len(parallel) == 6
        for a, b in zip(sequential, parallel):
            np.testing.assert_array_equal(a, b)

    def test_batch_render(self) -> None:
        genomes = [Genome.random() for _ in range(3)]
        images = Evaluator(workers=2).batch_render_population(genomes, (4, 5))
        assert [image.size for image in images] == [(5, 4)] * 3
