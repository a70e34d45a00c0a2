"""
apt_evolution/cli.py - Command-line interface

Selection happens outside the program: render a generation, look at the
PNGs, then pass the .apt files of the ones you like to `evolve`.
"""
import logging
import os
import time

import click

from .archive import EvolutionArchive
from .errors import ParseError
from .evaluator import Evaluator
from .genome import CHANNELS, Genome
from .population import POPULATION_SIZE, Population, evolve as evolve_genomes

logger = logging.getLogger(__name__)


def _load_genome(path: str) -> Genome:
    try:
        return Genome.load(path)
    except ParseError as e:
        raise click.ClickException(f"Could not parse {path}: {e}")
    except OSError as e:
        raise click.ClickException(f"Could not read {path}: {e}")


def _archive_and_render(archive: EvolutionArchive, pop: Population, size: int, workers: int) -> None:
    try:
        genome_files = archive.archive_generation(pop, pop.get_stats())
    except FileExistsError as e:
        raise click.ClickException(str(e))

    start_time = time.time()
    evaluator = Evaluator(workers=workers)
    images = evaluator.batch_render_population(pop.genomes, size=(size, size))
    for i, (image, filename) in enumerate(zip(images, genome_files)):
        render_file = archive.render_path(pop.generation, i)
        image.save(render_file)
        click.echo(f"{filename} -> {render_file}")

    logger.info("Rendered %d images in %.1fs", len(images), time.time() - start_time)


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
def cli(verbose):
    """Evolve procedural images made of per-channel expression trees"""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING,
                        format='%(asctime)s %(name)s %(levelname)s: %(message)s')


@cli.command("random")
@click.option('--count', '-n', default=POPULATION_SIZE, help='Number of random genomes')
@click.option('--out', '-o', default='out/', help='Output directory')
@click.option('--size', default=256, help='Render size in pixels')
@click.option('--workers', default=os.cpu_count() or 1, help='Parallel render workers')
def random_population(count, out, size, workers):
    """Start a population of random genomes"""
    if count < 1:
        raise click.BadParameter('must be at least 1', param_hint='--count')
    archive = EvolutionArchive(out)
    pop = Population(count)
    pop.generation = archive.next_generation()
    _archive_and_render(archive, pop, size, workers)
    click.echo(f"Generation {pop.generation}: {count} random genomes in {out}")


@cli.command()
@click.argument('survivors', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option('--population', '-p', default=POPULATION_SIZE, help='Population size')
@click.option('--out', '-o', default='out/', help='Output directory')
@click.option('--size', default=256, help='Render size in pixels')
@click.option('--workers', default=os.cpu_count() or 1, help='Parallel render workers')
def evolve(survivors, population, out, size, workers):
    """Breed the next generation from the selected SURVIVORS (.apt files)"""
    if population < 1:
        raise click.BadParameter('must be at least 1', param_hint='--population')
    genomes = [_load_genome(path) for path in survivors]

    archive = EvolutionArchive(out)
    generation = max(archive.next_generation(), 1)

    pop = Population(genomes=evolve_genomes(genomes, population))
    pop.generation = generation
    _archive_and_render(archive, pop, size, workers)

    stats = pop.get_stats()
    click.echo(f"Generation {generation}: {len(pop.genomes)} offspring of {len(genomes)} survivors, "
               f"complexity {stats['complexity']['mean']:.1f}±{stats['complexity']['std']:.1f}")


@cli.command()
@click.argument('genome', type=click.Path(exists=True, dir_okay=False))
@click.option('--out', '-o', help='Output filename (optional)')
@click.option('--width', default=512, help='Image width')
@click.option('--height', default=512, help='Image height')
def render(genome, out, width, height):
    """Render a genome from an .apt file"""
    g = _load_genome(genome)

    if not out:
        out = os.path.splitext(os.path.basename(genome))[0] + '.png'

    start_time = time.time()
    Evaluator().render_image(g, size=(height, width), filename=out)
    click.echo(f"Image saved: {out}")
    logger.info("Render time: %.2fs", time.time() - start_time)


@cli.command()
@click.argument('genome', type=click.Path(exists=True, dir_okay=False))
def show(genome):
    """Print the size and text of a genome"""
    g = _load_genome(genome)
    click.echo(f"{genome}: complexity {g.get_complexity()}, depth {g.get_depth()}")
    for channel in CHANNELS:
        tree = g.trees[channel]
        click.echo(f"  {channel}: {tree.node_count()} nodes, depth {tree.get_depth()}")
        click.echo(f"     {tree.to_text()}")


if __name__ == '__main__':
    cli()
