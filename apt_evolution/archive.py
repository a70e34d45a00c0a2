"""
apt_evolution/archive.py - Evolution archive and persistence
"""
import json
import logging
import os
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from .genome import Genome
from .population import Population

logger = logging.getLogger(__name__)

TREE_SUFFIX = '.apt'


def next_sequential_name(directory: str, suffix: str = TREE_SUFFIX) -> str:
    """`<n>.apt` with n one past the largest numbered file already in `directory`"""
    biggest = 0
    for name in os.listdir(directory):
        stem, ext = os.path.splitext(name)
        if ext == suffix and stem.isdigit():
            biggest = max(biggest, int(stem))
    return f"{biggest + 1}{suffix}"


class EvolutionArchive:
    """Archive evolution runs and saved genomes"""

    def __init__(self, base_path: str):
        self.base_path = base_path
        self.evolution_log = []

        self.dirs = {
            'genomes': os.path.join(base_path, 'genomes'),
            'logs': os.path.join(base_path, 'logs'),
            'renders': os.path.join(base_path, 'renders'),
        }

        for dir_path in self.dirs.values():
            os.makedirs(dir_path, exist_ok=True)

        self.log_file = os.path.join(self.dirs['logs'], 'evolution_log.json')
        if os.path.exists(self.log_file):
            with open(self.log_file, 'r') as f:
                self.evolution_log = json.load(f)

    def save_genome(self, genome: Genome, filename: Optional[str] = None) -> str:
        """Write a genome's text; without a filename the next free number is used"""
        if filename is None:
            filename = next_sequential_name(self.dirs['genomes'])
        filepath = os.path.join(self.dirs['genomes'], filename)
        genome.save(filepath)
        logger.info("Saved genome to %s", filepath)
        return filepath

    def load_genome(self, filename: str) -> Genome:
        """Load an archived genome by path, or by name inside the genomes directory"""
        if not os.path.isabs(filename) and not os.path.exists(filename):
            filename = os.path.join(self.dirs['genomes'], filename)
        return Genome.load(filename)

    def list_archived_genomes(self) -> List[str]:
        """List all archived genome files"""
        genomes_dir = self.dirs['genomes']
        return sorted(os.path.join(genomes_dir, name) for name in os.listdir(genomes_dir)
                      if name.endswith(TREE_SUFFIX))

    def archive_generation(self, population: Population, stats: Dict[str, Any]) -> List[str]:
        """Save every genome of the generation and append it to the evolution log"""
        generation = population.generation
        timestamp = time.time()

        genome_files = [f"gen_{generation:04d}_{i:02d}{TREE_SUFFIX}"
                        for i in range(len(population.genomes))]
        existing = [name for name in genome_files
                    if os.path.exists(os.path.join(self.dirs['genomes'], name))]
        if existing:
            raise FileExistsError(f"Generation {generation} is already archived ({existing[0]})")
        for genome, filename in zip(population.genomes, genome_files):
            self.save_genome(genome, filename)

        generation_data = {
            'generation': generation,
            'timestamp': timestamp,
            'datetime': datetime.fromtimestamp(timestamp).isoformat(),
            'stats': stats,
            'genomes': genome_files,
            'population_diversity': population.diversity_stats()
        }
        self.evolution_log.append(generation_data)

        with open(self.log_file, 'w') as f:
            json.dump(self.evolution_log, f, indent=2)

        logger.info("Archived generation %d (%d genomes)", generation, len(genome_files))
        return genome_files

    def next_generation(self) -> int:
        """One past the last logged generation, or 0 for a fresh archive"""
        if not self.evolution_log:
            return 0
        return max(entry['generation'] for entry in self.evolution_log) + 1

    def render_path(self, generation: int, index: int) -> str:
        render_dir = os.path.join(self.dirs['renders'], f"gen_{generation:04d}")
        os.makedirs(render_dir, exist_ok=True)
        return os.path.join(render_dir, f"{index:02d}.png")

    def get_archive_stats(self) -> Dict[str, Any]:
        """Get archive storage statistics"""
        stats = {
            'genome_files': 0,
            'render_files': 0,
            'generations_logged': len(self.evolution_log),
            'disk_files': 0,
            'archive_size_mb': 0.0
        }

        total_size = 0
        for dir_name, dir_path in self.dirs.items():
            for root, dirs, files in os.walk(dir_path):
                for file in files:
                    total_size += os.path.getsize(os.path.join(root, file))
                    stats['disk_files'] += 1
                    if dir_name == 'genomes' and file.endswith(TREE_SUFFIX):
                        stats['genome_files'] += 1
                    elif dir_name == 'renders':
                        stats['render_files'] += 1

        stats['archive_size_mb'] = total_size / (1024 * 1024)
        return stats
