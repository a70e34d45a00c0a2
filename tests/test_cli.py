"""Tests for the command-line interface."""

import os

import pytest
from click.testing import CliRunner
from PIL import Image

from apt_evolution.cli import cli


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def generation_zero(runner: CliRunner, tmp_path) -> str:
    out = str(tmp_path / "run")
    result = runner.invoke(cli, ['random', '-n', '3', '-o', out, '--size', '16', '--workers', '1'])
    assert result.exit_code == 0, result.output
    return out


class TestCli:
    def test_random_writes_genomes_and_renders(self, generation_zero: str) -> None:
        genomes = sorted(os.listdir(os.path.join(generation_zero, 'genomes')))
        assert genomes == ['gen_0000_00.apt', 'gen_0000_01.apt', 'gen_0000_02.apt']
        renders = sorted(os.listdir(os.path.join(generation_zero, 'renders', 'gen_0000')))
        assert renders == ['00.png', '01.png', '02.png']
        with Image.open(os.path.join(generation_zero, 'renders', 'gen_0000', '00.png')) as image:
            assert image.size == (16, 16)

    def test_random_twice_keeps_earlier_generation(self, runner: CliRunner, generation_zero: str) -> None:
        genomes_dir = os.path.join(generation_zero, 'genomes')
        with open(os.path.join(genomes_dir, 'gen_0000_00.apt')) as f:
            first = f.read()

        result = runner.invoke(cli, ['random', '-n', '2', '-o', generation_zero, '--size', '8', '--workers', '1'])

        assert result.exit_code == 0, result.output
        assert "Generation 1" in result.output
        with open(os.path.join(genomes_dir, 'gen_0000_00.apt')) as f:
            assert f.read() == first
        assert sorted(os.listdir(genomes_dir)) == [
            'gen_0000_00.apt', 'gen_0000_01.apt', 'gen_0000_02.apt',
            'gen_0001_00.apt', 'gen_0001_01.apt']

    def test_existing_generation_files_are_not_overwritten(self, runner: CliRunner, tmp_path) -> None:
        out = tmp_path / "run"
        genomes_dir = out / "genomes"
        genomes_dir.mkdir(parents=True)
        (genomes_dir / "gen_0000_00.apt").write_text("( Picture X Y X )")

        result = runner.invoke(cli, ['random', '-n', '2', '-o', str(out), '--size', '8', '--workers', '1'])

        assert result.exit_code != 0
        assert "already archived" in result.output
        assert (genomes_dir / "gen_0000_00.apt").read_text() == "( Picture X Y X )"

    def test_evolve_from_survivors(self, runner: CliRunner, generation_zero: str) -> None:
        survivors = [os.path.join(generation_zero, 'genomes', name)
                     for name in ('gen_0000_00.apt', 'gen_0000_02.apt')]
        result = runner.invoke(cli, ['evolve', *survivors, '-p', '4', '-o', generation_zero,
                                     '--size', '8', '--workers', '2'])
        assert result.exit_code == 0, result.output
        assert "Generation 1" in result.output
        genomes = os.listdir(os.path.join(generation_zero, 'genomes'))
        assert sorted(name for name in genomes if name.startswith('gen_0001')) == [
            'gen_0001_00.apt', 'gen_0001_01.apt', 'gen_0001_02.apt', 'gen_0001_03.apt']

    def test_render(self, runner: CliRunner, tmp_path) -> None:
        source = tmp_path / "stripes.apt"
        source.write_text("( Picture ( Sin ( * X 10.0 ) ) Y 0.5 )")
        out = tmp_path / "stripes.png"
        result = runner.invoke(cli, ['render', str(source), '-o', str(out), '--width', '12', '--height', '10'])
        assert result.exit_code == 0, result.output
        with Image.open(out) as image:
            assert image.size == (12, 10)

    def test_show(self, runner: CliRunner, tmp_path) -> None:
        source = tmp_path / "plain.apt"
        source.write_text("( Picture X ( Cos Y ) 0.25 )")
        result = runner.invoke(cli, ['show', str(source)])
        assert result.exit_code == 0, result.output
        assert "r: 1 nodes" in result.output
        assert "( Cos Y )" in result.output
        assert "0.250000000" in result.output

    def test_unparseable_file(self, runner: CliRunner, tmp_path) -> None:
        source = tmp_path / "broken.apt"
        source.write_text("( Picture ( Tan X ) Y X )")
        result = runner.invoke(cli, ['show', str(source)])
        assert result.exit_code != 0
        assert "Could not parse" in result.output

    def test_missing_survivor(self, runner: CliRunner, tmp_path) -> None:
        result = runner.invoke(cli, ['evolve', str(tmp_path / "nope.apt"), '-o', str(tmp_path)])
        assert result.exit_code != 0
