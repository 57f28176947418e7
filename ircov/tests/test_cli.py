# This file is part of IRCov.
#
# Licensed under MIT License.

"""End-to-end tests for the ircov subcommands on a small indexed BAM."""

import os
import sys

import pandas as pd
import pytest

from ircov.__main__ import main


def run_cli(monkeypatch, *argv):
    monkeypatch.setattr(sys, 'argv', ['ircov'] + [str(a) for a in argv])
    main()


@pytest.fixture
def count_outdir(monkeypatch, tmp_path, bam_file, reference_file):
    outdir = tmp_path / 'out'
    run_cli(monkeypatch, 'count', bam_file, reference_file, '--quiet', '--outdir', outdir)
    return outdir


class TestCount:
    def test_outputs(self, count_outdir):
        assert sorted(os.listdir(count_outdir)) == [
            'ircov-IntronDepth-QC.txt', 'ircov-IntronDepth.txt',
            'ircov-coverage.npz', 'ircov-junctions.txt']

    def test_intron_report(self, count_outdir):
        df = pd.read_csv(count_outdir / 'ircov-IntronDepth.txt', sep='\t')
        assert df.columns[0] == 'Nondir_Chr'
        assert len(df) == 1
        row = df.iloc[0]
        assert row['Name'] == 'GENE1/ID1/clean'
        assert row['SpliceExact'] == 1
        assert row['IntronDepth'] == 0.0
        assert row['IRratio'] == 0.0
        assert row['Warnings'] == 'LowCover'

    def test_directional(self, monkeypatch, tmp_path, bam_file, reference_file):
        outdir = tmp_path / 'dir'
        run_cli(monkeypatch, 'count', bam_file, reference_file, '--quiet', '--outdir', outdir,
                '--directionality', '1', '--ncpu', '2', '--no_coverage')
        df = pd.read_csv(outdir / 'ircov-IntronDepth.txt', sep='\t')
        assert df.columns[0] == 'Dir_Chr'
        assert df.loc[0, 'SpliceExact'] == 1
        assert not (outdir / 'ircov-coverage.npz').exists()
        qc = (outdir / 'ircov-IntronDepth-QC.txt').read_text().splitlines()
        assert len(qc) == 2

    def test_generic(self, monkeypatch, tmp_path, bam_file, reference_file):
        outdir = tmp_path / 'generic'
        run_cli(monkeypatch, 'count', bam_file, reference_file, '--quiet', '--outdir', outdir,
                '--report_mode', 'generic', '--exp_tag', 'gen')
        df = pd.read_csv(outdir / 'gen-CoverageBlocks.txt', sep='\t')
        assert len(df) == 2
        assert df['Bases'].tolist() == [200, 200]
        assert df['Coverage'].tolist() == [0.0, 0.0]


class TestMappability:
    EXPECTED = ('chr1\t0\t100\nchr1\t150\t350\nchr1\t400\t500\nchr1\t600\t5000\n'
                'chr2\t0\t10\nchr2\t60\t3000\n')

    def test_from_archive(self, monkeypatch, tmp_path, count_outdir):
        outdir = tmp_path / 'map'
        run_cli(monkeypatch, 'mappability', count_outdir / 'ircov-coverage.npz',
                '--quiet', '--outdir', outdir, '--threshold', '0')
        assert (outdir / 'ircov-MappabilityExclusion.bed').read_text() == self.EXPECTED

    def test_from_bam(self, monkeypatch, tmp_path, bam_file):
        outdir = tmp_path / 'map'
        run_cli(monkeypatch, 'mappability', bam_file, '--quiet', '--outdir', outdir,
                '--threshold', '0', '--ncpu', '2')
        assert (outdir / 'ircov-MappabilityExclusion.bed').read_text() == self.EXPECTED

    def test_no_arguments(self, monkeypatch):
        with pytest.raises(SystemExit):
            run_cli(monkeypatch)
