# This file is part of IRCov.
#
# Licensed under MIT License.

"""Tests for the chromosome registry and the blocked-region catalog."""

import io

import pytest

from ircov.core.chromosomes import ChromosomeRegistry
from ircov.core.regions import (
    IntronKey, ReferenceFormatError, RegionCatalog, RegionFormatError, read_reference,
)

SAMD11 = ('chr1\t860569\t861301\tnd/SAMD11/ENSG00000187634/+/2/860569/861301/732/121/anti-over'
          '\t0\t+\t860569\t861301\t255,0,0\t2\t538,73\t5,616\n')


def region_line(chrom, start, end, name, strand='+', blocks=None):
    blocks = blocks or [(start, end)]
    sizes = ','.join(str(e - s) for s, e in blocks)
    offsets = ','.join(str(s - start) for s, _ in blocks)
    return f'{chrom}\t{start}\t{end}\t{name}\t0\t{strand}\t{start}\t{end}\t255,0,0\t{len(blocks)}\t{sizes}\t{offsets}\n'


class TestRegistry:
    def test_presentation_order(self, registry):
        assert [c.name for c in registry] == ['chr1', 'chr2']
        assert [c.ref_index for c in registry] == [1, 0]

    def test_lookup(self, registry):
        assert registry.ref_index('chr2') == 0
        assert registry.ref_index('chrM') is None
        assert registry.by_ref_index(registry.ref_index('chr1')).length == 500
        assert registry.by_ref_index(0).name == 'chr2'

    def test_equality(self, registry):
        same = ChromosomeRegistry.from_references(['chr2', 'chr1'], [1000, 500])
        swapped = ChromosomeRegistry.from_references(['chr1', 'chr2'], [500, 1000])
        assert registry == same
        assert hash(registry) == hash(same)
        assert registry != swapped

    def test_duplicate_names(self):
        with pytest.raises(ValueError):
            ChromosomeRegistry.from_references(['chr1', 'chr1'], [10, 20])


class TestReadReference:
    def test_blocks(self):
        (region,) = list(read_reference(io.StringIO(SAMD11)))
        assert region.chrom == 'chr1'
        assert region.strand is True
        assert region.strand_char == '+'
        assert region.blocks == ((860574, 861112), (861185, 861258))

    def test_reverse_strand(self):
        line = region_line('chr2', 10, 50, 'x', strand='-')
        (region,) = list(read_reference(io.StringIO(line)))
        assert region.strand is False
        assert region.blocks == ((10, 50),)

    def test_skips_comments(self):
        text = '# header\n' + SAMD11
        assert len(list(read_reference(io.StringIO(text)))) == 1

    def test_stops_at_incomplete_line(self):
        text = SAMD11 + 'chr1\t100\t200\tname\n' + SAMD11
        assert len(list(read_reference(io.StringIO(text)))) == 1

    def test_bad_number(self):
        bad = SAMD11.replace('\t860569\t861301\tnd', '\tabc\t861301\tnd')
        with pytest.raises(ReferenceFormatError) as excinfo:
            list(read_reference(io.StringIO(SAMD11 + bad)))
        assert excinfo.value.lineno == 2

    def test_missing_blocks(self):
        bad = SAMD11.replace('\t2\t538,73', '\t3\t538,73')
        with pytest.raises(ReferenceFormatError):
            list(read_reference(io.StringIO(bad)))


class TestIntronKey:
    def test_parse(self):
        key = IntronKey.parse('nd/SAMD11/ENSG00000187634/+/2/860569/861301/732/121/anti-over')
        assert key.tag == 'nd'
        assert key.intron_start == 860569
        assert key.intron_end == 861301
        assert key.excl_bases == 121
        assert key.classification == 'anti-over'
        assert key.label == 'SAMD11/ENSG00000187634/anti-over'

    def test_too_few_fields(self):
        with pytest.raises(RegionFormatError) as excinfo:
            IntronKey.parse('nd/SAMD11/ENSG1', index=7)
        assert excinfo.value.index == 7

    def test_non_numeric(self):
        with pytest.raises(RegionFormatError):
            IntronKey.parse('nd/G/ID/+/1/start/200/100/0/clean')


class TestCatalog:
    @pytest.fixture
    def catalog(self):
        lines = [region_line('chr1', 100 * i, 100 * i + 50, f'nd/G{i}/ID{i}/+/1/{100 * i}/{100 * i + 50}/50/0/clean')
                 for i in range(10)]
        lines.append(region_line('chr2', 5, 25, 'unnamed'))
        return RegionCatalog(read_reference(io.StringIO(''.join(lines))))

    def test_sequence(self, catalog):
        assert len(catalog) == 11
        assert catalog[3].start == 300
        assert catalog[-1].chrom == 'chr2'

    def test_load(self, reference_file):
        catalog = RegionCatalog.load(reference_file)
        assert len(catalog) == 2
        assert catalog[1].name.startswith('dir/')

    @pytest.mark.parametrize('n', [1, 2, 3, 4, 11, 20])
    def test_partition_covers_in_order(self, catalog, n):
        parts = catalog.partition(n)
        assert len(parts) == n
        assert [i for part in parts for i in part] == list(range(len(catalog)))

    def test_partition_size(self, catalog):
        parts = catalog.partition(3)
        assert [len(p) for p in parts] == [4, 4, 3]

    def test_partition_invalid(self, catalog):
        with pytest.raises(ValueError):
            catalog.partition(0)

    def test_boundaries(self, catalog):
        points = catalog.boundaries()
        assert list(points) == ['chr1']
        assert points['chr1'][:4] == [0, 50, 100, 150]
