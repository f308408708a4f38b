"""Tests for the layer-by-layer table builder."""

import numpy as np
import pytest

from lookupodd.builder import (
    TableBuilder,
    bitmap_from_predicate,
    build_table,
    parity_bitmap,
)
from lookupodd.codec.registry import CODECS, Codec, get_codec
from lookupodd.config import TableConfig
from lookupodd.errors import BuildError
from lookupodd.storage.section import Section


@pytest.fixture
def small_config():
    """Domain of 2^8 values: 16-value leaves, then 4 and 4 sections."""
    return TableConfig(bit_widths=(4, 2, 2), address_bits=8, workdir=None)


class TestConfig:
    def test_default_layout_is_64_bits(self):
        config = TableConfig()
        config.validate()
        assert sum(config.bit_widths) == 64
        assert config.leaf_bytes == 1 << 14
        assert config.domain_size == 1 << 64

    def test_wrong_total(self):
        with pytest.raises(BuildError, match="expected total bit depth to be 64, but it was 63"):
            TableConfig(bit_widths=(17, 6, 7, 11, 7, 7, 5, 3)).validate()

    def test_leaf_must_be_whole_bytes(self):
        with pytest.raises(BuildError, match="whole bytes"):
            TableConfig(bit_widths=(2, 2), address_bits=4).validate()

    def test_empty_widths(self):
        with pytest.raises(BuildError, match="at least one"):
            TableConfig(bit_widths=()).validate()

    def test_unknown_codec_name(self, small_config):
        small_config.codecs = ("zlib", "lzw")
        with pytest.raises(BuildError, match="lzw"):
            TableBuilder(small_config)

    def test_seed_size_checked(self, small_config):
        with pytest.raises(BuildError, match="seed bitmap is 3 bytes"):
            TableBuilder(small_config, seed=b"\x00\x00\x00")


class TestBitmaps:
    def test_parity_bitmap(self):
        assert parity_bitmap(2) == b"\xaa\xaa"

    def test_predicate_bitmap_matches_parity(self):
        assert bitmap_from_predicate(lambda v: v % 2 == 1, 64) == parity_bitmap(8)

    def test_predicate_bit_order(self):
        data = bitmap_from_predicate(lambda v: v == 3, 16)
        assert data == b"\x08\x00"

    def test_predicate_needs_whole_bytes(self):
        with pytest.raises(ValueError, match="whole bytes"):
            bitmap_from_predicate(lambda v: v > 0, 12)

    def test_predicate_shape_checked(self):
        with pytest.raises(ValueError, match="shape"):
            bitmap_from_predicate(lambda v: np.ones(3, dtype=bool), 8)


class TestBuild:
    def test_root_fields(self, small_config):
        root = build_table(small_config)
        assert root.layer == 3
        assert root.subsection_count == 4
        assert root.domain_count == 0
        assert root.codec in CODECS

    def test_layers_wrap_previous_winner(self, small_config):
        builder = TableBuilder(small_config)
        root = builder.build()

        layer2 = root.decode_subsections()
        assert len(layer2) == 4
        assert all(s.layer == 2 and s.domain_count == 64 for s in layer2)
        assert len({s.content for s in layer2}) == 1
        assert layer2[0].subsection_count == 4
        assert layer2[0].codec == builder.reports[0].codec

        leaves = layer2[0].decode_subsections()
        assert len(leaves) == 4
        assert all(s.layer == 1 and s.domain_count == 16 for s in leaves)
        assert leaves[0].content == b"\xaa\xaa"
        assert leaves[0].codec == "raw"

    def test_reports(self, small_config):
        builder = TableBuilder(small_config)
        root = builder.build()
        assert [r.layer for r in builder.reports] == [1, 2]
        assert [r.section_count for r in builder.reports] == [4, 4]
        last = builder.reports[-1]
        assert last.codec == root.codec
        assert last.size == len(root.content) == min(last.sizes.values())

    def test_single_layer_table_is_a_leaf(self):
        root = build_table(TableConfig(bit_widths=(6,), address_bits=6, workdir=None))
        assert root == Section(layer=1, subsection_count=0, domain_count=0,
                               codec="raw", content=b"\xaa" * 8)

    def test_codec_subset(self, small_config):
        small_config.codecs = ("gzip",)
        builder = TableBuilder(small_config)
        root = builder.build()
        assert root.codec == "gzip"
        assert all(set(r.sizes) == {"gzip"} for r in builder.reports)

    def test_custom_seed(self, small_config):
        seed = bitmap_from_predicate(lambda v: v % 4 == 0, 16)
        root = TableBuilder(small_config, seed=seed).build()
        leaf = root.decode_subsections()[0].decode_subsections()[0]
        assert leaf.content == seed

    def test_progress_callback(self, small_config):
        calls = []
        small_config.progress_every = 2
        TableBuilder(small_config, on_progress=lambda *a: calls.append(a)).build()
        assert (1, 4, 4) in calls
        assert (2, 2, 4) in calls
        assert calls[-1] == (2, 4, 4)

    def test_workdir_cleaned_up(self, small_config, tmp_path):
        small_config.workdir = str(tmp_path / "layers")
        build_table(small_config)
        assert not (tmp_path / "layers").exists()

    def test_stale_layer_files_cleared(self, small_config, tmp_path):
        workdir = tmp_path / "layers"
        workdir.mkdir()
        (workdir / "layer7.lzw").write_bytes(b"left over")
        (workdir / "layer1.zlib").write_bytes(b"half written")
        small_config.workdir = str(workdir)
        build_table(small_config)
        assert not workdir.exists()

    def test_stale_files_replaced_when_kept(self, small_config, tmp_path):
        workdir = tmp_path / "layers"
        workdir.mkdir()
        (workdir / "layer9.bzip2").write_bytes(b"old")
        (workdir / "notes.txt").write_text("mine")
        small_config.workdir = str(workdir)
        small_config.keep_layers = True
        small_config.codecs = ("zlib",)
        build_table(small_config)
        names = sorted(p.name for p in workdir.iterdir())
        assert names == ["layer1.zlib", "layer2.zlib", "notes.txt"]

    def test_keep_layers(self, small_config, tmp_path):
        small_config.workdir = str(tmp_path / "layers")
        small_config.keep_layers = True
        small_config.codecs = ("zlib", "bzip2")
        build_table(small_config)
        names = sorted(p.name for p in (tmp_path / "layers").iterdir())
        assert names == ["layer1.bzip2", "layer1.zlib", "layer2.bzip2", "layer2.zlib"]

    def test_codec_failure_aborts_build(self, small_config):
        class Broken:
            def compress(self, data):
                raise OSError("no space left")

            def flush(self):
                return b""

        broken = Codec("broken", Broken, CODECS["zlib"].decompressor)
        with pytest.raises(BuildError, match="no space left"):
            TableBuilder(small_config, codecs=[CODECS["zlib"], broken]).build()


class TestBuildLayer:
    def test_heterogeneous_children(self, small_config):
        builder = TableBuilder(small_config)
        records = [
            Section(layer=1, subsection_count=0, domain_count=8,
                    codec="raw", content=bytes([i])) for i in range(5)
        ]
        result = builder.build_layer(1, iter(records))
        parent = Section(layer=2, subsection_count=5, domain_count=40,
                         codec=result.codec, content=result.content)
        assert parent.decode_subsections() == records
        assert get_codec(result.codec).name == result.codec
