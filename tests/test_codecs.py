"""Tests for the codec registry."""

import numpy as np
import pytest

from lookupodd.codec.registry import (
    CODEC_NAMES,
    CODECS,
    RAW_CODEC,
    all_codecs,
    compress,
    decompress,
    get_codec,
)
from lookupodd.errors import FormatError, UnknownCodecError


@pytest.fixture
def random_bytes():
    rng = np.random.RandomState(42)
    return rng.randint(0, 256, size=10_000, dtype=np.uint8).tobytes()


@pytest.fixture
def parity_bytes():
    return b"\xaa" * 16_384


class TestRegistry:
    def test_names_and_order(self):
        assert CODEC_NAMES == ["bzip2", "zlib", "gzip", "lzma", "zstd", "brotli"]
        assert [c.name for c in all_codecs()] == CODEC_NAMES
        assert set(CODECS) == set(CODEC_NAMES)

    def test_raw_is_not_registered(self):
        assert RAW_CODEC not in CODECS
        with pytest.raises(UnknownCodecError):
            get_codec(RAW_CODEC)

    def test_unknown_codec_is_format_error(self):
        with pytest.raises(FormatError, match="unsupported codec"):
            get_codec("lzw")
        with pytest.raises(UnknownCodecError) as info:
            decompress("snappy", b"")
        assert info.value.codec == "snappy"


class TestRoundTrip:
    @pytest.mark.parametrize("name", CODEC_NAMES)
    def test_random_bytes(self, name, random_bytes):
        assert decompress(name, compress(name, random_bytes)) == random_bytes

    @pytest.mark.parametrize("name", CODEC_NAMES)
    def test_empty_input(self, name):
        assert decompress(name, compress(name, b"")) == b""

    @pytest.mark.parametrize("name", CODEC_NAMES)
    def test_regular_input_shrinks(self, name, parity_bytes):
        compressed = compress(name, parity_bytes)
        assert len(compressed) < len(parity_bytes)

    @pytest.mark.parametrize("name", CODEC_NAMES)
    def test_chunked_stream_matches_one_shot(self, name, random_bytes):
        """Feeding the compressor in pieces yields a stream the one-shot decoder reads."""
        codec = get_codec(name)
        c = codec.compressor()
        parts = [c.compress(random_bytes[i:i + 777]) for i in range(0, len(random_bytes), 777)]
        parts.append(c.flush())
        assert codec.decompress(b"".join(parts)) == random_bytes

    def test_deterministic_sizes(self, parity_bytes):
        for name in CODEC_NAMES:
            assert len(compress(name, parity_bytes)) == len(compress(name, parity_bytes))


class TestTruncatedStreams:
    @pytest.mark.parametrize("name", CODEC_NAMES)
    def test_missing_tail_rejected(self, name, parity_bytes):
        blob = compress(name, parity_bytes)
        with pytest.raises(ValueError, match="truncated"):
            decompress(name, blob[:-1])

    @pytest.mark.parametrize("name", CODEC_NAMES)
    def test_empty_blob_rejected(self, name):
        with pytest.raises(ValueError):
            decompress(name, b"")
