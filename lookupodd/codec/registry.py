"""Codec registry: interchangeable streaming compressors competing per layer.

Every codec is an incremental compressor/decompressor pair exposing the
zlib ``compressobj`` shape:

    c = codec.compressor()
    out = c.compress(chunk) + ... + c.flush()

    d = codec.decompressor()
    raw = d.decompress(out)

The order of ``CODEC_NAMES`` is the tie-break order when two codecs produce
equally small output. Names are persisted inside tables, so the list is
append-only: removing or renaming an entry breaks every table built with it.
The LZW codec of earlier table generators has no Python streaming backend
and was never registered here; tables naming ``lzw`` fail with
UnknownCodecError.

A one-shot ``Codec.decompress`` insists on a complete stream: input that
ends before the codec's end-of-stream marker is rejected rather than
returned as partial output.

Usage:
    from lookupodd.codec.registry import get_codec, compress, decompress

    blob = compress("zlib", data)
    assert decompress("zlib", blob) == data
"""

import bz2
import lzma
import zlib
from dataclasses import dataclass
from typing import Callable, Dict, List

import brotli
import zstandard as zstd

from ..errors import UnknownCodecError

# Leaf sections hold an uncompressed bitmap; never looked up here.
RAW_CODEC = "raw"


# ---------------------------------------------------------------------------
# Adapters for libraries that don't speak compress()/flush()
# ---------------------------------------------------------------------------


class _BrotliCompressor:
    def __init__(self, quality: int = 11):
        self._c = brotli.Compressor(quality=quality)

    def compress(self, data: bytes) -> bytes:
        return self._c.process(data)

    def flush(self) -> bytes:
        return self._c.finish()


class _BrotliDecompressor:
    def __init__(self):
        self._d = brotli.Decompressor()

    def decompress(self, data: bytes) -> bytes:
        return self._d.process(data)

    @property
    def eof(self) -> bool:
        return self._d.is_finished()


# ---------------------------------------------------------------------------
# Backend constructors
# ---------------------------------------------------------------------------


def _bzip2_compressor():
    return bz2.BZ2Compressor(9)

def _bzip2_decompressor():
    return bz2.BZ2Decompressor()


def _zlib_compressor():
    return zlib.compressobj(9)

def _zlib_decompressor():
    return zlib.decompressobj()


# wbits=31 selects the gzip container
def _gzip_compressor():
    return zlib.compressobj(9, zlib.DEFLATED, 31)

def _gzip_decompressor():
    return zlib.decompressobj(31)


def _lzma_compressor():
    return lzma.LZMACompressor(preset=6)

def _lzma_decompressor():
    return lzma.LZMADecompressor()


# level 19: 8 MiB window
def _zstd_compressor():
    return zstd.ZstdCompressor(level=19).compressobj()

def _zstd_decompressor():
    return zstd.ZstdDecompressor().decompressobj()


def _brotli_compressor():
    return _BrotliCompressor(quality=11)

def _brotli_decompressor():
    return _BrotliDecompressor()


@dataclass(frozen=True)
class Codec:
    """A named streaming compressor/decompressor pair."""

    name: str
    compressor: Callable
    decompressor: Callable

    def compress(self, data: bytes) -> bytes:
        c = self.compressor()
        return c.compress(data) + c.flush()

    def decompress(self, data: bytes) -> bytes:
        """Decompress one complete stream.

        Raises:
            ValueError: ``data`` stops before the end-of-stream marker.
        """
        d = self.decompressor()
        raw = d.decompress(data)
        if not d.eof:
            raise ValueError(f"{self.name} stream is truncated")
        return raw


CODEC_NAMES: List[str] = [
    "bzip2",   # 0
    "zlib",    # 1
    "gzip",    # 2
    "lzma",    # 3
    "zstd",    # 4
    "brotli",  # 5
]

CODECS: Dict[str, Codec] = {
    "bzip2": Codec("bzip2", _bzip2_compressor, _bzip2_decompressor),
    "zlib": Codec("zlib", _zlib_compressor, _zlib_decompressor),
    "gzip": Codec("gzip", _gzip_compressor, _gzip_decompressor),
    "lzma": Codec("lzma", _lzma_compressor, _lzma_decompressor),
    "zstd": Codec("zstd", _zstd_compressor, _zstd_decompressor),
    "brotli": Codec("brotli", _brotli_compressor, _brotli_decompressor),
}


def get_codec(name: str) -> Codec:
    """Look up a registered codec, raising UnknownCodecError otherwise."""
    try:
        return CODECS[name]
    except KeyError:
        raise UnknownCodecError(name) from None


def all_codecs() -> List[Codec]:
    """Every registered codec in tie-break order."""
    return [CODECS[name] for name in CODEC_NAMES]


def compress(name: str, data: bytes) -> bytes:
    return get_codec(name).compress(data)


def decompress(name: str, data: bytes) -> bytes:
    return get_codec(name).decompress(data)
