"""lookupodd codec subpackage.

The registry holds the competing stream compressors; the fan-out encoder
runs all of them over one serialized record stream and keeps the smallest.
"""

from .registry import (
    CODEC_NAMES,
    CODECS,
    RAW_CODEC,
    Codec,
    all_codecs,
    compress,
    decompress,
    get_codec,
)
from .fanout import FanoutEncoder, WinningResult, is_layer_file, layer_file_name

__all__ = [
    "CODEC_NAMES",
    "CODECS",
    "RAW_CODEC",
    "Codec",
    "all_codecs",
    "compress",
    "decompress",
    "get_codec",
    "FanoutEncoder",
    "WinningResult",
    "is_layer_file",
    "layer_file_name",
]
