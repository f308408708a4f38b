"""Layer-by-layer table builder.

Starting from a raw leaf bitmap, each layer wraps the previous layer's
winning blob into ``2^bit_width`` sections, streams them through a fresh
FanoutEncoder and keeps whichever codec produced the smallest output. The
last winner becomes the content of the root section.

Usage:
    from lookupodd.builder import TableBuilder
    from lookupodd.config import TableConfig

    root = TableBuilder(TableConfig(bit_widths=(10, 6, 6, 6, 6, 6, 6, 6, 6, 6))).build()
"""

import itertools
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence

import numpy as np

from .codec.fanout import FanoutEncoder, WinningResult, is_layer_file
from .codec.registry import RAW_CODEC, Codec, all_codecs, get_codec
from .config import TableConfig
from .errors import BuildError, UnknownCodecError
from .storage.section import Section

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, int], None]  # (layer, done, total)


def parity_bitmap(n_bytes: int, pattern: int = 0xAA) -> bytes:
    """Leaf bitmap with every odd offset set (0xAA = 0b10101010)."""
    return bytes([pattern]) * n_bytes


def bitmap_from_predicate(predicate: Callable[[np.ndarray], np.ndarray], n_values: int) -> bytes:
    """Pack ``predicate(offsets)`` into a little-endian bitmap.

    Args:
        predicate: Vectorized function of uint64 offsets returning booleans.
        n_values: Number of offsets to cover; must be a multiple of 8.
    """
    if n_values % 8:
        raise ValueError(f"bitmap must cover whole bytes, got {n_values} values")
    offsets = np.arange(n_values, dtype=np.uint64)
    bits = np.asarray(predicate(offsets), dtype=bool)
    if bits.shape != offsets.shape:
        raise ValueError(f"predicate returned shape {bits.shape}, expected {offsets.shape}")
    return np.packbits(bits, bitorder="little").tobytes()


@dataclass
class LayerReport:
    """What one layer's compression competition produced."""
    layer: int
    bit_width: int
    section_count: int
    codec: str
    size: int
    encoded_size: int
    sizes: Dict[str, int] = field(default_factory=dict)


class TableBuilder:
    """Build a root Section bottom-up from per-layer bit widths.

    Args:
        config: Layout, codec and file settings.
        seed: Leaf bitmap bytes; defaults to ``config.seed_byte`` repeated.
        codecs: Codec objects to compete, overriding ``config.codecs``.
        on_progress: Called as ``(layer, done, total)`` while records stream.
    """

    def __init__(
        self,
        config: Optional[TableConfig] = None,
        seed: Optional[bytes] = None,
        codecs: Optional[Sequence[Codec]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.config = config or TableConfig()
        self.config.validate()
        self.codecs = list(codecs) if codecs is not None else self._resolve_codecs()
        if seed is None:
            seed = parity_bitmap(self.config.leaf_bytes, self.config.seed_byte)
        if len(seed) != self.config.leaf_bytes:
            raise BuildError(
                f"seed bitmap is {len(seed)} bytes, layout needs {self.config.leaf_bytes}"
            )
        self.seed = bytes(seed)
        self.on_progress = on_progress
        self.reports: List[LayerReport] = []

    def _resolve_codecs(self) -> List[Codec]:
        if self.config.codecs is None:
            return all_codecs()
        try:
            return [get_codec(name) for name in self.config.codecs]
        except UnknownCodecError as exc:
            raise BuildError(str(exc)) from exc

    @property
    def workdir(self) -> Optional[Path]:
        if self.config.workdir is None:
            return None
        return Path(self.config.workdir)

    @staticmethod
    def _reset_workdir(workdir: Path) -> None:
        """Create ``workdir`` and delete layer files left by earlier builds.

        Only names matching ``layer{n}.{codec}`` are removed; anything else
        in the directory is left alone.
        """
        try:
            workdir.mkdir(parents=True, exist_ok=True)
            stale = [p for p in workdir.iterdir() if p.is_file() and is_layer_file(p.name)]
            for path in stale:
                path.unlink()
        except OSError as exc:
            raise BuildError(f"preparing layers dir {workdir}: {exc}") from exc
        if stale:
            logger.debug("removed %d stale layer files from %s", len(stale), workdir)

    def _track(self, layer: int, records: Iterable[Section], total: int) -> Iterator[Section]:
        every = max(self.config.progress_every, 1)
        done = 0
        for record in records:
            yield record
            done += 1
            if self.on_progress is not None and done % every == 0:
                self.on_progress(layer, done, total)
        if self.on_progress is not None:
            self.on_progress(layer, done, total)

    def build_layer(self, layer: int, records: Iterable[Section], total: int = 0) -> WinningResult:
        """Compress one layer's records, in traversal order, with every codec.

        Children may differ from one another; they are streamed and never
        held as a list.
        """
        encoder = FanoutEncoder(layer, self.codecs, workdir=self.workdir)
        try:
            with encoder:
                for record in self._track(layer, records, total):
                    encoder.submit(record)
            result = encoder.winning_result()
        except BaseException:
            encoder.discard()
            raise
        if not self.config.keep_layers:
            encoder.discard()
        return result

    def build(self) -> Section:
        """Run every layer and return the root section."""
        widths = self.config.bit_widths
        workdir = self.workdir
        if workdir is not None:
            self._reset_workdir(workdir)

        content = self.seed
        codec = RAW_CODEC
        sub_count = 0
        domain_count = 1 << widths[0]
        self.reports = []

        for layer in range(1, len(widths)):
            section_count = 1 << widths[layer]
            logger.info(
                "layer %d (%d bits, %s sections)", layer, widths[layer], f"{section_count:,}",
            )
            child = Section(
                layer=layer,
                subsection_count=sub_count,
                domain_count=domain_count,
                codec=codec,
                content=content,
            )
            result = self.build_layer(
                layer, itertools.repeat(child, section_count), total=section_count,
            )
            self.reports.append(LayerReport(
                layer=layer,
                bit_width=widths[layer],
                section_count=section_count,
                codec=result.codec,
                size=len(result.content),
                encoded_size=result.encoded_size,
                sizes=result.sizes,
            ))
            content, codec = result.content, result.codec
            sub_count = section_count
            domain_count *= section_count

        if workdir is not None and not self.config.keep_layers:
            try:
                workdir.rmdir()
            except OSError:
                logger.debug("leaving non-empty layers dir %s", workdir)

        return Section(
            layer=len(widths),
            subsection_count=sub_count,
            domain_count=0,
            codec=codec,
            content=content,
        )


def build_table(config: Optional[TableConfig] = None, **kwargs) -> Section:
    """Build a table with ``TableBuilder(config, **kwargs).build()``."""
    return TableBuilder(config, **kwargs).build()
