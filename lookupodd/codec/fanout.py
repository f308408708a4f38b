"""Fan-out encoder: one serialization pass feeding every codec at once.

Records submitted by the caller are serialized by a single serializer
thread, batched into chunks and broadcast to one compression worker per
codec. Each worker owns a bounded queue, so a slow codec stalls the
serializer (and therefore ``submit``) instead of buffering without limit.
Each worker writes its compressed stream to its own backing store: an
in-memory buffer, or ``layer{n}.{codec}`` inside a working directory.

Usage:
    enc = FanoutEncoder(layer=2, workdir=".tmp-layers")
    for section in sections:
        enc.submit(section)
    enc.close()                      # raises FanoutAggregateError on failure
    result = enc.winning_result()    # smallest output + its codec name
"""

import io
import logging
import queue
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..errors import BuildError, FanoutAggregateError
from .registry import Codec, all_codecs

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1 << 16    # serialized bytes per broadcast
_CHANNEL_DEPTH = 4       # chunks in flight per codec worker
_DONE = object()


_LAYER_FILE_RE = re.compile(r"layer\d+\.\w+")


def layer_file_name(layer: int, codec: str) -> str:
    return f"layer{layer}.{codec}"


def is_layer_file(name: str) -> bool:
    """True for names produced by ``layer_file_name``."""
    return _LAYER_FILE_RE.fullmatch(name) is not None


@dataclass
class WinningResult:
    """Smallest compressed candidate for one layer."""
    content: bytes
    codec: str
    sizes: Dict[str, int] = field(default_factory=dict)
    encoded_size: int = 0

    @property
    def ratio(self) -> float:
        return self.encoded_size / max(len(self.content), 1)


class _Sink:
    """One codec's compressor plus the store it writes into."""

    def __init__(self, codec: Codec, layer: int, workdir: Optional[Path]):
        self.codec = codec
        self.path = None
        if workdir is None:
            self.fh = io.BytesIO()
        else:
            self.path = workdir / layer_file_name(layer, codec.name)
            try:
                self.fh = open(self.path, "wb")
            except OSError as exc:
                raise BuildError(
                    f"opening layer file {self.path}: {exc}", layer=layer, codec=codec.name,
                ) from exc
        try:
            self.compressor = codec.compressor()
        except Exception as exc:
            self.release()
            raise BuildError(
                f"creating codec writer: {exc}", layer=layer, codec=codec.name,
            ) from exc
        self.channel: queue.Queue = queue.Queue(maxsize=_CHANNEL_DEPTH)

    def release(self) -> None:
        """Close the store and delete its file, if any."""
        self.fh.close()
        if self.path is not None:
            self.path.unlink(missing_ok=True)

    def size(self) -> int:
        if self.path is None:
            return self.fh.getbuffer().nbytes
        return self.path.stat().st_size

    def read(self) -> bytes:
        if self.path is None:
            return self.fh.getvalue()
        return self.path.read_bytes()


class FanoutEncoder:
    """Serialize records once and compress them with every codec concurrently.

    Args:
        layer: Layer index, used for file names and error context.
        codecs: Codecs to compete; defaults to the whole registry. Their
            order is the tie-break order.
        workdir: Directory for per-codec layer files. ``None`` keeps every
            candidate in memory.
    """

    def __init__(
        self,
        layer: int,
        codecs: Optional[Iterable[Codec]] = None,
        workdir=None,
    ):
        self.layer = layer
        self.codecs: List[Codec] = list(codecs) if codecs is not None else all_codecs()
        if not self.codecs:
            raise BuildError("no codecs to compete", layer=layer)
        self.workdir = Path(workdir) if workdir is not None else None
        self.encoded_size = 0
        self.records_submitted = 0

        self._closed = False
        self._failed = False
        self._abort = threading.Event()
        self._records: queue.Queue = queue.Queue(maxsize=_CHANNEL_DEPTH)

        self._sinks: List[_Sink] = []
        try:
            for codec in self.codecs:
                self._sinks.append(_Sink(codec, layer, self.workdir))
        except BuildError:
            for sink in self._sinks:
                sink.release()
            raise

        self._executor = ThreadPoolExecutor(
            max_workers=len(self._sinks) + 1,
            thread_name_prefix=f"fanout-layer{layer}",
        )
        self._workers = [
            self._executor.submit(self._compress_worker, sink) for sink in self._sinks
        ]
        self._serializer = self._executor.submit(self._serialize_worker)

    # -- context manager ----------------------------------------------------

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if not self._closed:
            if exc_type is None:
                self.close()
            else:
                self.abort()
        return False

    # -- producer side ------------------------------------------------------

    def submit(self, record) -> None:
        """Queue one record; records reach every codec in submission order."""
        if self._closed:
            raise RuntimeError("submit() called on a closed FanoutEncoder")
        self._records.put(record)
        self.records_submitted += 1

    def close(self) -> Dict[str, int]:
        """Finish every stream and wait for all workers.

        Returns:
            Compressed size per codec name.

        Raises:
            FanoutAggregateError: one entry per failed worker.
        """
        if self._closed:
            raise RuntimeError("FanoutEncoder is already closed")
        self._closed = True
        self._records.put(_DONE)

        errors = []
        for future in [self._serializer] + self._workers:
            exc = future.exception()
            if exc is not None:
                errors.append(exc)
        self._executor.shutdown(wait=True)

        if errors:
            self._failed = True
            raise FanoutAggregateError(self.layer, errors)

        logger.debug(
            "layer %d encoded size: %s bytes from %s records",
            self.layer, f"{self.encoded_size:,}", f"{self.records_submitted:,}",
        )
        return self.sizes()

    def abort(self) -> None:
        """Stop all workers without reporting their errors."""
        if self._closed:
            return
        self._closed = True
        self._failed = True
        self._abort.set()
        self._records.put(_DONE)
        for future in [self._serializer] + self._workers:
            exc = future.exception()
            if exc is not None:
                logger.debug("layer %d worker error during abort: %s", self.layer, exc)
        self._executor.shutdown(wait=True)

    # -- results ------------------------------------------------------------

    def sizes(self) -> Dict[str, int]:
        """Bytes written by each codec's store."""
        self._require_finished()
        sizes = {}
        for sink in self._sinks:
            try:
                sizes[sink.codec.name] = sink.size()
            except OSError as exc:
                raise BuildError(
                    f"getting file info: {exc}", layer=self.layer, codec=sink.codec.name,
                ) from exc
        return sizes

    def winning_result(self) -> WinningResult:
        """Return the smallest candidate; ties go to the earlier codec."""
        sizes = self.sizes()
        best = None
        for sink in self._sinks:
            size = sizes[sink.codec.name]
            logger.info(
                "layer %d %s: compressed %s bytes, ratio %.2f",
                self.layer, sink.codec.name, f"{size:,}",
                self.encoded_size / max(size, 1),
            )
            if best is None or size < sizes[best.codec.name]:
                best = sink
        logger.info(
            "layer %d: %s won the compression competition with %s bytes",
            self.layer, best.codec.name, f"{sizes[best.codec.name]:,}",
        )
        try:
            content = best.read()
        except OSError as exc:
            raise BuildError(
                f"reading winning file: {exc}", layer=self.layer, codec=best.codec.name,
            ) from exc
        return WinningResult(
            content=content,
            codec=best.codec.name,
            sizes=sizes,
            encoded_size=self.encoded_size,
        )

    def discard(self) -> None:
        """Remove layer files written by this encoder."""
        for sink in self._sinks:
            if sink.path is not None:
                sink.path.unlink(missing_ok=True)

    def _require_finished(self):
        if not self._closed:
            raise RuntimeError("FanoutEncoder results requested before close()")
        if self._failed:
            raise RuntimeError("FanoutEncoder failed; results are not valid")

    # -- threads ------------------------------------------------------------

    def _broadcast(self, chunk: bytes) -> None:
        for sink in self._sinks:
            sink.channel.put(chunk)

    def _serialize_worker(self) -> None:
        buf = bytearray()
        error = None
        index = -1
        failed_at = None
        try:
            while True:
                record = self._records.get()
                if record is _DONE:
                    break
                index += 1
                if error is not None or self._abort.is_set():
                    continue  # drain so submit() never blocks
                try:
                    buf += record.pack()
                except Exception as exc:
                    error = exc
                    failed_at = index
                    continue
                if len(buf) >= _CHUNK_SIZE:
                    self.encoded_size += len(buf)
                    self._broadcast(bytes(buf))
                    buf.clear()
            if buf and error is None and not self._abort.is_set():
                self.encoded_size += len(buf)
                self._broadcast(bytes(buf))
        finally:
            for sink in self._sinks:
                sink.channel.put(_DONE)
        if error is not None:
            raise BuildError(
                f"encoding record {failed_at}: {error}", layer=self.layer,
            ) from error

    def _compress_worker(self, sink: _Sink) -> None:
        error = None
        while True:
            chunk = sink.channel.get()
            if chunk is _DONE:
                break
            if error is not None or self._abort.is_set():
                continue  # keep draining so the serializer is never stuck
            try:
                sink.fh.write(sink.compressor.compress(chunk))
            except Exception as exc:
                error = exc
        if error is None and not self._abort.is_set():
            try:
                sink.fh.write(sink.compressor.flush())
            except Exception as exc:
                error = exc
        if sink.path is not None:
            try:
                sink.fh.close()
            except OSError as exc:
                error = error or exc
        if error is not None:
            raise BuildError(
                f"compression routine: {error}", layer=self.layer, codec=sink.codec.name,
            ) from error
