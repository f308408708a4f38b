"""Central configuration for building and loading lookup tables."""

from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import BuildError


@dataclass
class TableConfig:
    """All table build parameters in one place."""

    # --- Layout ---
    # log2 of the values covered per step; index 0 is the leaf bitmap
    bit_widths: Tuple[int, ...] = (17, 6, 7, 11, 7, 7, 5, 4)
    address_bits: int = 64
    seed_byte: int = 0xAA  # parity: odd offsets set

    # --- Compression ---
    codecs: Optional[Tuple[str, ...]] = None  # None = every registered codec

    # --- Files ---
    table_path: str = "lookup_table"
    workdir: Optional[str] = ".tmp-layers"  # None = in-memory layer buffers
    keep_layers: bool = False

    # --- Progress ---
    progress_every: int = 4096  # records between progress callbacks

    @property
    def layer_count(self) -> int:
        return len(self.bit_widths)

    @property
    def leaf_bytes(self) -> int:
        return 1 << (self.bit_widths[0] - 3)

    @property
    def domain_size(self) -> int:
        return 1 << self.address_bits

    def validate(self) -> None:
        if not self.bit_widths:
            raise BuildError("at least one bit width is required")
        if any(w < 0 for w in self.bit_widths):
            raise BuildError(f"bit widths must be non-negative: {self.bit_widths}")
        if self.bit_widths[0] < 3:
            raise BuildError(
                f"leaf bit width must be at least 3 (whole bytes), got {self.bit_widths[0]}"
            )
        total = sum(self.bit_widths)
        if total != self.address_bits:
            raise BuildError(
                f"expected total bit depth to be {self.address_bits}, but it was {total}"
            )
        if not 0 < self.address_bits <= 64:
            raise BuildError(f"address width must be 1..64 bits, got {self.address_bits}")
        if not 0 <= self.seed_byte <= 0xFF:
            raise BuildError(f"seed byte out of range: {self.seed_byte}")
