from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from .errors import ConfigurationError
from .partition import GROUPBY_CHOICES


@dataclass(frozen=True)
class ScanConfig:
    """Parameters of one translocation scan.

    Attributes
    ----------
    max_distance:
        Largest gap allowed between an anchor's end and the start of a record
        still considered for its clusters. Must be > 0.
    fuzzy_distance:
        Tolerance for two reads "ending at about the same place".
    min_count_forward:
        Minimum size of both the forward and the reverse cluster.
    region:
        Optional ``chr:start-end`` restriction applied when reading inputs.
    filter_expression:
        Optional expression; reads for which it is true are discarded.
    groupby:
        Partition strategy, see :mod:`samtranslocations.partition`.
    legacy_percentages:
        Divide the reverse-strand percentage around the first midpoint by the
        forward cluster size, as older releases did.
    isolate_partitions:
        Only admit records of the anchor's own partition to its clusters. By
        default a cluster takes every qualifying record in the window and the
        claim is kept on the anchor's partition.
    """

    max_distance: int = 50
    fuzzy_distance: int = 10
    min_count_forward: int = 5
    region: Optional[str] = None
    filter_expression: Optional[str] = None
    groupby: str = "sample"
    legacy_percentages: bool = False
    isolate_partitions: bool = False

    def validate(self) -> "ScanConfig":
        if self.max_distance <= 0:
            raise ConfigurationError(f"max_distance must be > 0 (got {self.max_distance})")
        if self.fuzzy_distance < 0:
            raise ConfigurationError(f"fuzzy_distance must be >= 0 (got {self.fuzzy_distance})")
        if self.min_count_forward < 1:
            raise ConfigurationError(
                f"min_count_forward must be >= 1 (got {self.min_count_forward})"
            )
        if self.groupby not in GROUPBY_CHOICES:
            raise ConfigurationError(
                f"Unknown groupby '{self.groupby}'. Choose one of: {', '.join(GROUPBY_CHOICES)}"
            )
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
