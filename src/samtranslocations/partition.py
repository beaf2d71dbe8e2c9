from __future__ import annotations

import logging
from typing import Dict, Iterable, Mapping, Optional, Tuple

from .errors import ConfigurationError
from .models import FALLBACK_PARTITION, AlignedRecord, PartitionState

logger = logging.getLogger(__name__)

ANY_PARTITION = "all"

# groupby name -> read-group header fields joined into the label
_GROUPBY_FIELDS: Dict[str, Tuple[str, ...]] = {
    "readgroup": ("ID",),
    "sample": ("SM",),
    "library": ("LB",),
    "platform": ("PL",),
    "center": ("CN",),
    "sample_by_platform": ("SM", "PL"),
    "sample_by_center": ("SM", "CN"),
    "sample_by_platform_by_center": ("SM", "PL", "CN"),
    "any": (),
}

GROUPBY_CHOICES = tuple(_GROUPBY_FIELDS)


class Partitioner:
    """Derive a partition label from a read's RG tag and the header read groups."""

    def __init__(
        self,
        groupby: str = "sample",
        read_groups: Optional[Iterable[Mapping[str, str]]] = None,
    ) -> None:
        if groupby not in _GROUPBY_FIELDS:
            raise ConfigurationError(
                f"Unknown --groupby '{groupby}'. Choose one of: {', '.join(GROUPBY_CHOICES)}"
            )
        self.groupby = groupby
        self._labels: Dict[str, str] = {}
        fields = _GROUPBY_FIELDS[groupby]
        for rg in read_groups or []:
            rg_id = rg.get("ID")
            if rg_id is None:
                continue
            values = [rg.get(f) for f in fields]
            if any(v is None or v == "" for v in values):
                continue
            self._labels[str(rg_id)] = "_".join(str(v) for v in values)

    @classmethod
    def from_header(cls, header: Mapping[str, object], groupby: str = "sample") -> "Partitioner":
        """Build from a header dict (``pysam.AlignmentHeader.to_dict()``)."""
        rgs = header.get("RG", []) if header else []
        return cls(groupby, read_groups=rgs)  # type: ignore[arg-type]

    def label(self, read_group: Optional[str]) -> str:
        if self.groupby == "any":
            return ANY_PARTITION
        if read_group is None:
            return FALLBACK_PARTITION
        return self._labels.get(read_group, FALLBACK_PARTITION)


class PartitionClaims:
    """Per-partition claim states, owned by one clustering run.

    A claim is a single record reference; the main loop skips every record of
    that partition until it consumes the claimed record itself.
    """

    def __init__(self) -> None:
        self._states: Dict[str, PartitionState] = {}

    def get_or_create(self, key: str) -> PartitionState:
        state = self._states.get(key)
        if state is None:
            state = PartitionState(name=key)
            self._states[key] = state
            logger.debug("New partition: %s", key)
        return state

    @staticmethod
    def is_claimed(state: PartitionState, record: AlignedRecord) -> bool:
        return state.claimed is not None and state.claimed is record

    @staticmethod
    def claim(state: PartitionState, record: Optional[AlignedRecord]) -> None:
        state.claimed = record

    @staticmethod
    def clear(state: PartitionState) -> None:
        state.claimed = None

    def __contains__(self, key: object) -> bool:
        return key in self._states

    def __len__(self) -> int:
        return len(self._states)
