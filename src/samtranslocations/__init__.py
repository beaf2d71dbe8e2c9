"""samtranslocations: balanced translocation breakpoints from discordant read pairs.

Public API is intentionally small; most users should use the CLI:

    samtranslocations scan sample.bam -o translocations.tsv

"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
