"""
SLA Domain Entities
===================

Pure Python results of an SLA scan.
"""

from dataclasses import dataclass
from typing import Dict


@dataclass
class ScanResult:
    """
    Outcome of one scan pass.

    scanned counts matched issues (overdue, not yet flagged, not in a final
    state of their tenant's workflow); breached counts those this pass
    flagged; failed counts issues whose processing raised and was skipped.
    """

    scanned: int = 0
    breached: int = 0
    failed: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {"scanned": self.scanned, "breached": self.breached, "failed": self.failed}
