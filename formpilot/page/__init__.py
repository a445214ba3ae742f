from .base import ControlRef, FormAdapter
from .snapshot import SnapshotControl, SnapshotFormAdapter

__all__ = [
    "ControlRef", "FormAdapter", "SnapshotControl", "SnapshotFormAdapter",
]
