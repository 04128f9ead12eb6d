from .snapshot_options import (
    SnapshotOptions,
    coerce_option_value,
    resolve_snapshot_options,
    snapshot_option_names,
)

__all__ = [
    "SnapshotOptions",
    "coerce_option_value",
    "resolve_snapshot_options",
    "snapshot_option_names",
]
