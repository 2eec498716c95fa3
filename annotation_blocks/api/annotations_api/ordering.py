"""
Canonical list ordering for images, tasks and labels.

Label order follows a fixed table per block type so that the annotation
toolbar always presents labels in drawing order.
"""

from types import MappingProxyType
from typing import List, Optional, Sequence

FLOOR_LABEL_ORDER = (
    "fp-outside",
    "fp-inside",
    "ewalls",
    "windows",
    "iwalls",
    "doors",
    "cav-slider",
    "stairs",
    "robes",
    "toilet",
    "vanity",
    "shower",
    "bathtub",
    "sink",
    "outbuilding",
    "scale",
    "dims",
    "area",
    "title",
    "legend",
)

ELEVATION_LABEL_ORDER = (
    "gf-wall",
    "gf-window",
    "gf-roof",
    "ff-wall",
    "ff-window",
    "ff-roof",
    "sf-wall",
    "sf-window",
    "sf-roof",
    "skylight",
    "fence",
    "dims",
    "area",
    "title",
    "legend",
)

ELECTRICAL_LABEL_ORDER = ("downlight", "gpo-single", "gpo-double")

ROOF_LABEL_ORDER = ("box-gutter",)

LABEL_ORDER_BY_BLOCK_TYPE = MappingProxyType(
    {
        "floor": FLOOR_LABEL_ORDER,
        "elevation": ELEVATION_LABEL_ORDER,
        "electrical": ELECTRICAL_LABEL_ORDER,
        "roof": ROOF_LABEL_ORDER,
    }
)


def label_position(block_type: Optional[str], label_name: str) -> Optional[int]:
    """Index of ``label_name`` in the table for ``block_type``, or None"""
    table = LABEL_ORDER_BY_BLOCK_TYPE.get((block_type or "").lower())
    if table is None or label_name not in table:
        return None
    return table.index(label_name)


def sort_labels(labels: Sequence, block_type: Optional[str]) -> List:
    """
    Sort labels by the block type's table.

    Labels in the table come first by table index; the rest follow sorted by
    name. An unknown block type sorts every label by name.
    """

    def sort_key(label):
        name = _field(label, "label_name") or ""
        position = label_position(block_type, name)
        if position is None:
            return (1, 0, name)
        return (0, position, name)

    return sorted(labels, key=sort_key)


def sort_images(images: Sequence) -> List:
    """Ascending ``order``; unordered images last, keeping their input order"""
    return sorted(
        images,
        key=lambda image: (
            _field(image, "order") is None,
            _field(image, "order") or 0,
        ),
    )


def sort_tasks(tasks: Sequence) -> List:
    """Newest first by ``created_at``"""
    return sorted(tasks, key=lambda task: _field(task, "created_at") or "", reverse=True)


def _field(entity, name: str):
    if isinstance(entity, dict):
        return entity.get(name)
    return getattr(entity, name, None)
