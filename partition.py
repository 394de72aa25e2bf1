from __future__ import annotations

import numpy as np
from scipy import ndimage


def compact_labels(labels: np.ndarray) -> int:
    """Relabel positive labels in-place to compact 1..K. Return K.

    Relative order of the ids is kept, so scan-ordered ids stay scan-ordered.
    """
    if labels.size == 0:
        return 0
    u = np.unique(labels)
    u = u[u > 0]
    if u.size == 0:
        return 0
    lut = np.zeros(int(u.max()) + 1, dtype=labels.dtype)
    lut[u] = np.arange(1, u.size + 1, dtype=labels.dtype)
    pos = labels > 0
    labels[pos] = lut[labels[pos]]
    return int(u.size)


def count_components(labels: np.ndarray) -> int:
    u = np.unique(labels)
    return int(np.count_nonzero(u > 0))


def partitions_equal(a: np.ndarray, b: np.ndarray) -> bool:
    """True if `a` and `b` have the same background and the same components.

    Ids themselves may differ; the label-to-label map over foreground voxels
    must be one-to-one.
    """
    a = np.asarray(a)
    b = np.asarray(b)
    if a.shape != b.shape:
        return False
    fa = a > 0
    if not np.array_equal(fa, b > 0):
        return False
    if not fa.any():
        return True
    La = a[fa].astype(np.int64, copy=False)
    Lb = b[fa].astype(np.int64, copy=False)
    pairs = np.unique(np.stack([La, Lb], axis=1), axis=0)
    return pairs.shape[0] == np.unique(La).size == np.unique(Lb).size


def reference_label(volume: np.ndarray) -> np.ndarray:
    """26-connected labels from scipy.ndimage, renumbered in C scan order.

    Component ids follow the position of each component's first voxel in the
    x-outermost scan, the same order `iterative_recursion.label` assigns.
    """
    mask = np.asarray(volume) != 0
    structure = np.ones((3, 3, 3), dtype=bool)
    labeled, K = ndimage.label(mask, structure=structure)
    labeled = labeled.astype(np.int64, copy=False)
    if K == 0:
        return labeled
    vals, first = np.unique(labeled.ravel(), return_index=True)
    keep = vals != 0
    vals, first = vals[keep], first[keep]
    order = np.argsort(first, kind="stable")
    lut = np.zeros(int(K) + 1, dtype=np.int64)
    lut[vals[order]] = np.arange(1, vals.size + 1, dtype=np.int64)
    return lut[labeled]
