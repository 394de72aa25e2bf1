"""
iterative_recursion.py

26-connected component labeling of a 3-D binary volume by iterative recursion
(Q. Hu, G. Qian, W.L. Nowinski, "Fast connected-component labelling in
three-dimensional binary images based on iterative recursion", CVIU 99(3),
2005).

Growth never walks the whole volume at once. Each step copies a small window
around a seed into a scratch buffer, grows the region inside that window shell
by shell, and pushes voxels on the window's outer face onto a FIFO worklist so
the component keeps growing from there in the next window. One component is
drained completely before the label counter moves on.

Primary API
-----------

    from iterative_recursion import label

    volume = (np.random.default_rng(0).random((20, 20, 20)) < 0.3).astype(np.int64)
    labels = label(volume, (5, 7, 7))

Labels are 1..K in first-discovery order of the x-outermost scan; 0 is
background.
"""

from __future__ import annotations

import math
from typing import Tuple

import numpy as np
from numba import njit


# Voxel states in the working label volume. DISCOVERED only ever lives in the
# scratch buffer; any value >= FIRST_LABEL is a finalized component id.
BACKGROUND = 0
UNVISITED = 1
DISCOVERED = -10
FIRST_LABEL = 3

_QUEUE_CAPACITY = 64


def window_radii(shape, window_shape) -> Tuple[int, int, int]:
    """Per-axis window radius, ceil(max(1, min(dim, window) - 1) / 2).

    Always >= 1, so the effective window is at least 3 voxels wide per axis.
    """
    return tuple(
        int(math.ceil(max(1, min(int(b), int(w)) - 1) / 2))
        for b, w in zip(shape, window_shape)
    )


@njit(inline='always')
def _on_outer_face(x, y, z, n1, n2, n3):
    return abs(x - n1) == n1 or abs(y - n2) == n2 or abs(z - n3) == n3


@njit
def _enqueue(queue, tail, x, y, z):
    if tail == queue.shape[0]:
        grown = np.empty((2 * queue.shape[0], 3), dtype=np.int64)
        grown[:tail] = queue[:tail]
        queue = grown
    queue[tail, 0] = x
    queue[tail, 1] = y
    queue[tail, 2] = z
    return queue, tail + 1


@njit
def _shell(distance, cx, cy, cz, n1, n2, n3):
    """Buffer-local coordinates at Chebyshev distance `distance` from (cx,cy,cz).

    Clipped to the (2n1+1, 2n2+1, 2n3+1) buffer, so shells near the buffer
    edge come back short. Returned as an (M,3) int64 array, x slowest.
    """
    x0 = max(0, cx - distance)
    x1 = min(2 * n1, cx + distance)
    y0 = max(0, cy - distance)
    y1 = min(2 * n2, cy + distance)
    z0 = max(0, cz - distance)
    z1 = min(2 * n3, cz + distance)

    out = np.empty(((x1 - x0 + 1) * (y1 - y0 + 1) * (z1 - z0 + 1), 3), dtype=np.int64)
    m = 0
    for x in range(x0, x1 + 1):
        for y in range(y0, y1 + 1):
            for z in range(z0, z1 + 1):
                if max(abs(x - cx), abs(y - cy), abs(z - cz)) == distance:
                    out[m, 0] = x
                    out[m, 1] = y
                    out[m, 2] = z
                    m += 1
    return out[:m]


@njit
def _extract_window(labels, cx, cy, cz, n1, n2, n3, scratch):
    """Copy the window around global (cx,cy,cz) into `scratch`.

    The buffer is reset first; window cells outside the volume stay BACKGROUND.
    """
    ni, nj, nk = labels.shape
    scratch[:, :, :] = BACKGROUND

    i0 = max(cx - n1, 0)
    i1 = min(cx + n1, ni - 1)
    j0 = max(cy - n2, 0)
    j1 = min(cy + n2, nj - 1)
    k0 = max(cz - n3, 0)
    k1 = min(cz + n3, nk - 1)

    si = i0 - cx + n1
    sj = j0 - cy + n2
    sk = k0 - cz + n3
    scratch[si:si + (i1 - i0 + 1), sj:sj + (j1 - j0 + 1), sk:sk + (k1 - k0 + 1)] = \
        labels[i0:i1 + 1, j0:j1 + 1, k0:k1 + 1]


@njit
def _grow_window(scratch, cx, cy, cz, n1, n2, n3, label_id, queue, tail):
    """Grow the region of the window center inside `scratch` and label it.

    (cx,cy,cz) is the global coordinate of the buffer center. Voxels that may
    continue past the window (outer face, or left DISCOVERED after the shell
    sweep) are pushed onto `queue` as global coordinates.
    Returns the (possibly reallocated) queue and the new tail.
    """
    scratch[n1, n2, n3] = label_id

    first = _shell(1, n1, n2, n3, n1, n2, n3)
    for t in range(first.shape[0]):
        x, y, z = first[t, 0], first[t, 1], first[t, 2]
        if scratch[x, y, z] == UNVISITED:
            scratch[x, y, z] = DISCOVERED

    # Shells strictly in increasing distance from the center.
    for window_size in range(1, max(n1, n2, n3) + 1):
        shell = _shell(window_size, n1, n2, n3, n1, n2, n3)
        for t in range(shell.shape[0]):
            vx, vy, vz = shell[t, 0], shell[t, 1], shell[t, 2]
            if scratch[vx, vy, vz] != DISCOVERED:
                continue
            if _on_outer_face(vx, vy, vz, n1, n2, n3):
                queue, tail = _enqueue(queue, tail, cx + vx - n1, cy + vy - n2, cz + vz - n3)

            neigh = _shell(1, vx, vy, vz, n1, n2, n3)
            for s in range(neigh.shape[0]):
                x, y, z = neigh[s, 0], neigh[s, 1], neigh[s, 2]
                if scratch[x, y, z] == UNVISITED:
                    scratch[x, y, z] = DISCOVERED
                    if _on_outer_face(x, y, z, n1, n2, n3):
                        queue, tail = _enqueue(queue, tail, cx + x - n1, cy + y - n2, cz + z - n3)

            scratch[vx, vy, vz] = label_id

    # Discovered after their shell was swept; their neighbors are unexplored.
    for x in range(2 * n1 + 1):
        for y in range(2 * n2 + 1):
            for z in range(2 * n3 + 1):
                if scratch[x, y, z] == DISCOVERED:
                    queue, tail = _enqueue(queue, tail, cx + x - n1, cy + y - n2, cz + z - n3)
                    scratch[x, y, z] = label_id

    return queue, tail


@njit
def _commit_window(labels, cx, cy, cz, n1, n2, n3, label_id, scratch):
    """Write cells of `scratch` holding `label_id` back into the global volume."""
    for x in range(2 * n1 + 1):
        for y in range(2 * n2 + 1):
            for z in range(2 * n3 + 1):
                if scratch[x, y, z] == label_id:
                    labels[cx + x - n1, cy + y - n2, cz + z - n3] = label_id


@njit
def _label_volume(labels, n1, n2, n3):
    """Label `labels` (int64, 0/1 on entry) in place with ids FIRST_LABEL, FIRST_LABEL+1, ...

    Returns the number of components found.
    """
    ni, nj, nk = labels.shape
    scratch = np.empty((2 * n1 + 1, 2 * n2 + 1, 2 * n3 + 1), dtype=np.int64)
    queue = np.empty((_QUEUE_CAPACITY, 3), dtype=np.int64)
    label_id = FIRST_LABEL

    for i in range(ni):
        for j in range(nj):
            for k in range(nk):
                if labels[i, j, k] != UNVISITED:
                    continue
                head = 0
                queue, tail = _enqueue(queue, 0, i, j, k)
                # One component is fully drained before label_id advances.
                while head < tail:
                    vx = queue[head, 0]
                    vy = queue[head, 1]
                    vz = queue[head, 2]
                    head += 1
                    _extract_window(labels, vx, vy, vz, n1, n2, n3, scratch)
                    queue, tail = _grow_window(scratch, vx, vy, vz, n1, n2, n3, label_id, queue, tail)
                    _commit_window(labels, vx, vy, vz, n1, n2, n3, label_id, scratch)
                label_id += 1

    return label_id - FIRST_LABEL


def label(volume, window_shape) -> np.ndarray:
    """Label 26-connected components of a binary 3-D volume.

    - volume: array-like of exact 0/1 values (bool, integer or float dtype).
      Other values are not checked; binarize before calling.
    - window_shape: (int, int, int) size of the local window per step. Only
      affects speed and memory per step, never the partition.

    Returns an int64 array of the input shape: 1..K per component in scan
    order (x outermost, z innermost), 0 for background. The input is not
    modified.
    """
    vol = np.asarray(volume)
    window_shape = tuple(window_shape)
    if vol.ndim != 3:
        raise ValueError(f"volume must be 3-D, got ndim={vol.ndim}")
    if len(window_shape) != vol.ndim:
        raise ValueError(
            f"window_shape must have one entry per volume axis, got {len(window_shape)} for ndim={vol.ndim}"
        )

    labels = np.array(vol, dtype=np.int64, order='C')
    n1, n2, n3 = window_radii(labels.shape, window_shape)
    _label_volume(labels, n1, n2, n3)

    return np.where(labels >= FIRST_LABEL, labels - (FIRST_LABEL - 1), 0).astype(np.int64, copy=False)
