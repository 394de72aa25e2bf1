from __future__ import annotations

import os
import sys

import numpy as np

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from partition import compact_labels, count_components, partitions_equal, reference_label


def test_compact_labels_inplace():
    labels = np.array([0, 7, 7, 3, 0, 12], dtype=np.int64).reshape(6, 1, 1)
    K = compact_labels(labels)
    assert K == 3
    assert labels.ravel().tolist() == [0, 2, 2, 1, 0, 3]


def test_compact_labels_empty_and_background():
    assert compact_labels(np.zeros((0, 2, 2), dtype=np.int64)) == 0
    z = np.zeros((2, 2, 2), dtype=np.int64)
    assert compact_labels(z) == 0
    assert not z.any()


def test_count_components():
    labels = np.array([0, 1, 1, 4, 0, 9], dtype=np.int64).reshape(2, 3, 1)
    assert count_components(labels) == 3
    assert count_components(np.zeros((2, 2, 2), dtype=np.int64)) == 0


def test_partitions_equal_ignores_id_values():
    a = np.array([1, 1, 0, 2, 3], dtype=np.int64).reshape(5, 1, 1)
    b = np.array([5, 5, 0, 9, 4], dtype=np.int64).reshape(5, 1, 1)
    assert partitions_equal(a, b)


def test_partitions_equal_detects_merge_split_and_background():
    a = np.array([1, 1, 0, 2, 2], dtype=np.int64).reshape(5, 1, 1)
    merged = np.array([1, 1, 0, 1, 1], dtype=np.int64).reshape(5, 1, 1)
    split = np.array([1, 3, 0, 2, 2], dtype=np.int64).reshape(5, 1, 1)
    moved = np.array([1, 0, 1, 2, 2], dtype=np.int64).reshape(5, 1, 1)
    assert not partitions_equal(a, merged)
    assert not partitions_equal(a, split)
    assert not partitions_equal(a, moved)
    assert not partitions_equal(a, a.reshape(1, 5, 1))


def test_reference_label_uses_full_cube_and_scan_order():
    vol = np.zeros((4, 4, 4), dtype=np.int64)
    vol[3, 3, 3] = 1
    vol[0, 0, 2] = 1
    vol[1, 1, 3] = 1  # corner-adjacent to (0,0,2)
    vol[0, 3, 0] = 1
    ref = reference_label(vol)
    assert ref[0, 0, 2] == 1 and ref[1, 1, 3] == 1
    assert ref[0, 3, 0] == 2
    assert ref[3, 3, 3] == 3


def test_reference_label_background():
    ref = reference_label(np.zeros((3, 3, 3), dtype=np.int64))
    assert not ref.any()
