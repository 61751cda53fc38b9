import pytest

from boxcluster.clustering.errors import InvalidInputError
from boxcluster.clustering.representatives import best_boxes
from boxcluster.vision.types import ZERO_DETECTION, Detection, Labeling


def test_best_boxes_keeps_highest_confidence_per_cluster() -> None:
    dets = [
        Detection(0.2, 0, 0, 5, 5),
        Detection(0.8, 100, 100, 5, 5),
        Detection(0.6, 1, 1, 5, 5),
        Detection(0.4, 101, 99, 5, 5),
    ]
    out = best_boxes(dets, [0, 1, 0, 1], 2)
    assert out == [dets[2], dets[1]]


def test_best_boxes_first_seen_wins_ties() -> None:
    a = Detection(0.7, 0, 0, 1, 1)
    b = Detection(0.7, 9, 9, 1, 1)
    assert best_boxes([a, b], [0, 0], 1) == [a]


def test_empty_cluster_keeps_zero_placeholder() -> None:
    dets = [Detection(0.9, 10, 10, 5, 5), Detection(0.3, 12, 10, 5, 5)]
    out = best_boxes(dets, [2, 2], 3)
    assert len(out) == 3
    assert out == [ZERO_DETECTION, ZERO_DETECTION, dets[0]]


def test_zero_confidence_detection_never_replaces_placeholder() -> None:
    out = best_boxes([Detection(0.0, 50, 50, 5, 5)], [0], 1)
    assert out == [ZERO_DETECTION]


def test_best_boxes_is_idempotent() -> None:
    dets = [Detection(0.1 * i, i, i, 2, 2) for i in range(6)]
    labels = [0, 1, 2, 0, 1, 2]
    assert best_boxes(dets, labels, 4) == best_boxes(dets, labels, 4)


@pytest.mark.parametrize(
    ("labels", "k"),
    [
        ([0, 1], 0),  # k < 1
        ([0], 2),  # length mismatch
        ([0, 2], 2),  # label out of range
        ([0, -1], 2),
    ],
)
def test_best_boxes_rejects_invalid_labeling(labels: list[int], k: int) -> None:
    dets = [Detection(0.5, 0, 0, 1, 1), Detection(0.6, 1, 1, 1, 1)]
    with pytest.raises(InvalidInputError):
        best_boxes(dets, labels, k)


def test_labeling_members_lists_cluster_indices() -> None:
    labeling = Labeling(labels=(1, 0, 1, 2), k=4)
    assert labeling.members(1) == [0, 2]
    assert labeling.members(0) == [1]
    assert labeling.members(3) == []
