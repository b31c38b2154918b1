from __future__ import annotations

import pytest

from stake_counter.core.models import Collection, Detection
from stake_counter.core.review import ReviewController, ReviewState
from stake_counter.core.session import DetectionSession


def _det(det_id: int, confidence: float) -> Detection:
    x = det_id * 50.0 + 100.0
    return Detection(id=det_id, x1=x, y1=100.0, x2=x + 40.0, y2=180.0, confidence=confidence)


def build_session(doubts: int = 3) -> DetectionSession:
    session = DetectionSession(1000, 1000, doubt_threshold=0.5)
    session.populate(
        [_det(0, 0.9)],
        [_det(idx, 0.45 - idx * 0.02) for idx in range(1, doubts + 1)],
    )
    return session


def test_start_review_without_doubts_is_noop() -> None:
    session = DetectionSession(100, 100)
    session.populate([_det(0, 0.9)], [])
    controller = ReviewController(session)

    assert controller.start_review() is False
    assert controller.state is ReviewState.IDLE
    assert controller.current() is None


def test_start_review_enters_first_doubt() -> None:
    controller = ReviewController(build_session())

    assert controller.start_review() is True
    assert controller.state is ReviewState.REVIEWING
    assert controller.index == 0
    assert controller.current().id == 1
    assert controller.progress() == (1, 3)


@pytest.mark.parametrize("action", ["accept", "reject"])
def test_review_terminates_in_n_steps(action: str) -> None:
    session = build_session(doubts=5)
    controller = ReviewController(session)
    before = session.total_confirmed + len(session.rejected)
    controller.start_review()

    steps = 0
    while controller.state is ReviewState.REVIEWING:
        assert getattr(controller, action)() is not None
        steps += 1
        assert steps <= 5

    assert steps == 5
    assert controller.state is ReviewState.DONE
    assert session.doubt == []
    assert session.total_confirmed + len(session.rejected) == before + 5


def test_accept_moves_current_without_advancing_index() -> None:
    session = build_session()
    controller = ReviewController(session)
    controller.start_review()

    accepted = controller.accept()

    assert accepted.id == 1
    assert accepted.was_doubt
    assert controller.index == 0
    assert controller.current().id == 2
    assert session.locate(1) is Collection.CONFIRMED


def test_reject_moves_to_rejected_without_flag() -> None:
    session = build_session()
    controller = ReviewController(session)
    controller.start_review()

    rejected = controller.reject()

    assert rejected.id == 1
    assert not rejected.was_doubt
    assert [det.id for det in session.rejected] == [1]
    assert session.manually_accepted == 0


def test_accepting_sole_doubt_finishes_review() -> None:
    session = build_session(doubts=1)
    controller = ReviewController(session)
    controller.start_review()

    accepted = controller.accept()

    assert controller.state is ReviewState.DONE
    assert accepted.was_doubt
    assert session.find(Collection.CONFIRMED, accepted.id).was_doubt
    assert session.manually_accepted == 1


def test_accept_outside_review_is_noop() -> None:
    session = build_session()
    controller = ReviewController(session)

    assert controller.accept() is None
    assert controller.reject() is None
    assert session.pending_doubts == 3


def test_accept_with_stale_id_is_noop() -> None:
    session = build_session()
    controller = ReviewController(session)
    controller.start_review()

    assert controller.accept(detection_id=3) is None
    assert session.pending_doubts == 3
    assert controller.accept(detection_id=1).id == 1


def test_refresh_closes_review_when_queue_drained_elsewhere() -> None:
    session = build_session(doubts=1)
    controller = ReviewController(session)
    controller.start_review()
    session.move(1, Collection.DOUBT, Collection.CONFIRMED, mark_doubt=True)

    assert controller.current() is None
    assert controller.accept() is None
    assert controller.refresh() is ReviewState.DONE


def test_review_can_restart_after_done() -> None:
    session = build_session(doubts=1)
    controller = ReviewController(session)
    controller.start_review()
    controller.reject()
    assert controller.start_review() is False

    session.move(1, Collection.REJECTED, Collection.DOUBT)

    assert controller.start_review() is True
    assert controller.current().id == 1


def test_review_crop_pads_and_scales() -> None:
    controller = ReviewController(build_session(), crop_padding=50, crop_max_size=400)
    controller.start_review()

    crop = controller.review_crop()

    assert (crop.x, crop.y, crop.width, crop.height) == pytest.approx((100, 50, 140, 180))
    assert crop.scale == pytest.approx(400 / 180)
    assert crop.box_in_crop() == pytest.approx((50 * crop.scale, 50 * crop.scale, 90 * crop.scale, 130 * crop.scale))


def test_review_crop_is_clipped_at_image_border() -> None:
    session = DetectionSession(120, 120)
    session.populate([], [Detection(id=0, x1=10, y1=20, x2=40, y2=60, confidence=0.3)])
    controller = ReviewController(session)
    controller.start_review()

    crop = controller.review_crop()

    assert (crop.x, crop.y) == (0.0, 0.0)
    assert crop.width == pytest.approx(120)
    assert crop.height == pytest.approx(120)
