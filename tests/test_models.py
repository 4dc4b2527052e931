import pytest

from conftest import make_participant
from models import (
    Participant,
    SessionAmount,
    add_participants,
    new_participant,
    set_session_organizer,
    set_sole_organizer,
)


def test_participant_defaults():
    p = make_participant("田中")
    assert p.is_organizer is False
    assert p.attending_sessions == ()
    assert p.organizing_sessions == ()
    assert not p.attends(1)


def test_participant_normalizes_sessions():
    p = make_participant("A", attending_sessions=[3, 1, 3, 2], organizing_sessions={2})
    assert p.attending_sessions == (1, 2, 3)
    assert p.organizing_sessions == (2,)
    assert p.organizes(2) and not p.organizes(1)


def test_organizing_must_be_subset_of_attending():
    with pytest.raises(ValueError):
        Participant(id="x", name="A", role="junior", attending_sessions=(1,), organizing_sessions=(2,))


def test_new_participant_gets_unique_id():
    a = new_participant("A", "junior")
    b = new_participant("B", "senior")
    assert a.id and b.id and a.id != b.id


def test_session_amount_label_and_active():
    assert SessionAmount(2, 3000).label == "2次会"
    assert SessionAmount(1, 100, "一次会").label == "一次会"
    assert SessionAmount(1, 100).is_active
    assert not SessionAmount(1, 0).is_active


def test_set_sole_organizer_clears_others():
    participants = [make_participant("A", is_organizer=True), make_participant("B"), make_participant("C")]

    updated = set_sole_organizer(participants, "C")

    assert [p.is_organizer for p in updated] == [False, False, True]
    assert [p.is_organizer for p in participants] == [True, False, False]
    assert not any(p.is_organizer for p in set_sole_organizer(updated, None))


def test_set_session_organizer_is_scoped_to_session():
    participants = [
        make_participant("A", attending_sessions=(1, 2), organizing_sessions=(1, 2)),
        make_participant("B", attending_sessions=(1, 2)),
    ]

    updated = set_session_organizer(participants, "B", 1)

    assert updated[0].organizing_sessions == (2,)
    assert updated[1].organizing_sessions == (1,)

    cleared = set_session_organizer(updated, None, 1)
    assert [p.organizing_sessions for p in cleared] == [(2,), ()]


def test_set_session_organizer_requires_attendance():
    participants = [make_participant("A", attending_sessions=(1,))]
    with pytest.raises(ValueError):
        set_session_organizer(participants, "A", 2)


def test_add_participants_keeps_single_organizer():
    existing = [make_participant("A", is_organizer=True), make_participant("B")]

    kept = add_participants(existing, [make_participant("C")])
    assert [p.is_organizer for p in kept] == [True, False, False]

    replaced = add_participants(existing, [make_participant("D", is_organizer=True)])
    assert [p.name for p in replaced] == ["A", "B", "D"]
    assert [p.is_organizer for p in replaced] == [False, False, True]
