"""Smoke tests for the Streamlit app using AppTest."""

from pathlib import Path

import pytest
from streamlit.testing.v1 import AppTest

from config import MAX_SESSIONS
from conftest import make_participant
from models import DEFAULT_COEFFICIENTS, SessionAmount
from sharing import compress_data_for_url

APP_PATH = str(Path(__file__).resolve().parents[1] / "warikan.py")


def _state(**overrides):
    state = {
        "event_name": "",
        "mode": "1回の会計",
        "total_amount": "",
        "participants": [],
        "coefficients": dict(DEFAULT_COEFFICIENTS),
        "session_count": 2,
        "session_amounts": {n: "" for n in range(1, MAX_SESSIONS + 1)},
    }
    state.update(overrides)
    return state


@pytest.fixture
def app():
    return AppTest.from_file(APP_PATH, default_timeout=30)


def _code_text(at):
    return "\n".join(c.value for c in at.code)


def test_app_starts_empty(app):
    app.run()

    assert not app.exception
    assert "傾斜割り勘の達人" in app.title[0].value
    assert any("参加者を追加してください" in i.value for i in app.info)


def test_single_total_is_split(app):
    app.session_state["warikan_data"] = _state(
        total_amount="1234",
        participants=[
            make_participant("A", "junior"),
            make_participant("B", "manager"),
            make_participant("C", "middle"),
        ],
    )
    app.run()

    assert not app.exception
    text = _code_text(app)
    assert "A（ジュニア）: ¥334" in text
    assert "B（マネージャー）: ¥600" in text
    assert "C（ミドル）: ¥300" in text
    assert "?data=" in text
    assert any("34円の端数" in w.value for w in app.warning)


def test_multi_session_is_split(app):
    app.session_state["warikan_data"] = _state(
        mode="複数の会 (1次会・2次会…)",
        session_amounts={**{n: "" for n in range(1, MAX_SESSIONS + 1)}, 1: "1000", 2: "500"},
        participants=[
            make_participant("A", attending_sessions=(1, 2)),
            make_participant("B", attending_sessions=(1,)),
        ],
    )
    app.run()

    assert not app.exception
    text = _code_text(app)
    assert "A（ジュニア）: ¥1,000" in text
    assert "B（ジュニア）: ¥500" in text


def test_session_without_attendees_is_flagged(app):
    app.session_state["warikan_data"] = _state(
        mode="複数の会 (1次会・2次会…)",
        session_amounts={**{n: "" for n in range(1, MAX_SESSIONS + 1)}, 1: "1000", 2: "500"},
        participants=[make_participant("A", attending_sessions=(1,))],
    )
    app.run()

    assert not app.exception
    assert any("2次会" in w.value and "参加者がいません" in w.value for w in app.warning)
    assert app.error


def test_shared_url_restores_inputs(app):
    participants = [make_participant("田中", "senior"), make_participant("佐藤", "junior", is_organizer=True)]
    app.query_params["data"] = compress_data_for_url("忘年会", participants, DEFAULT_COEFFICIENTS, total_amount=9999)
    app.run()

    assert not app.exception
    data = app.session_state["warikan_data"]
    assert data["event_name"] == "忘年会"
    assert data["total_amount"] == "9999"
    assert [p.name for p in data["participants"]] == ["田中", "佐藤"]
    assert "佐藤（ジュニア・幹事）" in _code_text(app)


def test_broken_shared_url_shows_error(app):
    app.query_params["data"] = "broken"
    app.run()

    assert not app.exception
    assert any("共有URL" in e.value for e in app.error)


@pytest.mark.parametrize(
    "coefficients,sessions",
    [
        (dict(DEFAULT_COEFFICIENTS, junior=0), ()),
        (dict(DEFAULT_COEFFICIENTS, manager=50), ()),
        (dict(DEFAULT_COEFFICIENTS), (SessionAmount(MAX_SESSIONS + 1, 1000),)),
    ],
)
def test_out_of_range_shared_url_shows_error(app, coefficients, sessions):
    participants = [make_participant("田中", attending_sessions=(1,))]
    app.query_params["data"] = compress_data_for_url("", participants, coefficients, total_amount=1000, sessions=sessions)
    app.run()

    assert not app.exception
    assert any("共有URL" in e.value for e in app.error)
    assert app.session_state["warikan_data"]["participants"] == []


def test_shared_url_with_small_coefficient_loads(app):
    participants = [make_participant("田中"), make_participant("佐藤", "manager")]
    coefficients = dict(DEFAULT_COEFFICIENTS, junior=0.05)
    app.query_params["data"] = compress_data_for_url("", participants, coefficients, total_amount=1000)
    app.run()

    assert not app.exception
    assert app.session_state["warikan_data"]["coefficients"]["junior"] == 0.05


def test_bulk_editor_hides_organizer_column_in_multi_mode(app):
    app.session_state["warikan_data"] = _state(mode="複数の会 (1次会・2次会…)")
    app.run()

    assert not app.exception
    assert list(app.dataframe[0].value.columns) == ["name", "role"]


def test_bulk_editor_has_organizer_column_in_single_mode(app):
    app.session_state["warikan_data"] = _state()
    app.run()

    assert not app.exception
    assert list(app.dataframe[0].value.columns) == ["name", "role", "is_organizer"]
