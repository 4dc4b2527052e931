"""Pytest configuration and shared fixtures."""

import pytest

from models import DEFAULT_COEFFICIENTS, Participant, SessionAmount


def make_participant(name, role="junior", **kwargs):
    """名前をそのままIDにした参加者"""
    return Participant(id=name, name=name, role=role, **kwargs)


@pytest.fixture
def coefficients():
    return dict(DEFAULT_COEFFICIENTS)


@pytest.fixture
def three_participants():
    return [
        make_participant("田中", "junior"),
        make_participant("佐藤", "manager"),
        make_participant("鈴木", "middle"),
    ]


@pytest.fixture
def two_sessions():
    return [SessionAmount(number=1, amount=1000), SessionAmount(number=2, amount=500)]
