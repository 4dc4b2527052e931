import uuid
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

# ==========================================
# 0. 役職と係数
# ==========================================
ROLES = ("junior", "middle", "senior", "manager")

ROLE_LABELS = {
    "junior": "ジュニア",
    "middle": "ミドル",
    "senior": "シニア",
    "manager": "マネージャー",
}

DEFAULT_COEFFICIENTS = {
    "junior": 1.0,
    "middle": 1.3,
    "senior": 1.5,
    "manager": 2.0,
}


def _normalize_sessions(sessions):
    return tuple(sorted({int(n) for n in sessions}))


# ==========================================
# 1. 入力データ
# ==========================================
@dataclass(frozen=True)
class Participant:
    """参加者

    is_organizer は単一会計での幹事フラグ。
    attending_sessions / organizing_sessions は複数会計モードで使う
    (参加する会・幹事を務める会の番号)。未設定は空タプル。
    """

    id: str
    name: str
    role: str
    is_organizer: bool = False
    attending_sessions: Tuple[int, ...] = ()
    organizing_sessions: Tuple[int, ...] = ()

    def __post_init__(self):
        attending = _normalize_sessions(self.attending_sessions)
        organizing = _normalize_sessions(self.organizing_sessions)
        if not set(organizing) <= set(attending):
            raise ValueError(
                f"{self.name}: 幹事を務める会 {organizing} は参加する会 {attending} に含まれている必要があります"
            )
        object.__setattr__(self, "attending_sessions", attending)
        object.__setattr__(self, "organizing_sessions", organizing)

    def attends(self, session_number):
        return session_number in self.attending_sessions

    def organizes(self, session_number):
        return session_number in self.organizing_sessions


@dataclass(frozen=True)
class SessionAmount:
    """会ごとの金額 (1次会, 2次会 …)"""

    number: int
    amount: int
    label: str = ""

    def __post_init__(self):
        if not self.label:
            object.__setattr__(self, "label", f"{self.number}次会")

    @property
    def is_active(self):
        return self.amount > 0


# ==========================================
# 2. 計算結果
# ==========================================
@dataclass(frozen=True)
class CalculationResult:
    participant_id: str
    name: str
    role: str
    coefficient: float
    amount: int
    is_organizer: bool = False


@dataclass(frozen=True)
class SessionResult:
    session_number: int
    amount: int
    coefficient: float
    is_organizer: bool = False


@dataclass(frozen=True)
class MultiSessionResult:
    participant_id: str
    name: str
    role: str
    session_results: Tuple[SessionResult, ...] = ()
    total_amount: int = 0

    def amount_for(self, session_number):
        for r in self.session_results:
            if r.session_number == session_number:
                return r.amount
        return 0


@dataclass(frozen=True)
class CalculationCheck:
    is_valid: bool
    calculated_total: int
    difference: int


@dataclass(frozen=True)
class SessionCheck:
    session_number: int
    expected: int
    calculated: int
    difference: int

    @property
    def is_valid(self):
        return self.difference == 0


@dataclass(frozen=True)
class MultiSessionCheck:
    is_valid: bool
    sessions: Tuple[SessionCheck, ...] = field(default_factory=tuple)


# ==========================================
# 3. 幹事フラグの操作
# ==========================================
def new_participant(name, role, is_organizer=False, attending_sessions=(), organizing_sessions=()):
    """IDを採番して参加者を作る"""
    return Participant(
        id=str(uuid.uuid4()),
        name=name,
        role=role,
        is_organizer=is_organizer,
        attending_sessions=attending_sessions,
        organizing_sessions=organizing_sessions,
    )


def set_sole_organizer(participants, participant_id: Optional[str]):
    """指定した1人だけを幹事にする (None なら全員解除)"""
    return [replace(p, is_organizer=(p.id == participant_id)) for p in participants]


def set_session_organizer(participants, participant_id: Optional[str], session_number):
    """指定した会の幹事を1人だけにする (None ならその会の幹事を解除)"""
    updated = []
    for p in participants:
        others = tuple(n for n in p.organizing_sessions if n != session_number)
        if p.id == participant_id:
            if not p.attends(session_number):
                raise ValueError(f"{p.name} は {session_number}次会に参加していません")
            others = others + (session_number,)
        updated.append(replace(p, organizing_sessions=others))
    return updated


def add_participants(existing, new):
    """参加者を追加 (新しい幹事がいれば既存の幹事フラグは外す)"""
    existing = list(existing)
    if any(p.is_organizer for p in new):
        existing = set_sole_organizer(existing, None)
    return existing + list(new)
