import logging
import math
import numbers
from collections import namedtuple

from config import HUNDRED
from models import (
    ROLES,
    ROLE_LABELS,
    CalculationCheck,
    CalculationResult,
    MultiSessionCheck,
    MultiSessionResult,
    SessionCheck,
    SessionResult,
)

logger = logging.getLogger(__name__)

WeightedShare = namedtuple("WeightedShare", ["participant", "coefficient", "share"])


# ==========================================
# 1. 係数と按分
# ==========================================
def resolve_coefficient(role, coefficients):
    """役職の係数を引く"""
    if role not in ROLES:
        raise ValueError(f"未知の役職です: {role!r}")
    if role not in coefficients:
        raise ValueError(f"係数表に {role!r} がありません")
    return coefficients[role]


def allocate_base(total_amount, weighted_participants):
    """係数に比例した基本金額 (小数のまま) を計算する

    weighted_participants は (参加者, 係数) のリスト。並び順はそのまま返す。
    """
    if not weighted_participants:
        return []

    total_coefficient = sum(c for _, c in weighted_participants)
    return [
        WeightedShare(p, c, total_amount * c / total_coefficient)
        for p, c in weighted_participants
    ]


def _check_amount(amount):
    if isinstance(amount, bool) or not isinstance(amount, numbers.Integral) or amount < 0:
        raise ValueError(f"金額は0以上の整数で指定してください: {amount!r}")


def _floor_to_hundred(share):
    return int(math.floor(share / HUNDRED)) * HUNDRED


def _round_half_up(value):
    return int(math.floor(value + 0.5))


# ==========================================
# 2. 端数処理
# ==========================================
def apply_organizer_policy(shares, total_amount, organizer_index):
    """幹事が端数を負担する

    幹事以外は100円単位で切り捨て、幹事は総額から残りを払う。
    """
    amounts = [
        0 if i == organizer_index else _floor_to_hundred(s.share)
        for i, s in enumerate(shares)
    ]
    amounts[organizer_index] = total_amount - sum(amounts)
    return amounts


def apply_hundred_yen_policy(shares, total_amount):
    """幹事なし: 100円単位で切り捨て、差額を余りの大きい順に100円ずつ配る

    100円単位で表せない端数は、余りが最も大きい人が負担する。
    """
    amounts = [_floor_to_hundred(s.share) for s in shares]
    remainders = [s.share - a for s, a in zip(shares, amounts)]

    shortfall = total_amount - sum(amounts)
    increment_count = _round_half_up(shortfall / HUNDRED)

    # 安定ソートなので同点は入力順
    ranking = sorted(range(len(shares)), key=lambda i: -remainders[i])

    if increment_count > 0:
        for i in ranking[:increment_count]:
            amounts[i] += HUNDRED

    residue = total_amount - sum(amounts)
    if residue:
        amounts[ranking[0]] += residue
    return amounts


def _find_organizer(shares, is_organizer):
    flagged = [i for i, s in enumerate(shares) if is_organizer(s.participant)]
    if len(flagged) > 1:
        logger.warning(
            "幹事が%d人指定されています (%s)。100円単位の調整で計算します",
            len(flagged),
            ", ".join(shares[i].participant.name for i in flagged),
        )
        return None
    return flagged[0] if flagged else None


def _apply_remainder_policy(shares, total_amount, is_organizer):
    organizer_index = _find_organizer(shares, is_organizer)
    if organizer_index is None:
        logger.debug("端数処理: 100円単位調整 (総額 %d円, %d人)", total_amount, len(shares))
        return apply_hundred_yen_policy(shares, total_amount), None

    logger.debug(
        "端数処理: 幹事負担 (総額 %d円, 幹事 %s)",
        total_amount,
        shares[organizer_index].participant.name,
    )
    return apply_organizer_policy(shares, total_amount, organizer_index), organizer_index


# ==========================================
# 3. 傾斜配分
# ==========================================
def calculate_bill_split(total_amount, participants, coefficients):
    """傾斜配分計算 (1回の会計)"""
    if not participants:
        return []
    _check_amount(total_amount)

    weighted = [(p, resolve_coefficient(p.role, coefficients)) for p in participants]
    shares = allocate_base(total_amount, weighted)
    amounts, organizer_index = _apply_remainder_policy(
        shares, total_amount, lambda p: p.is_organizer
    )

    return [
        CalculationResult(
            participant_id=s.participant.id,
            name=s.participant.name,
            role=s.participant.role,
            coefficient=s.coefficient,
            amount=amount,
            is_organizer=(i == organizer_index),
        )
        for i, (s, amount) in enumerate(zip(shares, amounts))
    ]


def calculate_multi_session_split(sessions, participants, coefficients):
    """傾斜配分計算 (1次会・2次会 … を会ごとに独立して計算し合算)"""
    active_sessions = sorted((s for s in sessions if s.is_active), key=lambda s: s.number)
    if not active_sessions or not participants:
        return []

    breakdown = {p.id: [] for p in participants}

    for session in active_sessions:
        _check_amount(session.amount)
        attendees = [p for p in participants if p.attends(session.number)]
        if not attendees:
            logger.warning("%s (%d円) に参加者がいません", session.label, session.amount)
            continue

        weighted = [(p, resolve_coefficient(p.role, coefficients)) for p in attendees]
        shares = allocate_base(session.amount, weighted)
        amounts, organizer_index = _apply_remainder_policy(
            shares, session.amount, lambda p: p.organizes(session.number)
        )

        for i, (s, amount) in enumerate(zip(shares, amounts)):
            breakdown[s.participant.id].append(
                SessionResult(
                    session_number=session.number,
                    amount=amount,
                    coefficient=s.coefficient,
                    is_organizer=(i == organizer_index),
                )
            )

    return [
        MultiSessionResult(
            participant_id=p.id,
            name=p.name,
            role=p.role,
            session_results=tuple(breakdown[p.id]),
            total_amount=sum(r.amount for r in breakdown[p.id]),
        )
        for p in participants
    ]


# ==========================================
# 4. 検算
# ==========================================
def validate_calculation(results, total_amount):
    """計算結果の合計が総額と一致するか"""
    calculated_total = sum(r.amount for r in results)
    difference = abs(calculated_total - total_amount)
    return CalculationCheck(
        is_valid=difference == 0,
        calculated_total=calculated_total,
        difference=difference,
    )


def validate_multi_session_calculation(results, sessions):
    """会ごとに、配分の合計がその会の金額と一致するか"""
    checks = []
    for session in sorted((s for s in sessions if s.is_active), key=lambda s: s.number):
        calculated = sum(r.amount_for(session.number) for r in results)
        checks.append(
            SessionCheck(
                session_number=session.number,
                expected=session.amount,
                calculated=calculated,
                difference=abs(calculated - session.amount),
            )
        )
    return MultiSessionCheck(is_valid=all(c.is_valid for c in checks), sessions=tuple(checks))


# ==========================================
# 5. 警告・表示用
# ==========================================
def has_remainder(total_amount):
    """10円・1円の桁があるか"""
    return total_amount % HUNDRED != 0


def has_organizer(participants):
    """幹事がちょうど1人いるとき True (端数を幹事が負担できる)"""
    return sum(1 for p in participants if p.is_organizer) == 1


def get_remainder_warning(total_amount, participants):
    if has_remainder(total_amount) and not has_organizer(participants):
        remainder = total_amount % HUNDRED
        return f"合計金額に{remainder}円の端数があります。正確な計算のため、幹事を設定してください。"
    return None


def find_unattended_sessions(sessions, participants):
    """金額があるのに誰も参加していない会"""
    return [
        s for s in sessions
        if s.is_active and not any(p.attends(s.number) for p in participants)
    ]


def format_calculation_results(results):
    return "\n".join(
        f"{r.name}（{ROLE_LABELS[r.role]}{'・幹事' if r.is_organizer else ''}）: ¥{r.amount:,}"
        for r in results
    )


def format_multi_session_results(results, sessions):
    labels = {s.number: s.label for s in sessions}
    lines = []
    for r in results:
        details = " / ".join(
            f"{labels.get(sr.session_number, sr.session_number)}"
            f"{'(幹事)' if sr.is_organizer else ''} ¥{sr.amount:,}"
            for sr in r.session_results
        )
        lines.append(f"{r.name}（{ROLE_LABELS[r.role]}）: ¥{r.total_amount:,}" + (f"  [{details}]" if details else ""))
    return "\n".join(lines)
