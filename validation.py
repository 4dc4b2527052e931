from dataclasses import dataclass, field
from typing import List

from config import (
    INVALID_CHARS,
    MAX_COEFFICIENT,
    MAX_EVENT_NAME_LENGTH,
    MAX_NAME_LENGTH,
    MAX_PARTICIPANTS,
    MAX_TOTAL_AMOUNT,
)
from models import ROLES, ROLE_LABELS


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


def _ok():
    return ValidationResult(True, [])


def _ng(message):
    return ValidationResult(False, [message])


def _has_invalid_chars(text):
    return any(c in INVALID_CHARS for c in text)


# ==========================================
# 1. 参加者
# ==========================================
def validate_participant_name(name, existing_names):
    """参加者名のチェック

    エラーがあれば {"name": ...} または {"duplicate": ...} を返す。問題なければ空dict。
    """
    trimmed = name.strip()

    if not trimmed:
        return {"name": "名前を入力してください"}
    if len(trimmed) > MAX_NAME_LENGTH:
        return {"name": f"名前は{MAX_NAME_LENGTH}文字以内で入力してください"}
    if _has_invalid_chars(trimmed):
        return {"name": "使用できない文字が含まれています"}

    # 大文字小文字は区別しない
    if any(existing.lower() == trimmed.lower() for existing in existing_names):
        return {"duplicate": "この名前は既に登録されています"}

    return {}


def validate_bulk_participants(entries, existing_names):
    """まとめて追加する参加者のチェック (行ごとのエラーメッセージのリスト)"""
    errors = []
    seen = set()

    for i, entry in enumerate(entries, start=1):
        trimmed = entry["name"].strip()

        if not trimmed:
            errors.append(f"{i}行目: 名前を入力してください")
            continue

        if len(trimmed) > MAX_NAME_LENGTH:
            errors.append(f"{i}行目: 名前は{MAX_NAME_LENGTH}文字以内で入力してください")
        if _has_invalid_chars(trimmed):
            errors.append(f"{i}行目: 使用できない文字が含まれています")

        if trimmed in seen:
            errors.append(f'{i}行目: "{trimmed}" は既に入力されています')
        else:
            seen.add(trimmed)

        if trimmed in existing_names:
            errors.append(f'{i}行目: "{trimmed}" は既に登録されています')

        if entry.get("role", "junior") not in ROLES:
            errors.append(f"{i}行目: 役職を選択してください")

    if sum(1 for e in entries if e.get("is_organizer")) > 1:
        errors.append("幹事は1人だけ選択してください")

    return errors


def validate_organizers(participants, sessions=None):
    """幹事が1人以下になっているか (sessions を渡すと会ごとにチェック)"""
    errors = []
    if sessions is None:
        organizers = [p.name for p in participants if p.is_organizer]
        if len(organizers) > 1:
            errors.append(f"幹事が複数います: {'、'.join(organizers)}")
        return ValidationResult(not errors, errors)

    for s in sessions:
        organizers = [p.name for p in participants if p.organizes(s.number)]
        if len(organizers) > 1:
            errors.append(f"{s.label}の幹事が複数います: {'、'.join(organizers)}")
    return ValidationResult(not errors, errors)


# ==========================================
# 2. 金額
# ==========================================
def _parse_amount(text, allow_zero):
    trimmed = str(text).strip()

    if not trimmed:
        return _ng("合計金額を入力してください")

    try:
        value = float(trimmed)
    except ValueError:
        return _ng("有効な数値を入力してください")
    if value != value:  # NaN
        return _ng("有効な数値を入力してください")

    if allow_zero and value < 0:
        return _ng("金額は0以上で入力してください")
    if not allow_zero and value <= 0:
        return _ng("金額は0より大きい値を入力してください")
    if value > MAX_TOTAL_AMOUNT:
        return _ng(f"金額は{MAX_TOTAL_AMOUNT // 10_000}万円以下で入力してください")
    if value % 1 != 0:
        return _ng("円単位で入力してください（小数点は使用できません）")

    return _ok()


def validate_total_amount(text):
    return _parse_amount(text, allow_zero=False)


def validate_session_amount(text):
    """会ごとの金額 (0円 = その会はなし)"""
    return _parse_amount(text, allow_zero=True)


# ==========================================
# 3. イベント名・係数・フォーム全体
# ==========================================
def validate_event_name(name):
    trimmed = name.strip()
    if not trimmed:
        return _ok()  # 任意項目

    errors = []
    if len(trimmed) > MAX_EVENT_NAME_LENGTH:
        errors.append(f"イベント名は{MAX_EVENT_NAME_LENGTH}文字以内で入力してください")
    if _has_invalid_chars(trimmed):
        errors.append("使用できない文字が含まれています")
    return ValidationResult(not errors, errors)


def validate_role_coefficient(coefficient):
    try:
        value = float(coefficient)
    except (TypeError, ValueError):
        return _ng("有効な数値を入力してください")
    if value != value:
        return _ng("有効な数値を入力してください")

    if value <= 0:
        return _ng("係数は0より大きい値を入力してください")
    if value > MAX_COEFFICIENT:
        return _ng(f"係数は{MAX_COEFFICIENT}以下で設定してください")
    return _ok()


def validate_coefficient_table(coefficients):
    errors = []
    for role in ROLES:
        if role not in coefficients:
            errors.append(f"{ROLE_LABELS[role]}の係数がありません")
            continue
        result = validate_role_coefficient(coefficients[role])
        if not result.is_valid:
            errors.append(f"{ROLE_LABELS[role]}: {result.errors[0]}")
    return ValidationResult(not errors, errors)


def validate_form(event_name, total_amount, participant_count):
    """フォーム全体 (項目名 -> 最初のエラーメッセージ)"""
    errors = {}

    event_result = validate_event_name(event_name)
    if not event_result.is_valid:
        errors["event_name"] = event_result.errors[0]

    amount_result = validate_total_amount(total_amount)
    if not amount_result.is_valid:
        errors["total_amount"] = amount_result.errors[0]

    if participant_count == 0:
        errors["participants"] = "参加者を1人以上追加してください"
    elif participant_count > MAX_PARTICIPANTS:
        errors["participants"] = f"参加者は{MAX_PARTICIPANTS}人以下で設定してください"

    return errors
