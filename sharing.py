import base64
import datetime
import json
import logging
import urllib.parse
import zlib
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from config import MAX_SESSIONS
from models import ROLES, Participant, SessionAmount
from validation import validate_role_coefficient

logger = logging.getLogger(__name__)


@dataclass
class SharedData:
    """URLで共有する入力データ (計算結果は含めない)"""

    event_name: str
    participants: List[Participant]
    coefficients: Dict[str, float]
    total_amount: Optional[int] = None
    sessions: List[SessionAmount] = field(default_factory=list)
    created_at: Optional[str] = None


# ==========================================
# 1. 圧縮・復元
# ==========================================
def compress_data_for_url(event_name, participants, coefficients, total_amount=None, sessions=()):
    """入力データをJSON → zlib → URLセーフBase64 に変換"""
    payload = {
        "eventName": event_name,
        "totalAmount": total_amount,
        "participants": [
            {
                "id": p.id,
                "name": p.name,
                "role": p.role,
                "isOrganizer": p.is_organizer,
                "attendingSessions": list(p.attending_sessions),
                "organizingSessions": list(p.organizing_sessions),
            }
            for p in participants
        ],
        "roleCoefficients": dict(coefficients),
        "sessions": [{"number": s.number, "amount": s.amount, "label": s.label} for s in sessions],
        "createdAt": datetime.datetime.now().isoformat(timespec="seconds"),
    }
    json_str = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    compressed = zlib.compress(json_str.encode("utf-8"), 9)
    return base64.urlsafe_b64encode(compressed).decode("ascii").rstrip("=")


def _is_session_list(values):
    return isinstance(values, list) and all(
        isinstance(n, int) and not isinstance(n, bool) and 1 <= n <= MAX_SESSIONS for n in values
    )


def _is_valid_payload(data):
    if not isinstance(data, dict):
        return False

    total = data.get("totalAmount")
    if total is not None and (isinstance(total, bool) or not isinstance(total, int) or total < 0):
        return False

    # 係数は画面入力と同じ範囲 (0 < 係数 <= 10) のみ受け付ける
    coefficients = data.get("roleCoefficients")
    if not isinstance(coefficients, dict):
        return False
    if not all(
        isinstance(coefficients.get(role), (int, float))
        and not isinstance(coefficients.get(role), bool)
        and validate_role_coefficient(coefficients[role]).is_valid
        for role in ROLES
    ):
        return False

    participants = data.get("participants")
    if not isinstance(participants, list):
        return False
    for p in participants:
        if not (
            isinstance(p, dict)
            and isinstance(p.get("id"), str)
            and isinstance(p.get("name"), str)
            and p.get("role") in ROLES
            and _is_session_list(p.get("attendingSessions") or [])
            and _is_session_list(p.get("organizingSessions") or [])
        ):
            return False

    sessions = data.get("sessions", [])
    if not isinstance(sessions, list):
        return False
    return all(
        isinstance(s, dict)
        and _is_session_list([s.get("number")])
        and isinstance(s.get("amount"), int)
        and not isinstance(s.get("amount"), bool)
        and s["amount"] >= 0
        for s in sessions
    )


def decompress_data_from_url(compressed_data):
    """共有URLのデータを復元する (壊れていれば None)"""
    if not compressed_data:
        return None

    try:
        padded = compressed_data + "=" * (-len(compressed_data) % 4)
        raw = zlib.decompress(base64.urlsafe_b64decode(padded.encode("ascii")))
        data = json.loads(raw.decode("utf-8"))
    except (ValueError, zlib.error) as e:
        logger.warning("共有データの復元に失敗しました: %s", e)
        return None

    if not _is_valid_payload(data):
        logger.warning("共有データの形式が不正です")
        return None

    try:
        participants = [
            Participant(
                id=p["id"],
                name=p["name"],
                role=p["role"],
                is_organizer=bool(p.get("isOrganizer", False)),
                attending_sessions=tuple(p.get("attendingSessions") or ()),
                organizing_sessions=tuple(p.get("organizingSessions") or ()),
            )
            for p in data["participants"]
        ]
        sessions = [
            SessionAmount(number=s["number"], amount=s["amount"], label=s.get("label", ""))
            for s in data.get("sessions", [])
        ]
    except (TypeError, ValueError) as e:
        logger.warning("共有データの参加者情報が不正です: %s", e)
        return None

    return SharedData(
        event_name=data.get("eventName") or "",
        participants=participants,
        coefficients={role: float(data["roleCoefficients"][role]) for role in ROLES},
        total_amount=data.get("totalAmount"),
        sessions=sessions,
        created_at=data.get("createdAt"),
    )


# ==========================================
# 2. 共有URL
# ==========================================
def generate_share_url(base_url, event_name, participants, coefficients, total_amount=None, sessions=()):
    compressed = compress_data_for_url(event_name, participants, coefficients, total_amount, sessions)
    return f"{base_url.rstrip('/')}/?{urllib.parse.urlencode({'data': compressed})}"


def extract_share_data(url):
    """共有URLから data パラメータを取り出して復元"""
    query = urllib.parse.urlparse(url).query
    values = urllib.parse.parse_qs(query).get("data")
    return decompress_data_from_url(values[0]) if values else None
