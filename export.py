import datetime
import re

import pandas as pd

from models import ROLE_LABELS

# Excelで開いたときの文字化け対策
BOM = "\ufeff"


def _format_created_at(created_at):
    d = created_at or datetime.datetime.now()
    return f"{d.year}/{d.month}/{d.day} {d.hour}:{d:%M:%S}"


def _format_coefficient(value):
    return f"{value:g}"


def _to_csv(df, header=True):
    return df.to_csv(index=False, header=header, lineterminator="\n")


def _meta_block(lines):
    return _to_csv(pd.DataFrame([[line] for line in lines]), header=False)


def _role_label(role, is_organizer):
    return ROLE_LABELS[role] + ("・幹事" if is_organizer else "")


# ==========================================
# 1. CSV生成
# ==========================================
def generate_csv(results, event_name, total_amount, created_at=None):
    """精算結果のCSV (1回の会計)"""
    meta = []
    if event_name:
        meta.append(f"イベント名: {event_name}")
    meta += [
        f"合計金額: {total_amount:,}円",
        f"参加者数: {len(results)}名",
        f"作成日時: {_format_created_at(created_at)}",
    ]

    table = pd.DataFrame(
        [
            {
                "名前": r.name,
                "役職": _role_label(r.role, r.is_organizer),
                "係数": _format_coefficient(r.coefficient),
                "金額": str(r.amount),
                "支払状況": "未",
            }
            for r in results
        ],
        columns=["名前", "役職", "係数", "金額", "支払状況"],
    )
    total_row = pd.DataFrame([["合計", "", "", str(total_amount), ""]])

    return BOM + _meta_block(meta) + "\n" + _to_csv(table) + "\n" + _to_csv(total_row, header=False)


def generate_multi_session_csv(results, sessions, event_name, created_at=None):
    """精算結果のCSV (会ごとの内訳つき)"""
    active = sorted((s for s in sessions if s.is_active), key=lambda s: s.number)
    grand_total = sum(s.amount for s in active)

    meta = []
    if event_name:
        meta.append(f"イベント名: {event_name}")
    meta += [f"{s.label}: {s.amount:,}円" for s in active]
    meta += [
        f"合計金額: {grand_total:,}円",
        f"参加者数: {len(results)}名",
        f"作成日時: {_format_created_at(created_at)}",
    ]

    columns = ["名前", "役職"] + [s.label for s in active] + ["合計", "幹事", "支払状況"]
    rows = []
    for r in results:
        row = {"名前": r.name, "役職": ROLE_LABELS[r.role]}
        by_session = {sr.session_number: sr for sr in r.session_results}
        for s in active:
            row[s.label] = str(by_session[s.number].amount) if s.number in by_session else "-"
        row["合計"] = str(r.total_amount)
        row["幹事"] = "・".join(
            s.label for s in active if s.number in by_session and by_session[s.number].is_organizer
        )
        row["支払状況"] = "未"
        rows.append(row)
    table = pd.DataFrame(rows, columns=columns)

    total_row = pd.DataFrame(
        [["合計", ""] + [str(s.amount) for s in active] + [str(grand_total), "", ""]]
    )

    return BOM + _meta_block(meta) + "\n" + _to_csv(table) + "\n" + _to_csv(total_row, header=False)


def generate_csv_filename(event_name, today=None):
    date = (today or datetime.date.today()).isoformat()
    name = re.sub(r'[/\\?%*:|"<>]', "_", event_name) if event_name else "無題"
    return f"精算結果_{name}_{date}.csv"
