import logging
from dataclasses import replace

import pandas as pd
import streamlit as st

from calculation import (
    calculate_bill_split,
    calculate_multi_session_split,
    find_unattended_sessions,
    format_calculation_results,
    format_multi_session_results,
    get_remainder_warning,
    validate_calculation,
    validate_multi_session_calculation,
)
from config import APP_TITLE, MAX_COEFFICIENT, MAX_SESSIONS, PAGE_ICON, SHARE_BASE_URL, setup_logging
from export import generate_csv, generate_csv_filename, generate_multi_session_csv
from models import (
    DEFAULT_COEFFICIENTS,
    ROLE_LABELS,
    ROLES,
    SessionAmount,
    add_participants,
    new_participant,
    set_session_organizer,
    set_sole_organizer,
)
from sharing import decompress_data_from_url, generate_share_url
from validation import (
    validate_bulk_participants,
    validate_coefficient_table,
    validate_event_name,
    validate_organizers,
    validate_participant_name,
    validate_session_amount,
    validate_total_amount,
)

setup_logging()
logger = logging.getLogger("warikan")

MODE_SINGLE = "1回の会計"
MODE_MULTI = "複数の会 (1次会・2次会…)"
NO_ORGANIZER = "なし"

# ==========================================
# 0. アプリ設定
# ==========================================
st.set_page_config(page_title=APP_TITLE, page_icon=PAGE_ICON)

if 'warikan_data' not in st.session_state:
    st.session_state.warikan_data = {
        "event_name": "",
        "mode": MODE_SINGLE,
        "total_amount": "",
        "participants": [],
        "coefficients": dict(DEFAULT_COEFFICIENTS),
        "session_count": 2,
        "session_amounts": {n: "" for n in range(1, MAX_SESSIONS + 1)},
    }

data = st.session_state.warikan_data

# 共有URLから開いた場合は入力を復元
shared_param = st.query_params.get("data")
if shared_param:
    shared = decompress_data_from_url(shared_param)
    if shared is None:
        st.error("共有URLのデータを読み込めませんでした。")
    else:
        data["event_name"] = shared.event_name
        data["participants"] = shared.participants
        data["coefficients"] = shared.coefficients
        for role in ROLES:
            st.session_state.pop(f"coef_{role}", None)
        if shared.sessions:
            data["mode"] = MODE_MULTI
            data["session_count"] = max(s.number for s in shared.sessions)
            for s in shared.sessions:
                data["session_amounts"][s.number] = str(s.amount)
        else:
            data["mode"] = MODE_SINGLE
            data["total_amount"] = str(shared.total_amount or "")
        logger.info("共有URLから %d人分の入力を復元しました", len(shared.participants))
    st.query_params.clear()


# ==========================================
# 1. 計算まわり
# ==========================================
def role_label(role):
    return ROLE_LABELS[role]


def current_sessions():
    """金額が入力済みの会のリスト"""
    sessions = []
    for n in range(1, data["session_count"] + 1):
        text = data["session_amounts"][n]
        if text and validate_session_amount(text).is_valid:
            sessions.append(SessionAmount(number=n, amount=int(float(text))))
    return sessions


def single_results_table(results):
    return pd.DataFrame(
        [
            {
                "名前": r.name,
                "役職": role_label(r.role) + ("・幹事" if r.is_organizer else ""),
                "係数": r.coefficient,
                "金額 (円)": r.amount,
            }
            for r in results
        ]
    )


def multi_results_table(results, sessions):
    rows = []
    for r in results:
        row = {"名前": r.name, "役職": role_label(r.role)}
        for s in sessions:
            sr = next((x for x in r.session_results if x.session_number == s.number), None)
            row[s.label] = None if sr is None else sr.amount
        row["合計 (円)"] = r.total_amount
        rows.append(row)
    return pd.DataFrame(rows)


# ==========================================
# 2. UI構築
# ==========================================
st.title(f"{PAGE_ICON} {APP_TITLE}")
st.caption("役職に応じた公平な割り勘を自動計算します")

# --- サイドバー: 係数設定 ---
with st.sidebar:
    st.header("⚖️ 係数設定")
    new_coefficients = {}
    for role in ROLES:
        new_coefficients[role] = st.number_input(
            role_label(role),
            min_value=0.0,
            max_value=float(MAX_COEFFICIENT),
            value=float(data["coefficients"][role]),
            step=0.1,
            key=f"coef_{role}",
        )
    coef_check = validate_coefficient_table(new_coefficients)
    if coef_check.is_valid:
        data["coefficients"] = new_coefficients
    else:
        for e in coef_check.errors:
            st.error(e)
    if st.button("初期値に戻す"):
        data["coefficients"] = dict(DEFAULT_COEFFICIENTS)
        for role in ROLES:
            st.session_state.pop(f"coef_{role}", None)
        st.rerun()

# --- ① 基本情報 ---
st.subheader("① 基本情報")
data["event_name"] = st.text_input("イベント名（任意）", data["event_name"], placeholder="例: 歓送迎会、忘年会")
event_check = validate_event_name(data["event_name"])
if not event_check.is_valid:
    st.error(event_check.errors[0])

data["mode"] = st.radio(
    "計算モード", [MODE_SINGLE, MODE_MULTI], index=[MODE_SINGLE, MODE_MULTI].index(data["mode"]), horizontal=True
)
is_multi = data["mode"] == MODE_MULTI

if not is_multi:
    data["total_amount"] = st.text_input("合計金額 (円)", data["total_amount"], placeholder="20000")
    if data["total_amount"]:
        amount_check = validate_total_amount(data["total_amount"])
        if not amount_check.is_valid:
            st.error(amount_check.errors[0])
    else:
        st.caption("円単位で入力してください")
else:
    data["session_count"] = st.number_input(
        "会の数", min_value=1, max_value=MAX_SESSIONS, value=data["session_count"], step=1
    )
    cols = st.columns(2)
    for n in range(1, data["session_count"] + 1):
        with cols[(n - 1) % 2]:
            data["session_amounts"][n] = st.text_input(
                f"{n}次会の金額 (円)", data["session_amounts"][n], key=f"session_amount_{n}"
            )
            text = data["session_amounts"][n]
            if text:
                check = validate_session_amount(text)
                if not check.is_valid:
                    st.error(check.errors[0])

# --- ② 参加者 ---
st.subheader("② 参加者")
session_numbers = list(range(1, data["session_count"] + 1))

with st.form("add_form", clear_on_submit=True):
    c1, c2 = st.columns([3, 2])
    new_name = c1.text_input("名前", placeholder="例: 田中")
    new_role = c2.selectbox("役職", ROLES, format_func=role_label)
    if is_multi:
        new_sessions = st.multiselect("参加する会", session_numbers, default=session_numbers, format_func=lambda n: f"{n}次会")
        new_is_organizer = False
    else:
        new_sessions = session_numbers
        new_is_organizer = st.checkbox("幹事（端数を負担します）")
    if st.form_submit_button("参加者を追加"):
        name_errors = validate_participant_name(new_name, [p.name for p in data["participants"]])
        if name_errors:
            st.error(next(iter(name_errors.values())))
        else:
            added = new_participant(new_name.strip(), new_role, new_is_organizer, attending_sessions=new_sessions)
            data["participants"] = add_participants(data["participants"], [added])
            st.rerun()

with st.expander("まとめて追加"):
    # 複数の会では幹事を会ごとに選ぶので、幹事列は出さない
    bulk_row = {"name": "", "role": "junior"}
    bulk_columns = {
        "name": st.column_config.TextColumn("名前"),
        "role": st.column_config.SelectboxColumn("役職", options=list(ROLES), required=True),
    }
    if not is_multi:
        st.caption("💡 幹事は端数（10円・1円の桁）を負担します。通常は1名を幹事に設定してください。")
        bulk_row["is_organizer"] = False
        bulk_columns["is_organizer"] = st.column_config.CheckboxColumn("幹事")
    bulk_df = st.data_editor(
        pd.DataFrame([bulk_row]),
        num_rows="dynamic",
        column_config=bulk_columns,
        hide_index=True,
        key="bulk_multi_editor" if is_multi else "bulk_editor",
    )
    if st.button("まとめて追加する"):
        entries = [
            {
                "name": row["name"] if isinstance(row["name"], str) else "",
                "role": row["role"],
                "is_organizer": bool(row.get("is_organizer")) if pd.notna(row.get("is_organizer")) else False,
            }
            for _, row in bulk_df.iterrows()
        ]
        bulk_errors = validate_bulk_participants(entries, [p.name for p in data["participants"]])
        if bulk_errors:
            for e in bulk_errors:
                st.error(e)
        else:
            added = [
                new_participant(
                    e["name"].strip(),
                    e["role"],
                    is_organizer=e["is_organizer"],
                    attending_sessions=session_numbers,
                )
                for e in entries
            ]
            data["participants"] = add_participants(data["participants"], added)
            st.rerun()

if not data["participants"]:
    st.info("参加者を追加してください")
else:
    for i, p in enumerate(data["participants"]):
        c1, c2, c3 = st.columns([3, 4, 1])
        c1.write(f"**{p.name}**  ({role_label(p.role)})")
        if is_multi:
            attending = c2.multiselect(
                "参加する会",
                session_numbers,
                default=[n for n in p.attending_sessions if n in session_numbers],
                format_func=lambda n: f"{n}次会",
                key=f"attend_{p.id}",
                label_visibility="collapsed",
            )
            if tuple(attending) != p.attending_sessions:
                data["participants"][i] = replace(
                    p,
                    attending_sessions=tuple(attending),
                    organizing_sessions=tuple(n for n in p.organizing_sessions if n in attending),
                )
        if c3.button("削除", key=f"del_{p.id}"):
            data["participants"] = [x for x in data["participants"] if x.id != p.id]
            st.rerun()

    # 幹事の選択
    if not is_multi:
        names = [NO_ORGANIZER] + [p.name for p in data["participants"]]
        current = next((p.name for p in data["participants"] if p.is_organizer), NO_ORGANIZER)
        chosen = st.radio("幹事", names, index=names.index(current), horizontal=True)
        if chosen != current:
            chosen_id = next((p.id for p in data["participants"] if p.name == chosen), None)
            data["participants"] = set_sole_organizer(data["participants"], chosen_id)
            st.rerun()
    else:
        cols = st.columns(2)
        for n in session_numbers:
            attendees = [p for p in data["participants"] if p.attends(n)]
            names = [NO_ORGANIZER] + [p.name for p in attendees]
            current = next((p.name for p in attendees if p.organizes(n)), NO_ORGANIZER)
            chosen = cols[(n - 1) % 2].selectbox(f"{n}次会の幹事", names, index=names.index(current))
            if chosen != current:
                chosen_id = next((p.id for p in attendees if p.name == chosen), None)
                data["participants"] = set_session_organizer(data["participants"], chosen_id, n)
                st.rerun()

# --- ③ 精算結果 ---
st.subheader("③ 精算結果")
participants = data["participants"]
coefficients = data["coefficients"]

if not participants:
    st.warning("上で参加者を登録してください。")

elif not is_multi:
    amount_text = data["total_amount"]
    if amount_text and validate_total_amount(amount_text).is_valid:
        total = int(float(amount_text))

        warning = get_remainder_warning(total, participants)
        if warning:
            st.warning(f"⚠️ {warning}")
        for e in validate_organizers(participants).errors:
            st.warning(e)

        results = calculate_bill_split(total, participants, coefficients)
        check = validate_calculation(results, total)
        if not check.is_valid:
            logger.error("検算エラー: 合計 %d円 / 計算結果 %d円", total, check.calculated_total)
            st.error(f"計算結果の合計 ({check.calculated_total}円) が合計金額と一致しません。")
        else:
            st.dataframe(single_results_table(results), hide_index=True)
            st.code(format_calculation_results(results) + f"\n\n総額: {total:,}円")

            st.download_button(
                label="📥 CSV出力",
                data=generate_csv(results, data["event_name"], total),
                file_name=generate_csv_filename(data["event_name"]),
                mime="text/csv",
            )
            st.caption("🔗 共有URL（右上のボタンでコピー）")
            st.code(
                generate_share_url(SHARE_BASE_URL, data["event_name"], participants, coefficients, total_amount=total),
                language=None,
            )
    else:
        st.info("合計金額を入力してください。")

else:
    sessions = current_sessions()
    if not any(s.is_active for s in sessions):
        st.info("会の金額を入力してください。")
    else:
        for s in find_unattended_sessions(sessions, participants):
            st.warning(f"⚠️ {s.label} ({s.amount:,}円) に参加者がいません。")
        for e in validate_organizers(participants, sessions).errors:
            st.warning(e)

        results = calculate_multi_session_split(sessions, participants, coefficients)
        check = validate_multi_session_calculation(results, sessions)
        if not check.is_valid:
            for c in check.sessions:
                if not c.is_valid:
                    logger.error("検算エラー: %d次会 金額 %d円 / 計算結果 %d円", c.session_number, c.expected, c.calculated)
            st.error("会ごとの合計が入力金額と一致しません。参加者を確認してください。")
        else:
            active = [s for s in sessions if s.is_active]
            st.dataframe(multi_results_table(results, active), hide_index=True)
            grand_total = sum(s.amount for s in active)
            st.code(format_multi_session_results(results, active) + f"\n\n総額: {grand_total:,}円")

            st.download_button(
                label="📥 CSV出力",
                data=generate_multi_session_csv(results, sessions, data["event_name"]),
                file_name=generate_csv_filename(data["event_name"]),
                mime="text/csv",
            )
            st.caption("🔗 共有URL（右上のボタンでコピー）")
            st.code(
                generate_share_url(SHARE_BASE_URL, data["event_name"], participants, coefficients, sessions=sessions),
                language=None,
            )
