import logging
import os

# ==========================================
# 0. 設定エリア
# ==========================================
APP_TITLE = "傾斜割り勘の達人"
PAGE_ICON = "💸"

# 共有URLの起点 (デプロイ先に合わせて環境変数で上書き)
SHARE_BASE_URL = os.environ.get("WARIKAN_SHARE_BASE_URL", "http://localhost:8501")

LOG_LEVEL = os.environ.get("WARIKAN_LOG_LEVEL", "INFO")

# 端数処理の単位 (円)
HUNDRED = 100

# 二次会・三次会… の上限
MAX_SESSIONS = 10

# 入力制限
MAX_NAME_LENGTH = 20
MAX_EVENT_NAME_LENGTH = 50
MAX_TOTAL_AMOUNT = 10_000_000
MAX_PARTICIPANTS = 100
MAX_COEFFICIENT = 10
INVALID_CHARS = '<>"/\\&'


def setup_logging(level=None):
    """ログ出力の初期化"""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=level or LOG_LEVEL,
    )
