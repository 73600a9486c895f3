"""
截圖檔名工具
失敗截圖一律存成 {情境名稱}_{時間戳}.png，名稱先清掉路徑不安全的字元。
"""

import re
from datetime import datetime
from pathlib import Path

from config.config import Config

# 路徑不安全字元與空白一律換成底線
_UNSAFE_CHARS = re.compile(r'[\s/\\:*?"<>|]+')


def sanitize_filename(name: str) -> str:
    """把情境標題轉成可當檔名的字串"""
    cleaned = _UNSAFE_CHARS.sub("_", name.strip()).strip("._")
    return cleaned or "scenario"


def build_screenshot_path(name: str, directory: Path | None = None) -> Path:
    """
    產生截圖路徑: {directory}/{清理後名稱}_{時間戳}.png

    時間戳精確到微秒，同一情境連續截圖不會互相覆蓋。
    """
    directory = directory or Config.SCREENSHOT_DIR
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    return Path(directory) / f"{sanitize_filename(name)}_{timestamp}.png"
