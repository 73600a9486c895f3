"""
Plugins 目錄

放置自訂 Plugin 檔案。命名規則：*_plugin.py
框架啟動時會自動掃描此目錄載入 Plugin。

範例：
    plugins/
    ├── fail_handler_plugin.py  # 失敗現場 JSON 摘要
    ├── teams_plugin.py         # 失敗時推送通知
    └── auth_alert_plugin.py    # 登入快取失效時提醒操作人員
"""
