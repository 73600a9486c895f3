"""
自訂 Exception 體系

統一的錯誤處理階層，讓每種失敗都有明確的分類與訊息。
上層可以 catch 大類別 (如 BrowserFrameworkError)，
也可以精準 catch 子類別 (如 UnknownRoleError)。

Exception 樹：
    BrowserFrameworkError
    ├── SessionError
    │   ├── SessionNotReadyError
    │   ├── DriverLaunchError
    │   └── TeardownResourceError
    ├── LocatorError
    │   ├── UnknownRoleError
    │   ├── UnknownStrategyError
    │   └── AmbiguousLocatorError
    ├── WaitTimeoutError          (同時是內建 TimeoutError)
    ├── CredentialStateError
    │   └── CredentialStateCorruptError
    └── PluginError

傳遞原則：
    - Setup 階段錯誤一律往上拋，讓該 scenario 失敗
    - Credential vault 損毀與 teardown 錯誤只記錄，不影響 scenario 結果
"""


class BrowserFrameworkError(Exception):
    """框架所有例外的基底，catch 這個就能攔截一切框架錯誤"""

    def __init__(self, message: str = "", context: dict | None = None):
        self.context = context or {}
        super().__init__(message)


# ── Session 相關 ──

class SessionError(BrowserFrameworkError):
    """Session 生命週期相關錯誤"""


class SessionNotReadyError(SessionError):
    """Session 尚未建立 page 就被使用"""

    def __init__(self, message: str = "Page 尚未初始化，請確認 browser_session fixture 已先執行"):
        super().__init__(message)


class DriverLaunchError(SessionError):
    """瀏覽器無法啟動"""

    def __init__(self, browser: str = "", original: Exception | None = None):
        self.original = original
        msg = f"無法啟動瀏覽器: {browser}"
        if original:
            msg += f" ({type(original).__name__}: {original})"
        super().__init__(msg, context={"browser": browser})


class TeardownResourceError(SessionError):
    """Teardown 某個步驟失敗（只記錄，不中斷其餘步驟）"""

    def __init__(self, resource: str = "", original: Exception | None = None):
        self.resource = resource
        self.original = original
        msg = f"Teardown 失敗 [{resource}]"
        if original:
            msg += f": {type(original).__name__}: {original}"
        super().__init__(msg, context={"resource": resource})


# ── Locator 相關 ──

class LocatorError(BrowserFrameworkError):
    """Locator 規格相關錯誤"""


class UnknownRoleError(LocatorError):
    """不認得的 ARIA role 名稱"""

    def __init__(self, role: str = ""):
        self.role = role
        super().__init__(f"未知的 ARIA role: {role!r}", context={"role": role})


class UnknownStrategyError(LocatorError):
    """不認得的定位策略"""

    def __init__(self, strategy: str = ""):
        self.strategy = strategy
        super().__init__(f"未知的定位策略: {strategy!r}", context={"strategy": strategy})


class AmbiguousLocatorError(LocatorError):
    """strict 模式下 locator 對應到多個元素"""

    def __init__(self, locator: str = "", count: int = 0):
        self.locator = locator
        self.count = count
        super().__init__(
            f"strict 模式下找到 {count} 個元素: {locator}",
            context={"locator": locator, "count": count},
        )


# ── 等待相關 ──

class WaitTimeoutError(BrowserFrameworkError, TimeoutError):
    """等待或操作逾時，session 本身仍可繼續使用"""

    def __init__(self, selector: str = "", timeout_ms: int = 0):
        self.selector = selector
        self.timeout_ms = timeout_ms
        msg = f"等待逾時: {selector}"
        if timeout_ms:
            msg += f" ({timeout_ms}ms)"
        super().__init__(msg, context={"selector": selector, "timeout_ms": timeout_ms})


# ── Credential 相關 ──

class CredentialStateError(BrowserFrameworkError):
    """登入狀態快取相關錯誤"""


class CredentialStateCorruptError(CredentialStateError):
    """加密的登入狀態無法解密（換機器、換帳號或檔案被竄改）"""

    def __init__(self, path: str = "", original: Exception | None = None):
        self.original = original
        msg = f"登入狀態無法解密: {path}"
        if original:
            msg += f" ({type(original).__name__})"
        super().__init__(msg, context={"path": path})


# ── Plugin 相關 ──

class PluginError(BrowserFrameworkError):
    """Plugin 載入或執行錯誤"""

    def __init__(self, plugin_name: str = "", message: str = ""):
        msg = f"Plugin 錯誤 [{plugin_name}]: {message}" if plugin_name else message
        super().__init__(msg, context={"plugin_name": plugin_name})
