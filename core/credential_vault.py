"""
Credential State Vault — 加密保存瀏覽器登入狀態

Playwright 的 storage state (cookies + localStorage) 等同一張有效的登入憑證，
因此只以加密形式留在磁碟上；明文只在 session 建立 context / teardown 時短暫存在，
用完立即刪除。

狀態：
    無快取      → load() 回傳 None（不是錯誤）
    快取有效    → load() 解密成明文暫存檔，回傳路徑給 context 使用
    快取損毀    → load() 刪除加密檔、記錄警告、回傳 None（下次重新登入即可）

加密金鑰不由使用者提供：每個 OS 帳號在家目錄有一份只有自己可讀的隨機 secret，
再與帳號名稱、主機名稱經 HKDF 推導出 Fernet 金鑰。
換帳號或換機器都無法解密，只會觸發自動重新登入。

用法：
    vault = CredentialVault(state_id="ci")
    path = vault.load()              # 交給 browser.new_context(storage_state=...)
    vault.discard_staging()          # context 建好後立即刪除明文
    ...
    await context.storage_state(path=str(vault.staging_path))
    vault.save()                     # 加密保存並刪除明文
"""

from __future__ import annotations

import base64
import getpass
import os
import platform
import uuid
from abc import ABC, abstractmethod
from pathlib import Path

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from config.config import Config
from core.exceptions import CredentialStateCorruptError, CredentialStateError
from core.plugin_manager import plugin_manager
from utils.logger import logger

_FILE_PREFIX = "playwright-auth-state"
_SECRET_BYTES = 32


class DataProtector(ABC):
    """資料保護介面：加密結果只能由同一個保護主體解開"""

    @abstractmethod
    def protect(self, data: bytes) -> bytes:
        """加密"""

    @abstractmethod
    def unprotect(self, blob: bytes) -> bytes:
        """
        解密

        Raises:
            CredentialStateCorruptError: 主體不符、內容遭竄改或格式錯誤
        """


def _account_scope() -> str:
    try:
        user = getpass.getuser()
    except (OSError, KeyError):
        user = str(Path.home())
    return f"{user}@{platform.node()}"


class UserKeyProtector(DataProtector):
    """以目前 OS 帳號為保護主體的 Fernet 加密"""

    def __init__(self, key_file: str | Path | None = None,
                 scope: str | None = None):
        self.key_file = Path(key_file or Config.AUTH_KEY_FILE)
        self.scope = scope or _account_scope()
        self._fernet: Fernet | None = None

    def protect(self, data: bytes) -> bytes:
        return self._get_fernet().encrypt(data)

    def unprotect(self, blob: bytes) -> bytes:
        try:
            return self._get_fernet().decrypt(blob)
        except InvalidToken as e:
            raise CredentialStateCorruptError(str(self.key_file), e) from e

    def _get_fernet(self) -> Fernet:
        if self._fernet is None:
            secret = self._load_or_create_secret()
            key = HKDF(
                algorithm=hashes.SHA256(),
                length=32,
                salt=None,
                info=f"browser-scenarios/auth-state/{self.scope}".encode("utf-8"),
            ).derive(secret)
            self._fernet = Fernet(base64.urlsafe_b64encode(key))
        return self._fernet

    def _load_or_create_secret(self) -> bytes:
        if self.key_file.exists():
            return self._read_secret()

        self.key_file.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
        secret = os.urandom(_SECRET_BYTES)
        # 先寫完暫存檔再 link 成正式檔名，其他 worker 不會讀到寫一半的金鑰
        tmp = self.key_file.with_name(f"{self.key_file.name}.{uuid.uuid4().hex[:8]}.tmp")
        fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(secret)
        try:
            os.link(tmp, self.key_file)
        except FileExistsError:
            # 平行 worker 搶先建立
            return self._read_secret()
        finally:
            tmp.unlink(missing_ok=True)
        logger.info(f"已建立登入狀態加密金鑰: {self.key_file}")
        return secret

    def _read_secret(self) -> bytes:
        """
        Raises:
            CredentialStateError: 金鑰檔長度不對（刪除後會自動重建）
        """
        secret = self.key_file.read_bytes()
        if len(secret) != _SECRET_BYTES:
            raise CredentialStateError(
                f"登入狀態金鑰檔不完整 ({len(secret)} bytes): {self.key_file}"
            )
        return secret


class CredentialVault:
    """
    登入狀態的加密快取

    路徑依 state_id 區分，不同環境 / pipeline 互不干擾；
    明文暫存檔再加上每個 vault 實例專屬的 token，平行 session 不會共用明文檔。
    """

    def __init__(self, state_dir: str | Path | None = None,
                 state_id: str | None = None,
                 protector: DataProtector | None = None):
        self.state_dir = Path(state_dir or Config.AUTH_STATE_DIR)
        self.state_id = state_id or Config.AUTH_STATE_ID
        self.protector = protector or UserKeyProtector()
        self._token = uuid.uuid4().hex[:8]

    @property
    def encrypted_path(self) -> Path:
        return self.state_dir / f"{_FILE_PREFIX}-{self.state_id}.encrypted"

    @property
    def staging_path(self) -> Path:
        return self.state_dir / f"{_FILE_PREFIX}-{self.state_id}-{self._token}.json"

    @property
    def has_cached_state(self) -> bool:
        return self.encrypted_path.exists()

    def load(self) -> Path | None:
        """
        解密快取的登入狀態到明文暫存檔。

        Returns:
            明文暫存檔路徑；無快取或快取損毀時回傳 None
        """
        if not self.encrypted_path.exists():
            logger.debug(f"沒有快取的登入狀態: {self.encrypted_path}")
            return None

        try:
            plaintext = self.protector.unprotect(self.encrypted_path.read_bytes())
        except (CredentialStateCorruptError, OSError) as e:
            self._discard_corrupt(e)
            return None

        try:
            self._write_private(self.staging_path, plaintext)
        except OSError as e:
            logger.warning(f"無法寫出登入狀態暫存檔，本次改為重新登入: {e}")
            return None

        logger.info(f"已載入快取的登入狀態 ({self.state_id})")
        return self.staging_path

    def save(self) -> bool:
        """
        加密保存明文暫存檔，完成後（無論成功與否）刪除明文。

        Returns:
            True = 已保存, False = 沒有暫存檔可保存
        """
        if not self.staging_path.exists():
            logger.debug("沒有登入狀態暫存檔，略過保存")
            return False

        try:
            blob = self.protector.protect(self.staging_path.read_bytes())
            self.state_dir.mkdir(parents=True, exist_ok=True)
            tmp_path = self.encrypted_path.with_name(
                f"{self.encrypted_path.name}.{self._token}.tmp"
            )
            self._write_private(tmp_path, blob)
            os.replace(tmp_path, self.encrypted_path)
        finally:
            self.discard_staging()

        logger.info(f"登入狀態已加密保存: {self.encrypted_path}")
        return True

    def discard_staging(self) -> None:
        """刪除本 vault 的明文暫存檔"""
        self.staging_path.unlink(missing_ok=True)

    def clear(self) -> None:
        """刪除加密快取與所有殘留的明文暫存檔，強制下次重新登入"""
        self.encrypted_path.unlink(missing_ok=True)
        for leftover in self.state_dir.glob(f"{_FILE_PREFIX}-{self.state_id}-*.json"):
            leftover.unlink(missing_ok=True)
        logger.info(f"已清除登入狀態快取 ({self.state_id})")

    # ── 內部方法 ──

    def _discard_corrupt(self, error: Exception) -> None:
        path = str(self.encrypted_path)
        logger.warning(
            f"登入狀態無法解密，已刪除快取，本次需重新登入: {path} ({error})"
        )
        try:
            self.encrypted_path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"刪除損毀的登入狀態失敗: {e}")
        plugin_manager.emit_credential_discarded(path, str(error))

    @staticmethod
    def _write_private(path: Path, data: bytes) -> None:
        """寫檔並限制只有目前帳號可讀寫"""
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
