"""
ARIA Role 對照表

把情境作者寫的語意 role 名稱 ("button"、"treegrid"...) 轉成
Playwright get_by_role() 接受的 role token。

只接受已知 role，大小寫與前後空白不影響；
未知名稱直接拋出 UnknownRoleError，不會默默退回其他 role。

用法：
    from core.roles import to_aria_role

    page.get_by_role(to_aria_role("Button").value, name="儲存")
"""

from enum import Enum

from core.exceptions import UnknownRoleError


class AriaRole(str, Enum):
    """Playwright 支援的 ARIA role"""

    ALERT = "alert"
    ALERTDIALOG = "alertdialog"
    APPLICATION = "application"
    ARTICLE = "article"
    BANNER = "banner"
    BLOCKQUOTE = "blockquote"
    BUTTON = "button"
    CAPTION = "caption"
    CELL = "cell"
    CHECKBOX = "checkbox"
    CODE = "code"
    COLUMNHEADER = "columnheader"
    COMBOBOX = "combobox"
    COMPLEMENTARY = "complementary"
    CONTENTINFO = "contentinfo"
    DEFINITION = "definition"
    DELETION = "deletion"
    DIALOG = "dialog"
    DIRECTORY = "directory"
    DOCUMENT = "document"
    EMPHASIS = "emphasis"
    FEED = "feed"
    FIGURE = "figure"
    FORM = "form"
    GENERIC = "generic"
    GRID = "grid"
    GRIDCELL = "gridcell"
    GROUP = "group"
    HEADING = "heading"
    IMG = "img"
    INSERTION = "insertion"
    LINK = "link"
    LIST = "list"
    LISTBOX = "listbox"
    LISTITEM = "listitem"
    LOG = "log"
    MAIN = "main"
    MARQUEE = "marquee"
    MATH = "math"
    METER = "meter"
    MENU = "menu"
    MENUBAR = "menubar"
    MENUITEM = "menuitem"
    MENUITEMCHECKBOX = "menuitemcheckbox"
    MENUITEMRADIO = "menuitemradio"
    NAVIGATION = "navigation"
    NONE = "none"
    NOTE = "note"
    OPTION = "option"
    PARAGRAPH = "paragraph"
    PRESENTATION = "presentation"
    PROGRESSBAR = "progressbar"
    RADIO = "radio"
    RADIOGROUP = "radiogroup"
    REGION = "region"
    ROW = "row"
    ROWGROUP = "rowgroup"
    ROWHEADER = "rowheader"
    SCROLLBAR = "scrollbar"
    SEARCH = "search"
    SEARCHBOX = "searchbox"
    SEPARATOR = "separator"
    SLIDER = "slider"
    SPINBUTTON = "spinbutton"
    STATUS = "status"
    STRONG = "strong"
    SUBSCRIPT = "subscript"
    SUPERSCRIPT = "superscript"
    SWITCH = "switch"
    TAB = "tab"
    TABLE = "table"
    TABLIST = "tablist"
    TABPANEL = "tabpanel"
    TERM = "term"
    TEXTBOX = "textbox"
    TIME = "time"
    TIMER = "timer"
    TOOLBAR = "toolbar"
    TOOLTIP = "tooltip"
    TREE = "tree"
    TREEGRID = "treegrid"
    TREEITEM = "treeitem"


_ROLE_TABLE: dict[str, AriaRole] = {role.value: role for role in AriaRole}


def to_aria_role(role: "str | AriaRole") -> AriaRole:
    """
    語意 role 名稱 → AriaRole。

    Args:
        role: role 名稱 (不分大小寫) 或 AriaRole

    Returns:
        對應的 AriaRole，其 value 即 Playwright 的 role token

    Raises:
        UnknownRoleError: 名稱不在支援清單內
    """
    if isinstance(role, AriaRole):
        return role
    if not isinstance(role, str):
        raise UnknownRoleError(repr(role))
    try:
        return _ROLE_TABLE[role.strip().lower()]
    except KeyError:
        raise UnknownRoleError(role) from None


def supported_roles() -> list[str]:
    """列出所有支援的 role 名稱（依字母排序）"""
    return sorted(_ROLE_TABLE)
