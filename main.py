import logging
import os
import sys

import wx

from backend import Backend
from log_setup import setup_logging
from models import DOWNLOADER_TYPES, ConnectionStatus, coerce_port, summarize_results
from replace_session import ReplaceSession
from task_runner import TaskRunner

logger = logging.getLogger(__name__)

APP_NAME = "TrackerRelo"

CLIENT_LABELS = {
    "qbittorrent": "qBittorrent",
    "transmission": "Transmission",
}

STATUS_LABELS = {
    ConnectionStatus.IDLE: "Not tested",
    ConnectionStatus.TESTING: "Testing...",
    ConnectionStatus.CONNECTED: "Connected",
    ConnectionStatus.ERROR: "Error",
}

# Match list columns
COL_NAME = 0
COL_OLD_URL = 1
COL_NEW_URL = 2


def get_app_icon():
    """Return a wx.Icon for the main window, with a safe fallback."""
    base_dir = getattr(sys, '_MEIPASS', os.path.dirname(os.path.abspath(__file__)))
    icon_path = os.path.join(base_dir, "icon.ico")
    if os.path.exists(icon_path):
        icon = wx.Icon(icon_path, wx.BITMAP_TYPE_ICO)
        if icon.IsOk():
            return icon
    return wx.ArtProvider.GetIcon(wx.ART_INFORMATION, wx.ART_OTHER, (16, 16))


def build_catalog_menu(items, on_pick):
    """Popup menu of catalog domains; picking one calls ``on_pick(domain)``."""
    menu = wx.Menu()
    if not items:
        menu.Append(wx.ID_ANY, "No trackers found").Enable(False)
    for item in items:
        entry = menu.Append(wx.ID_ANY, f"{item.domain}\t{item.count}")
        entry.Enable(item.selectable)
        # Bound on the menu so the handlers go away with it.
        menu.Bind(wx.EVT_MENU, lambda e, d=item.domain: on_pick(d), entry)
    return menu


class WxTimer:
    """Debouncer timer slot backed by wx.CallLater (fires on the GUI thread)."""

    def __init__(self, delay_ms, fn):
        self._later = wx.CallLater(delay_ms, fn)

    def cancel(self):
        self._later.Stop()


class RuleRow:
    def __init__(self, parent, sizer, index, frame):
        self.index = index
        self.enabled = wx.CheckBox(parent, label="")
        self.old_domain = wx.TextCtrl(parent)
        self.old_domain.SetHint("old.tracker.com")
        self.arrow = wx.StaticText(parent, label="→")
        self.new_domain = wx.TextCtrl(parent)
        self.new_domain.SetHint("new.tracker.com")
        self.remove = wx.Button(parent, label="Remove", style=wx.BU_EXACTFIT)

        self.enabled.Bind(wx.EVT_CHECKBOX, lambda e: frame.session.rules.update(self.index, "enabled", e.IsChecked()))
        self.old_domain.Bind(wx.EVT_TEXT, lambda e: frame.session.rules.update(self.index, "old_domain", e.GetString()))
        self.new_domain.Bind(wx.EVT_TEXT, lambda e: frame.session.rules.update(self.index, "new_domain", e.GetString()))
        # Deferred: removing rebuilds the rows, including this button.
        self.remove.Bind(wx.EVT_BUTTON, lambda e: wx.CallAfter(frame.session.rules.remove, self.index))

        sizer.Add(self.enabled, 0, wx.ALIGN_CENTER_VERTICAL)
        sizer.Add(self.old_domain, 1, wx.EXPAND)
        sizer.Add(self.arrow, 0, wx.ALIGN_CENTER_VERTICAL)
        sizer.Add(self.new_domain, 1, wx.EXPAND)
        sizer.Add(self.remove, 0, wx.ALIGN_CENTER_VERTICAL)

    def sync(self, rule, can_remove):
        # ChangeValue does not emit EVT_TEXT, so this never feeds back into the session.
        if self.enabled.GetValue() != rule.enabled:
            self.enabled.SetValue(rule.enabled)
        if self.old_domain.GetValue() != rule.old_domain:
            self.old_domain.ChangeValue(rule.old_domain)
        if self.new_domain.GetValue() != rule.new_domain:
            self.new_domain.ChangeValue(rule.new_domain)
        self.remove.Enable(can_remove)


class MainFrame(wx.Frame):
    def __init__(self):
        super().__init__(None, title=APP_NAME, size=(860, 640))
        self.SetMinSize((860, 500))
        self.SetIcon(get_app_icon())

        runner = TaskRunner(call_after=wx.CallAfter)
        self.session = ReplaceSession(Backend(), runner=runner, call_later=WxTimer)
        self.rule_rows = []
        self._picker_visible = False

        panel = wx.Panel(self)
        root = wx.BoxSizer(wx.VERTICAL)
        root.Add(self._build_connection_box(panel), 0, wx.EXPAND | wx.ALL, 8)
        root.Add(self._build_rules_box(panel), 1, wx.EXPAND | wx.LEFT | wx.RIGHT, 8)
        root.Add(self._build_preview_box(panel), 1, wx.EXPAND | wx.ALL, 8)
        panel.SetSizer(root)

        self.Bind(wx.EVT_CLOSE, self.on_close)
        self.session.add_listener(self.refresh)
        self.refresh()
        self.session.start()

    # --- layout ---

    def _build_connection_box(self, parent):
        box = wx.StaticBoxSizer(wx.VERTICAL, parent, "Connection")
        grid = wx.FlexGridSizer(2, 6, 4, 8)
        grid.AddGrowableCol(1, 2)
        grid.AddGrowableCol(3, 1)

        self.client_choice = wx.Choice(parent, choices=[CLIENT_LABELS[t] for t in DOWNLOADER_TYPES])
        self.host_text = wx.TextCtrl(parent)
        self.port_text = wx.TextCtrl(parent, size=(70, -1))
        self.user_text = wx.TextCtrl(parent)
        self.password_text = wx.TextCtrl(parent, style=wx.TE_PASSWORD)
        self.https_check = wx.CheckBox(parent, label="HTTPS")

        for label, ctrl in (
            ("Client", self.client_choice),
            ("Host", self.host_text),
            ("Port", self.port_text),
            ("Username", self.user_text),
            ("Password", self.password_text),
        ):
            grid.Add(wx.StaticText(parent, label=label), 0, wx.ALIGN_CENTER_VERTICAL)
            grid.Add(ctrl, 1, wx.EXPAND)
        grid.Add(self.https_check, 0, wx.ALIGN_CENTER_VERTICAL)
        box.Add(grid, 0, wx.EXPAND | wx.ALL, 4)

        row = wx.BoxSizer(wx.HORIZONTAL)
        self.test_button = wx.Button(parent, label="Test connection")
        self.status_text = wx.StaticText(parent, label="")
        row.Add(self.test_button, 0, wx.RIGHT, 8)
        row.Add(self.status_text, 1, wx.ALIGN_CENTER_VERTICAL)
        box.Add(row, 0, wx.EXPAND | wx.ALL, 4)

        conn = self.session.connection
        self.client_choice.Bind(wx.EVT_CHOICE, lambda e: conn.update("downloader_type", DOWNLOADER_TYPES[e.GetSelection()]))
        self.host_text.Bind(wx.EVT_TEXT, lambda e: conn.update("host", e.GetString()))
        self.port_text.Bind(wx.EVT_TEXT, lambda e: conn.update("port", e.GetString()))
        self.user_text.Bind(wx.EVT_TEXT, lambda e: conn.update("username", e.GetString()))
        self.password_text.Bind(wx.EVT_TEXT, lambda e: conn.update("password", e.GetString()))
        self.https_check.Bind(wx.EVT_CHECKBOX, lambda e: conn.update("use_https", e.IsChecked()))
        self.test_button.Bind(wx.EVT_BUTTON, lambda e: conn.test())
        return box

    def _build_rules_box(self, parent):
        box = wx.StaticBoxSizer(wx.VERTICAL, parent, "Replacement Rules")
        header = wx.BoxSizer(wx.HORIZONTAL)
        self.active_text = wx.StaticText(parent, label="")
        self.browse_button = wx.Button(parent, label="Browse trackers")
        self.add_button = wx.Button(parent, label="Add rule")
        header.Add(self.active_text, 1, wx.ALIGN_CENTER_VERTICAL)
        header.Add(self.browse_button, 0, wx.RIGHT, 4)
        header.Add(self.add_button, 0)
        box.Add(header, 0, wx.EXPAND | wx.ALL, 4)

        self.rules_window = wx.ScrolledWindow(parent, style=wx.VSCROLL)
        self.rules_window.SetScrollRate(0, 10)
        self.rules_sizer = wx.FlexGridSizer(0, 5, 4, 6)
        self.rules_sizer.AddGrowableCol(1, 1)
        self.rules_sizer.AddGrowableCol(3, 1)
        self.rules_window.SetSizer(self.rules_sizer)
        box.Add(self.rules_window, 1, wx.EXPAND | wx.ALL, 4)

        self.browse_button.Bind(wx.EVT_BUTTON, lambda e: self.session.catalog.fetch())
        self.add_button.Bind(wx.EVT_BUTTON, lambda e: self.session.rules.add())
        return box

    def _build_preview_box(self, parent):
        box = wx.StaticBoxSizer(wx.VERTICAL, parent, "Preview")
        row = wx.BoxSizer(wx.HORIZONTAL)
        self.stats_text = wx.StaticText(parent, label="Run a scan to preview matched torrents")
        self.scan_button = wx.Button(parent, label="Scan")
        self.execute_button = wx.Button(parent, label="Execute")
        row.Add(self.stats_text, 1, wx.ALIGN_CENTER_VERTICAL)
        row.Add(self.scan_button, 0, wx.RIGHT, 4)
        row.Add(self.execute_button, 0)
        box.Add(row, 0, wx.EXPAND | wx.ALL, 4)

        self.matches_toggle = wx.ToggleButton(parent, label="")
        box.Add(self.matches_toggle, 0, wx.ALL, 4)

        self.matches_list = wx.ListCtrl(parent, style=wx.LC_REPORT | wx.LC_SINGLE_SEL)
        self.matches_list.InsertColumn(COL_NAME, "Torrent", width=220)
        self.matches_list.InsertColumn(COL_OLD_URL, "Old URL", width=260)
        self.matches_list.InsertColumn(COL_NEW_URL, "New URL", width=260)
        box.Add(self.matches_list, 1, wx.EXPAND | wx.ALL, 4)

        self.scan_button.Bind(wx.EVT_BUTTON, lambda e: self.session.workflow.scan())
        self.execute_button.Bind(wx.EVT_BUTTON, self.on_execute)
        self.matches_toggle.Bind(wx.EVT_TOGGLEBUTTON, lambda e: self.session.workflow.toggle_matches())
        return box

    # --- session -> widgets ---

    def refresh(self):
        s = self.session
        self._sync_connection()
        self._sync_rules()

        self.test_button.Enable(s.connection.can_test)
        label = STATUS_LABELS[s.connection.status]
        if s.connection.message:
            label = f"{label}: {s.connection.message}"
        self.status_text.SetLabel(label)

        count = s.rules.active_rule_count
        self.active_text.SetLabel(f"{count} active" if count else "")
        self.browse_button.Enable(not s.catalog.is_fetching)
        self.scan_button.Enable(s.workflow.can_scan)
        self.execute_button.Enable(s.workflow.can_execute)
        self.scan_button.SetLabel("Scanning..." if s.workflow.is_scanning else "Scan")
        self.execute_button.SetLabel("Executing..." if s.workflow.is_executing else "Execute")
        self._sync_preview()

        if s.catalog.picker_open and not self._picker_visible:
            self._picker_visible = True
            wx.CallAfter(self._show_catalog_menu)

    def _sync_connection(self):
        c = self.session.connection.connection
        if c.downloader_type in DOWNLOADER_TYPES:
            self.client_choice.SetSelection(DOWNLOADER_TYPES.index(c.downloader_type))
        for ctrl, value in (
            (self.host_text, c.host),
            (self.user_text, c.username),
            (self.password_text, c.password),
        ):
            if ctrl.GetValue() != value:
                ctrl.ChangeValue(value)
        # Leave half-typed port text alone while it still means the same port.
        if coerce_port(self.port_text.GetValue()) != c.port or not self.port_text.GetValue():
            self.port_text.ChangeValue(str(c.port))
        self.https_check.SetValue(c.use_https)

    def _sync_rules(self):
        rules = self.session.rules.rules
        if len(rules) != len(self.rule_rows):
            self.rules_sizer.Clear(delete_windows=True)
            self.rule_rows = [RuleRow(self.rules_window, self.rules_sizer, i, self) for i in range(len(rules))]
            self.rules_window.FitInside()
            self.rules_window.Layout()
        can_remove = self.session.rules.can_remove
        for row, rule in zip(self.rule_rows, rules):
            row.sync(rule, can_remove)

    def _sync_preview(self):
        wf = self.session.workflow
        result = wf.scan_result
        self.matches_list.DeleteAllItems()
        if result is None:
            self.stats_text.SetLabel("Run a scan to preview matched torrents")
            self.matches_toggle.Hide()
            self.matches_list.Hide()
            self.Layout()
            return

        stats = f"{result.matched_torrents} matched / {result.total_torrents} total"
        if result.matched_torrents:
            stats += f"  ({result.match_percent}%)"
        self.stats_text.SetLabel(stats)

        n = len(result.matches)
        self.matches_toggle.SetLabel(f"{n} tracker {'replacement' if n == 1 else 'replacements'}")
        self.matches_toggle.SetValue(wf.show_matches)
        self.matches_toggle.Show(n > 0)
        self.matches_list.Show(wf.show_matches and n > 0)
        if wf.show_matches:
            for m in result.matches:
                idx = self.matches_list.InsertItem(self.matches_list.GetItemCount(), m.name)
                self.matches_list.SetItem(idx, COL_OLD_URL, m.old_url)
                self.matches_list.SetItem(idx, COL_NEW_URL, m.new_url)
        self.Layout()

    # --- actions ---

    def _show_catalog_menu(self):
        catalog = self.session.catalog
        menu = build_catalog_menu(catalog.presented(), self.session.rules.add_from_domain)
        self.PopupMenu(menu, self.browse_button.GetPosition())
        menu.Destroy()
        self._picker_visible = False
        catalog.close_picker()

    def on_execute(self, event):
        self.session.workflow.execute(on_done=self._on_execute_done)

    def _on_execute_done(self, results):
        ok, failed = summarize_results(results)
        msg = f"Replaced {ok} tracker(s)."
        if failed:
            errors = "\n".join(f"{r.torrent_name}: {r.error}" for r in results if not r.success)
            msg += f"\n{failed} failed:\n{errors}"
        wx.MessageBox(msg, APP_NAME, wx.OK | (wx.ICON_WARNING if failed else wx.ICON_INFORMATION), self)

    def on_close(self, event):
        self.session.remove_listener(self.refresh)
        self.session.close()
        self.Destroy()


if __name__ == "__main__":
    setup_logging()
    try:
        logger.info("%s starting", APP_NAME)
        app = wx.App(False)
        frame = MainFrame()
        frame.Show()
        app.MainLoop()
    except Exception:
        logger.exception("CRITICAL ERROR")
        raise
