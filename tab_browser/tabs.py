"""Registry of open tabs shown in the dashboard tab strip."""

import json
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .config import DEFAULT_ROUTE, MAX_TABS
from .exceptions import StorageError, TabNotFoundError
from .storage import BROWSER_TABS_KEY, Storage

# Tabs kept when a save fails with many tabs open
_REDUCED_TAB_COUNT = 5

_UPDATABLE_FIELDS = ("title", "path", "icon", "closable", "data")


def _new_tab_id() -> str:
    return uuid.uuid4().hex


def _check_serializable(**fields: Any) -> None:
    """Raise ValueError if tab fields cannot be written to storage as JSON."""
    try:
        json.dumps(fields)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Tab fields must be JSON-serializable: {e}") from e


@dataclass
class Tab:
    """A route plus display title shown in the tab strip."""
    title: str
    path: str
    icon: Optional[str] = None
    closable: bool = True
    data: Any = None
    id: str = field(default_factory=_new_tab_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "path": self.path,
            "icon": self.icon,
            "closable": self.closable,
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Tab":
        """Build a tab from a stored record, assigning an id if it has none."""
        tab = cls(
            title=str(raw["title"]),
            path=str(raw["path"]),
            icon=raw.get("icon"),
            closable=raw.get("closable") is not False,
            data=raw.get("data"),
        )
        if raw.get("id"):
            tab.id = str(raw["id"])
        return tab


class TabRegistry:
    """
    Bounded, ordered list of open tabs with one active tab.

    Tabs are ordered by when they were added. The full list is written to
    durable storage under ``browser-tabs`` after every mutation.
    """

    def __init__(
        self,
        storage: Storage,
        max_tabs: int = MAX_TABS,
        default_route: str = DEFAULT_ROUTE,
        navigator: Optional[Callable[[str], None]] = None,
    ):
        """
        Initialize the registry and restore saved tabs.

        Args:
            storage: Durable storage backend
            max_tabs: Maximum number of open tabs
            default_route: Route to navigate to when no tabs remain
            navigator: Called with a path whenever the registry navigates
        """
        self.storage = storage
        self.max_tabs = max_tabs
        self.default_route = default_route
        self.navigator = navigator
        self._tabs: List[Tab] = []
        self._active_tab_id: Optional[str] = None
        self._lock = threading.RLock()

        self._restore()

    @property
    def tabs(self) -> List[Tab]:
        with self._lock:
            return list(self._tabs)

    @property
    def active_tab_id(self) -> Optional[str]:
        return self._active_tab_id

    @property
    def active_tab(self) -> Optional[Tab]:
        with self._lock:
            return self._find(self._active_tab_id)

    def __len__(self) -> int:
        return len(self._tabs)

    def get_tab(self, tab_id: str) -> Tab:
        """
        Get a tab by id.

        Raises:
            TabNotFoundError: If no tab has the id
        """
        with self._lock:
            tab = self._find(tab_id)
        if tab is None:
            raise TabNotFoundError(f"Tab '{tab_id}' not found")
        return tab

    def find_by_path(self, path: str) -> Optional[Tab]:
        with self._lock:
            for tab in self._tabs:
                if tab.path == path:
                    return tab
        return None

    def add_tab(
        self,
        title: str,
        path: str,
        icon: Optional[str] = None,
        closable: bool = True,
        data: Any = None,
    ) -> Tab:
        """
        Open a tab, or activate the open tab with the same path and title.

        When the registry is full, the least recently added tab that is not
        active is closed first.

        Returns:
            The new or existing tab, now active

        Raises:
            ValueError: If title, path, icon or data cannot be stored as JSON
        """
        _check_serializable(title=title, path=path, icon=icon, data=data)

        with self._lock:
            for tab in self._tabs:
                if tab.path == path and tab.title == title:
                    self._active_tab_id = tab.id
                    return tab

            if len(self._tabs) >= self.max_tabs:
                inactive = [tab for tab in self._tabs if tab.id != self._active_tab_id]
                if inactive:
                    oldest = inactive[0]
                    self._tabs.remove(oldest)
                    print(f"Closed oldest tab \"{oldest.title}\" after reaching the {self.max_tabs} tab limit")

            tab = Tab(title=title, path=path, icon=icon, closable=closable is not False, data=data)
            self._tabs.append(tab)
            self._active_tab_id = tab.id
            self._persist()
            return tab

    def remove_tab(self, tab_id: str) -> bool:
        """
        Close a tab. If it was active, the last remaining tab becomes active
        and is navigated to; with no tabs left, navigates to the default route.

        Returns:
            True if a tab was removed
        """
        navigate_path = None
        with self._lock:
            tab = self._find(tab_id)
            if tab is None:
                return False

            self._tabs.remove(tab)
            self._persist()

            if self._active_tab_id == tab_id:
                if self._tabs:
                    new_active = self._tabs[-1]
                    self._active_tab_id = new_active.id
                    navigate_path = new_active.path
                else:
                    self._active_tab_id = None
                    navigate_path = self.default_route

        if navigate_path:
            self._navigate(navigate_path)
        return True

    def close_tab(self, tab_id: str) -> bool:
        return self.remove_tab(tab_id)

    def set_active_tab(self, tab_id: str) -> Tab:
        """
        Make a tab active.

        Raises:
            TabNotFoundError: If no tab has the id
        """
        with self._lock:
            tab = self.get_tab(tab_id)
            self._active_tab_id = tab.id
            return tab

    def close_all_tabs(self) -> None:
        """Close every tab and navigate to the default route."""
        with self._lock:
            self._tabs = []
            self._active_tab_id = None
            try:
                self.storage.remove_item(BROWSER_TABS_KEY)
            except StorageError as e:
                print(f"Error removing tabs from storage: {e}")
        self._navigate(self.default_route)

    def close_other_tabs(self, keep_tab_id: str) -> None:
        """Close every tab except one, which becomes active."""
        with self._lock:
            self._tabs = [tab for tab in self._tabs if tab.id == keep_tab_id]
            self._active_tab_id = keep_tab_id if self._tabs else None
            self._persist()

    def update_tab(self, tab_id: str, **updates: Any) -> Tab:
        """
        Change a tab's fields. The id never changes.

        Args:
            tab_id: Tab to update
            **updates: Any of title, path, icon, closable, data

        Raises:
            TabNotFoundError: If no tab has the id
            ValueError: If an unknown field is given or a value cannot be
                stored as JSON
        """
        unknown = set(updates) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update tab fields: {', '.join(sorted(unknown))}")
        _check_serializable(**updates)

        with self._lock:
            tab = self.get_tab(tab_id)
            for name, value in updates.items():
                setattr(tab, name, value)
            self._persist()
            return tab

    def open_in_tab(self, title: str, path: str, icon: Optional[str] = None) -> Tab:
        """Switch to the tab showing a path, opening one if needed, then navigate."""
        existing = self.find_by_path(path)
        if existing is not None:
            tab = self.set_active_tab(existing.id)
        else:
            tab = self.add_tab(title=title, path=path, icon=icon, closable=True)
        self._navigate(path)
        return tab

    def open_in_new_tab(self, title: str, path: str, icon: Optional[str] = None) -> Tab:
        """Open a tab for a path without navigating to it."""
        return self.add_tab(title=title, path=path, icon=icon, closable=True)

    def set_page_title(self, path: str, title: str) -> Optional[Tab]:
        """Retitle the tab showing a path if its title differs."""
        with self._lock:
            tab = self.find_by_path(path)
            if tab is not None and tab.title != title:
                tab.title = title
                self._persist()
            return tab

    def ensure_tab_for_path(self, path: str, title: str) -> Optional[Tab]:
        """
        Create a tab for the current page when none are open.

        Nothing is created for the default route or for paths not starting
        with '/'.
        """
        with self._lock:
            if self._tabs:
                return None
            if path == self.default_route or not path.startswith("/"):
                return None

            tab = Tab(title=title, path=path, closable=True)
            self._tabs = [tab]
            self._active_tab_id = tab.id
            self._persist()
            return tab

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "tabs": [tab.to_dict() for tab in self._tabs],
                "active_tab_id": self._active_tab_id,
            }

    def _find(self, tab_id: Optional[str]) -> Optional[Tab]:
        for tab in self._tabs:
            if tab.id == tab_id:
                return tab
        return None

    def _navigate(self, path: str) -> None:
        if self.navigator is None:
            return
        try:
            self.navigator(path)
        except Exception as e:
            print(f"Error navigating to {path}: {e}")

    def _persist(self) -> None:
        """Save the full tab list; on failure keep only the newest tabs and retry once."""
        try:
            self._save(self._tabs)
        except (TypeError, ValueError) as e:
            # A tab's data was changed in place to something JSON cannot hold
            print(f"Error serializing tabs: {e}")
        except StorageError as e:
            print(f"Error saving tabs to storage: {e}")
            if len(self._tabs) > _REDUCED_TAB_COUNT:
                self._tabs = self._tabs[-_REDUCED_TAB_COUNT:]
                if self._find(self._active_tab_id) is None:
                    self._active_tab_id = self._tabs[-1].id
                try:
                    self._save(self._tabs)
                except StorageError as retry_error:
                    print(f"Error saving reduced tabs to storage: {retry_error}")

    def _save(self, tabs: List[Tab]) -> None:
        self.storage.set_item(BROWSER_TABS_KEY, json.dumps([tab.to_dict() for tab in tabs]))

    def _restore(self) -> None:
        """Load saved tabs; the last one becomes active."""
        try:
            saved = self.storage.get_item(BROWSER_TABS_KEY)
            if not saved:
                return

            parsed = json.loads(saved)
            if not isinstance(parsed, list):
                raise ValueError("saved tabs are not a JSON array")
            tabs = [Tab.from_dict(raw) for raw in parsed]
        except (StorageError, ValueError, TypeError, KeyError, AttributeError) as e:
            print(f"Error parsing saved tabs: {e}")
            return

        self._tabs = tabs
        if tabs:
            self._active_tab_id = tabs[-1].id


__all__ = ["Tab", "TabRegistry"]
