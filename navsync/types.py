"""
Shared record types for navsync.

Settings and Link are the two record kinds that get persisted locally and
mirrored to the remote store. Python attributes are snake_case; the
persisted and wire forms keep the camelCase keys that older clients wrote,
so ``to_dict``/``from_dict`` are the only places that know about the
mapping.
"""

import copy
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

# === Shared Utility Functions ===


def now_ms() -> int:
    """Current time as integer milliseconds since the Unix epoch (UTC)."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


# === Enums ===


class RecordKind(str, Enum):
    """The record kinds kept in sync between local and remote stores."""

    SETTINGS = "settings"
    LINKS = "links"


# === Storage Keys ===

SETTINGS_KEY = "nav-settings"
LINKS_KEY = "nav-links"
REMOTE_SYNC_FLAG_KEY = "nav-use-onedrive"

# Attribute name -> persisted JSON key
_SETTINGS_JSON_KEYS = {
    "bg_type": "bgType",
    "bg_color": "bgColor",
    "bg_image_url": "bgImageUrl",
    "bg_upload_url": "bgUploadUrl",
    "gradient_preset": "gradientPreset",
    "dark_mode": "darkMode",
    "show_clock": "showClock",
    "layout": "layout",
    "search_engine": "searchEngine",
    "auto_refresh": "autoRefresh",
}

_LINK_JSON_KEYS = {
    "id": "id",
    "name": "name",
    "url": "url",
    "icon": "icon",
    "category": "category",
    "use_favicon": "useFavicon",
}


# === Records ===


@dataclass
class Settings:
    """User preferences. Singleton per user, always replaced wholesale."""

    bg_type: str = "bing"  # bing, color, image, upload, gradient
    bg_color: str = "#1a1a2e"
    bg_image_url: str = ""
    bg_upload_url: str = ""
    gradient_preset: str = "blue-purple"
    dark_mode: bool = False
    show_clock: bool = True
    layout: str = "grid"  # grid, list
    search_engine: str = "bing"
    auto_refresh: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            json_key: getattr(self, attr) for attr, json_key in _SETTINGS_JSON_KEYS.items()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base: Optional["Settings"] = None) -> "Settings":
        """Build Settings from persisted JSON, layering it over ``base``.

        Keys missing from ``data`` keep the value from ``base`` (the built-in
        defaults when not given). Unknown keys are ignored.
        """
        merged = (base or cls()).to_dict()
        merged.update({k: v for k, v in data.items() if k in merged})
        return cls(**{attr: merged[json_key] for attr, json_key in _SETTINGS_JSON_KEYS.items()})


@dataclass
class Link:
    """A shortcut link shown on the start page."""

    id: str
    name: str
    url: str
    icon: str = ""  # glyph reference, e.g. "fab fa-github"
    category: str = ""
    use_favicon: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {json_key: getattr(self, attr) for attr, json_key in _LINK_JSON_KEYS.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Link":
        """Build a Link from its JSON form.

        Raises:
            ValueError: If ``data`` is not an object or lacks id/name/url.
        """
        if not isinstance(data, dict):
            raise ValueError(f"link must be an object, got {type(data).__name__}")
        missing = [k for k in ("id", "name", "url") if k not in data]
        if missing:
            raise ValueError(f"link is missing required fields: {', '.join(missing)}")
        kwargs = {
            attr: data[json_key] for attr, json_key in _LINK_JSON_KEYS.items() if json_key in data
        }
        kwargs["id"] = str(kwargs["id"])
        return cls(**kwargs)


def links_to_list(links: List[Link]) -> List[Dict[str, Any]]:
    return [link.to_dict() for link in links]


def links_from_list(items: Any) -> List[Link]:
    """Parse a JSON array of links.

    Raises:
        ValueError: If ``items`` is not a list or any entry is malformed.
    """
    if not isinstance(items, list):
        raise ValueError(f"links must be an array, got {type(items).__name__}")
    return [Link.from_dict(item) for item in items]


# === Defaults ===

DEFAULT_SETTINGS = Settings()

DEFAULT_LINKS: List[Link] = [
    Link(
        id="1",
        name="GitHub",
        url="https://github.com",
        icon="fab fa-github",
        category="开发",
        use_favicon=False,
    ),
    Link(id="2", name="W4J1e", url="https://hin.cool", category="博客", use_favicon=True),
    Link(
        id="3",
        name="哔哩哔哩",
        url="https://bilibili.com",
        category="娱乐",
        use_favicon=True,
    ),
    Link(
        id="4",
        name="腾讯云",
        url="https://cloud.tencent.com",
        category="开发",
        use_favicon=True,
    ),
    Link(
        id="5",
        name="多吉云",
        url="https://www.dogecloud.com",
        icon="fas fa-cloud",
        category="开发",
        use_favicon=False,
    ),
]


def default_settings() -> Settings:
    """Fresh copy of the built-in settings."""
    return copy.copy(DEFAULT_SETTINGS)


def default_links() -> List[Link]:
    """Fresh copy of the built-in link collection."""
    return [copy.copy(link) for link in DEFAULT_LINKS]
