"""
Preferences repository — a single JSON document in `app_settings`.

Stored documents may be partial or come from older versions; `merge_preferences`
lays whatever is usable over the defaults.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import ValidationError

from core.db import DatabaseManager
from core.schema import DEFAULT_CARD_ORDER, DEFAULT_CARD_TITLES, AppSettings, UserPreferences

logger = logging.getLogger(__name__)

# Card that older layouts predate; appended when missing.
REQUIRED_CARD = "monthly_investments"

_SETTINGS_ALIASES: Dict[str, str] = {
    "investmentProjectionTimeframe": "investment_projection_timeframe",
    "predictContributions": "predict_contributions",
    "budgetGoals": "budget_goals",
}
_PREFS_ALIASES: Dict[str, str] = {
    "cardOrder": "card_order",
    "cardColors": "card_colors",
    "cardTitles": "card_titles",
}


def _merge_settings(raw: Any) -> AppSettings:
    defaults = AppSettings()
    if not isinstance(raw, dict):
        return defaults
    merged = defaults.model_dump()
    for key, value in raw.items():
        key = _SETTINGS_ALIASES.get(key, key)
        if key not in merged or value is None:
            continue
        if key == "predict_contributions" and not isinstance(value, bool):
            continue
        candidate = {**merged, key: value}
        try:
            AppSettings.model_validate(candidate)
        except ValidationError:
            logger.warning("Ignoring invalid stored setting %r", key)
            continue
        merged = candidate
    return AppSettings.model_validate(merged)


def normalize_card_order(raw: Any) -> list:
    """Known card keys, deduplicated, with the investments card always present."""
    if not isinstance(raw, list) or not raw:
        return list(DEFAULT_CARD_ORDER)
    order = []
    for key in raw:
        if key in DEFAULT_CARD_TITLES and key not in order:
            order.append(key)
    if REQUIRED_CARD not in order:
        order.append(REQUIRED_CARD)
    return order


def merge_preferences(raw: Optional[Dict[str, Any]]) -> UserPreferences:
    """Stored values over defaults, field by field."""
    if not isinstance(raw, dict):
        return UserPreferences()
    raw = {_PREFS_ALIASES.get(k, k): v for k, v in raw.items()}

    colors = raw.get("card_colors")
    titles = raw.get("card_titles")
    return UserPreferences(
        settings=_merge_settings(raw.get("settings")),
        card_order=normalize_card_order(raw.get("card_order")),
        card_colors={str(k): str(v) for k, v in colors.items()} if isinstance(colors, dict) else {},
        card_titles={
            **DEFAULT_CARD_TITLES,
            **({str(k): str(v) for k, v in titles.items()} if isinstance(titles, dict) else {}),
        },
    )


class SettingsRepository:
    def __init__(self, db: DatabaseManager):
        self.db = db

    def fetch_preferences(self) -> Optional[UserPreferences]:
        """The stored preferences merged over defaults, or None when nothing was saved yet."""
        rows = self.db.query("SELECT settings FROM app_settings ORDER BY id ASC LIMIT 1")
        if not rows:
            return None
        try:
            raw = json.loads(rows[0]["settings"])
        except (TypeError, json.JSONDecodeError) as e:
            logger.error("Stored preferences are not valid JSON: %s", e)
            return None
        return merge_preferences(raw)

    def save_preferences(self, prefs: UserPreferences) -> None:
        doc = prefs.model_dump_json()
        now = datetime.now(timezone.utc).isoformat()
        with self.db.transaction() as conn:
            existing = conn.execute("SELECT id FROM app_settings ORDER BY id ASC LIMIT 1").fetchone()
            if existing is None:
                conn.execute("INSERT INTO app_settings (settings, updated_at) VALUES (?, ?)", (doc, now))
            else:
                conn.execute(
                    "UPDATE app_settings SET settings = ?, updated_at = ? WHERE id = ?",
                    (doc, now, existing["id"]),
                )
        logger.debug("Preferences saved")
