"""Settings Service - admin-editable rule keys and the cached RuleConfig"""

import asyncio
from typing import Dict, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import RuleConfigError
from app.core.logging import get_logger
from app.core.rules import DEFAULT_RULE_SETTINGS, RuleConfig
from app.models.setting import Setting
from app.services.fee_tables import TransportFeeTable

logger = get_logger(__name__)

RULES_CATEGORY = "RULES"


class SettingsService:
    @staticmethod
    async def get_rule_values(db: AsyncSession) -> Dict[str, str]:
        result = await db.execute(select(Setting).where(Setting.category == RULES_CATEGORY))
        return {row.key: row.value for row in result.scalars().all()}

    @staticmethod
    async def save_rule_values(db: AsyncSession, values: Mapping[str, str]) -> None:
        """Upsert rule rows; the caller commits"""
        result = await db.execute(
            select(Setting).where(Setting.category == RULES_CATEGORY, Setting.key.in_(list(values)))
        )
        existing = {row.key: row for row in result.scalars().all()}
        for key, value in values.items():
            row = existing.get(key)
            if row is None:
                db.add(Setting(key=key, value=str(value), category=RULES_CATEGORY))
            else:
                row.value = str(value)
        await db.flush()


class RuleConfigStore:
    """
    Read-through cache of the parsed RuleConfig.

    One instance lives on ``app.state``. Saving rules through ``save``
    invalidates the cache; the next ``get`` re-reads the settings table.
    """

    def __init__(self):
        self._rules: Optional[RuleConfig] = None
        self._lock = asyncio.Lock()

    @property
    def cached(self) -> Optional[RuleConfig]:
        return self._rules

    def invalidate(self) -> None:
        self._rules = None
        logger.info("Rule configuration cache invalidated")

    async def get(self, db: AsyncSession) -> RuleConfig:
        rules = self._rules
        if rules is not None:
            return rules
        async with self._lock:
            if self._rules is None:
                self._rules = await self.load(db)
            return self._rules

    @staticmethod
    async def load(db: AsyncSession) -> RuleConfig:
        """
        Parse the stored rules. An empty table means the documented defaults;
        once any rule row exists every required key must be present.
        """
        values = await SettingsService.get_rule_values(db)
        if not values:
            logger.info("No rule settings stored; using default rules")
            return RuleConfig.from_settings(DEFAULT_RULE_SETTINGS)
        try:
            rules = RuleConfig.from_settings(values)
        except RuleConfigError:
            logger.error("Stored rule configuration is invalid", exc_info=True)
            raise
        logger.info("Rule configuration loaded", extra={"keys": len(values)})
        return rules

    async def save(self, db: AsyncSession, updates: Mapping[str, str]) -> RuleConfig:
        """
        Merge ``updates`` over the current rules, validate the result, store
        every key, and drop the cache.

        Raises:
            RuleConfigError: the merged rules do not validate; nothing is written
        """
        current = await SettingsService.get_rule_values(db)
        merged = {**(current or DEFAULT_RULE_SETTINGS), **{k: str(v) for k, v in updates.items()}}
        rules = RuleConfig.from_settings(merged)
        if not TransportFeeTable.from_rules(rules).is_non_decreasing():
            logger.warning(
                "Saved transport fees drop as distance grows",
                extra={"transport_fees": {b.value: fee for b, fee in rules.transport_fees.items()}},
            )
        try:
            await SettingsService.save_rule_values(db, rules.to_settings())
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        self.invalidate()
        return rules
