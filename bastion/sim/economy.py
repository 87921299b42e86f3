"""Player cash bookkeeping."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class CashLedger:
    def __init__(self, initial: int = 0) -> None:
        self._cash = initial

    @property
    def cash(self) -> int:
        return self._cash

    def has_enough(self, amount: int) -> bool:
        return self._cash >= amount

    def add(self, amount: int) -> None:
        if amount <= 0:
            return
        self._cash += amount
        logger.debug("Added %d cash. Total: %d", amount, self._cash)

    def spend(self, amount: int) -> bool:
        if amount <= 0:
            return False
        if self._cash < amount:
            logger.debug("Not enough cash to spend %d. Current: %d", amount, self._cash)
            return False
        self._cash -= amount
        logger.debug("Spent %d cash. Remaining: %d", amount, self._cash)
        return True
