"""Base generator class for sample data generators."""

from __future__ import annotations

import random
from abc import ABC
from datetime import date, timedelta
from decimal import Decimal

from faker import Faker


class BaseGenerator(ABC):
    """Base class for sample data generators.

    Holds a Faker instance and a private ``random.Random`` seeded together,
    so two generators built with the same seed produce the same data without
    touching the global random state.

    Parameters
    ----------
    seed : int | None
        Random seed for reproducibility.
    locale : str
        Faker locale (default ``pt_BR``).
    """

    def __init__(self, seed: int | None = None, locale: str = "pt_BR") -> None:
        self.fake = Faker(locale)
        self.random = random.Random(seed)
        if seed is not None:
            self.fake.seed_instance(seed)

    def amount(self, low: int, high: int, step: int = 100) -> Decimal:
        """Random whole amount in ``[low, high]`` rounded to ``step``."""
        return Decimal(self.random.randint(low // step, high // step) * step)

    def past_date(self, today: date, max_days: int) -> date:
        """Random date between ``max_days`` before ``today`` and ``today``."""
        return today - timedelta(days=self.random.randint(0, max_days))
