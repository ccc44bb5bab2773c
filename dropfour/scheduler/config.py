"""
Scheduler Config - Categories, limits and timing for RequestScheduler.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from .envelope import Priority
from .rate_limit import DEFAULT_WINDOW_SECONDS


class CategoryConfig(BaseModel):
    """One rate-limit and fairness bucket."""
    name: str = Field(min_length=1)
    max_per_window: int = Field(ge=0, description="Dispatches allowed per window")
    window_seconds: float = Field(default=DEFAULT_WINDOW_SECONDS, gt=0)


def default_categories() -> list[CategoryConfig]:
    """The game gets its own bucket, separate from the portfolio features."""
    return [
        CategoryConfig(name="connect4", max_per_window=6),
        CategoryConfig(name="project_cards", max_per_window=10),
        CategoryConfig(name="other", max_per_window=5),
    ]


class SchedulerConfig(BaseModel):
    """
    Options recognized by RequestScheduler.

    Category order is the round-robin order. The last category is the
    fallback for submissions naming an unknown category.
    """
    categories: list[CategoryConfig] = Field(default_factory=default_categories)
    default_timeout: float = Field(default=30.0, gt=0, description="Queueing timeout (s)")
    default_priority: Priority = Priority.MEDIUM
    idle_interval: float = Field(default=0.05, gt=0, description="Wait after an idle sweep (s)")
    sweep_interval: float = Field(default=10.0, gt=0, description="Expiry sweep period (s)")
    max_queue_age: float = Field(default=300.0, gt=0, description="Expiry ceiling (s)")

    @field_validator("categories")
    @classmethod
    def _unique_names(cls, categories: list[CategoryConfig]) -> list[CategoryConfig]:
        if not categories:
            raise ValueError("at least one category is required")
        names = [c.name for c in categories]
        if len(names) != len(set(names)):
            raise ValueError(f"duplicate category names: {names}")
        return categories

    @property
    def category_names(self) -> list[str]:
        return [c.name for c in self.categories]

    @property
    def fallback_category(self) -> str:
        return self.categories[-1].name

    def with_limit(self, name: str, max_per_window: int) -> SchedulerConfig:
        """Return a copy with one category's limit replaced."""
        categories = [
            c.model_copy(update={"max_per_window": max_per_window}) if c.name == name else c
            for c in self.categories
        ]
        return self.model_copy(update={"categories": categories})
