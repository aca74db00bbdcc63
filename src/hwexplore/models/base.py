# Copyright (c) Syntropy Systems
"""Shared Pydantic model helpers for hwexplore."""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict


class ExploreBaseModel(BaseModel):
    """Base model with shared config for hwexplore schemas."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        populate_by_name=True,
    )


class FrozenModel(BaseModel):
    """Immutable, hashable base model for value objects."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )
