"""Method selection and analysis options.

Method names are case-folded and resolved to closed enums up front, so an
unknown name is rejected before any data is touched.
"""

from __future__ import annotations

import numbers
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .base import InputValidationError


class TATEMethod(str, Enum):
    """Back-ends that produce the target average treatment effect."""

    WEIGHTING = "weighting"
    BART = "bart"
    TMLE = "tmle"

    @property
    def display_name(self) -> str:
        return {"weighting": "Weighting", "bart": "BART", "tmle": "TMLE"}[self.value]

    @classmethod
    def parse(cls, value: TATEMethod | str) -> TATEMethod:
        """Resolve a method name, ignoring case."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.lower())
            except ValueError:
                pass
        allowed = ", ".join(m.value for m in cls)
        raise InputValidationError(f"Invalid method {value!r}; expected one of: {allowed}")


class SelectionMethod(str, Enum):
    """Models for the probability of trial participation."""

    LR = "lr"
    RF = "rf"
    LASSO = "lasso"

    @property
    def display_name(self) -> str:
        return {
            "lr": "Logistic Regression",
            "rf": "Random Forests",
            "lasso": "Lasso",
        }[self.value]

    @classmethod
    def parse(cls, value: SelectionMethod | str) -> SelectionMethod:
        """Resolve a selection method name, ignoring case."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.lower())
            except ValueError:
                pass
        allowed = ", ".join(m.value for m in cls)
        raise InputValidationError(
            f"Invalid selection_method {value!r}; expected one of: {allowed}"
        )


def parse_seed(seed: Any, default: int) -> int:
    """Validate a caller-supplied seed, falling back to the default.

    Raises:
        InputValidationError: If the seed is not numeric
    """
    if seed is None:
        return int(default)
    if isinstance(seed, bool) or not isinstance(seed, numbers.Real):
        raise InputValidationError(f"seed must be numeric, got {type(seed).__name__}")
    if seed != seed:  # NaN
        raise InputValidationError("seed must be numeric, got NaN")
    return int(seed)


class AnalysisOptions(BaseModel):
    """Resolved options for a single ``generalize`` or ``assess`` call."""

    method: TATEMethod = Field(default=TATEMethod.WEIGHTING)
    selection_method: SelectionMethod = Field(default=SelectionMethod.LR)
    is_data_disjoint: bool = Field(default=True)
    trim_pop: bool = Field(default=False)
    seed: int = Field(..., description="Seed threaded into stochastic back-ends")

    model_config = {"frozen": True}

    @classmethod
    def resolve(
        cls,
        *,
        method: TATEMethod | str = TATEMethod.WEIGHTING,
        selection_method: SelectionMethod | str = SelectionMethod.LR,
        is_data_disjoint: bool = True,
        trim_pop: bool = False,
        seed: Any = None,
        default_seed: int,
    ) -> AnalysisOptions:
        """Normalize raw caller options.

        TMLE always runs on trimmed population data, so it forces
        ``trim_pop`` on regardless of the caller's flag.
        """
        tate_method = TATEMethod.parse(method)
        selection = SelectionMethod.parse(selection_method)
        resolved_seed = parse_seed(seed, default_seed)

        return cls(
            method=tate_method,
            selection_method=selection,
            is_data_disjoint=bool(is_data_disjoint),
            trim_pop=bool(trim_pop) or tate_method is TATEMethod.TMLE,
            seed=resolved_seed,
        )
