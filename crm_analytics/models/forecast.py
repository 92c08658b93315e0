"""
Time-series input and forecast output models.

``SeriesPoint`` is one observed ``(date, value)`` pair fed to the forecasting
model. ``ForecastPoint`` is one projected period: a non-negative value and a
confidence that never increases further into the horizon.
"""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, field_validator


class SeriesPoint(BaseModel):
    """An observed value for one period."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    date: date
    value: float


class ForecastPoint(BaseModel):
    """A projected value for one future period.

    Attributes:
        date: Calendar date of the projected period.
        value: Projected value, floored at zero.
        confidence: Confidence in ``[0, 1]``; decays with distance.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    date: date
    value: float
    confidence: float

    @field_validator("value")
    @classmethod
    def validate_value(cls, v: float) -> float:
        if v < 0:
            raise ValueError("value must be non-negative.")
        return v

    @field_validator("confidence")
    @classmethod
    def validate_confidence(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"confidence must be in [0.0, 1.0], got {v}.")
        return v
