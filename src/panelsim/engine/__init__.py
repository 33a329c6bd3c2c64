"""Engine package orchestrating end-to-end simulations."""

from .simulate import CalculationResult, DailyProfile, InstantResult, simulate, simulate_day, simulate_instant

__all__ = ["simulate_day", "simulate_instant", "simulate", "DailyProfile", "InstantResult", "CalculationResult"]
