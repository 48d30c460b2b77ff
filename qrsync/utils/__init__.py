"""Utility helpers for qrsync."""

from __future__ import annotations

from .rate_budget import Permit, RateBudget
from .retry import RetryDirective, RetryExhaustedError, with_retry

__all__ = ["Permit", "RateBudget", "RetryDirective", "RetryExhaustedError", "with_retry"]
