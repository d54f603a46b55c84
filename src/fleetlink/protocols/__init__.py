# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Protocol definitions for pluggable engine collaborators.

Available protocols:
- DurationEstimator: Interface for the injected ride-duration function
"""

from .estimator import DurationEstimator

__all__ = ["DurationEstimator"]
