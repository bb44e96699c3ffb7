"""Utility functions."""

from pysnva.utils._validation import (
    check_covariance,
    is_positive_definite,
    is_symmetric,
)

__all__ = ["is_symmetric", "is_positive_definite", "check_covariance"]
