"""Core building blocks shared by every layer."""

from .errors import ErrorCode
from .result import Err, Ok, Result, is_err, is_ok

__all__ = ["ErrorCode", "Err", "Ok", "Result", "is_err", "is_ok"]
