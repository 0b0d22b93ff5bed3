"""Operations layer: typed, transport-agnostic management functions.

Every function takes an :class:`~cronspine.ops.context.OperationContext`
and returns an :class:`~cronspine.ops.result.OperationResult`.
"""

from cronspine.ops.context import OperationContext
from cronspine.ops.result import OperationError, OperationResult, PagedResult

__all__ = ["OperationContext", "OperationError", "OperationResult", "PagedResult"]
