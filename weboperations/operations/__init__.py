"""Operations and the queues that run them."""

from weboperations.operations.base import BaseOperation, FunctionOperation, OperationState
from weboperations.operations.basic_get import BasicGetOperation
from weboperations.operations.queue import OperationQueue

__all__ = [
    "BaseOperation",
    "BasicGetOperation",
    "FunctionOperation",
    "OperationQueue",
    "OperationState",
]
