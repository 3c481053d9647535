"""Contract layer - transaction handlers and the invocation surface."""

from .dispatch import InvocationResult, TransactionDispatcher
from .handlers import CarContract

__all__ = ["CarContract", "TransactionDispatcher", "InvocationResult"]
