from .cursor import InMemoryCursor
from .driver import InMemoryDriver
from .evaluator import MemoryOperator, OperatorEvaluator
from .operators import build_default_evaluator

__all__ = [
    "InMemoryCursor",
    "InMemoryDriver",
    "MemoryOperator",
    "OperatorEvaluator",
    "build_default_evaluator",
]
