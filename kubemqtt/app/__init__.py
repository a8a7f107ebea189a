"""
App - operator orchestration (builder + controller + entry point)
"""
from .builder import OperatorBuilder
from .controller import OperatorController, main

__all__ = ["OperatorBuilder", "OperatorController", "main"]
