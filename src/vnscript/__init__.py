"""Narrative-script interpreter: YAML scenes, game state and templated dialogue."""

from .services.interpreter import Interpreter, create_interpreter

__all__ = ["Interpreter", "create_interpreter"]
