from .modifiers import StatModifiers

__all__ = ["StatModifiers"]
