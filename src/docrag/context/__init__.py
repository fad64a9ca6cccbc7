from .assembler import (
    DEFAULT_SEPARATOR,
    NO_CONTEXT_SENTINEL,
    ContextAssembler,
    filtered_context_path,
)
from .sanitizer import DEFAULT_RULES, SanitizationResult, SanitizationRule, Sanitizer

__all__ = [
    "ContextAssembler",
    "DEFAULT_RULES",
    "DEFAULT_SEPARATOR",
    "NO_CONTEXT_SENTINEL",
    "SanitizationResult",
    "SanitizationRule",
    "Sanitizer",
    "filtered_context_path",
]
