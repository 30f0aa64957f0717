"""Entity resolution against the reference company list."""

from .normalize import name_tokens, normalize_name, passes_token_guard, token_overlap
from .resolver import CompanyResolver, Resolution

__all__ = [
    "CompanyResolver",
    "Resolution",
    "name_tokens",
    "normalize_name",
    "passes_token_guard",
    "token_overlap",
]
