"""
Central typing module for arangomap.

This module provides common type aliases used throughout the project.
"""

from typing import Any, Callable, Dict, List, Tuple, Union

# Raw documents exchanged with storage backends
RawDocument = Dict[str, Any]

# Filters and updates as written by callers (before casting)
FilterSpec = Dict[str, Any]
UpdateSpec = Dict[str, Any]

# Validators take the casted value and return truthiness
ValidatorFunc = Callable[[Any], Any]
ValidatorSpec = Union[ValidatorFunc, Tuple[ValidatorFunc, str], Dict[str, Any]]
ValidatorList = List[Tuple[ValidatorFunc, Union[str, None]]]

# Default values are either literals or zero-argument factories
DefaultSpec = Union[Any, Callable[[], Any]]

DOCUMENT_KEY = "_key"
DOCUMENT_REV = "_rev"
