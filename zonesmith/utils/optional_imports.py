"""Optional imports for the vector I/O stack.

geopandas (with shapely and its file drivers) is only needed to read vector
files from disk. The engines run on numpy, pandas, numba and pyproj alone.
"""

import importlib
from typing import Any, Optional, Union

from zonesmith.utils.errors import raise_dependency_error


def optional_import(
    module_path: str,
    names: Optional[Union[str, list[str]]] = None,
) -> tuple[bool, Any]:
    """Import a module, or names from it, if it is installed.

    Args:
        module_path: Full import path (e.g., 'geopandas').
        names: None for the module itself, a name for one attribute, or a
            list of names for several.

    Returns:
        Tuple of (available, imported) where ``imported`` is the module, the
        attribute, or a dict of name -> attribute. Everything is None when
        the module is missing.

    Example:
        >>> GEOPANDAS_AVAILABLE, gpd_read_file = optional_import(
        ...     "geopandas", "read_file"
        ... )
    """
    try:
        module = importlib.import_module(module_path)
    except ImportError:
        if isinstance(names, list):
            return False, {name: None for name in names}
        return False, None

    if names is None:
        return True, module
    if isinstance(names, str):
        return True, getattr(module, names)
    return True, {name: getattr(module, name) for name in names}


def require(available: bool, dependency_name: str, optional_group: str = "io") -> None:
    """Raise DependencyError if an optional import failed."""
    if not available:
        raise_dependency_error(dependency_name, optional_group=optional_group)
