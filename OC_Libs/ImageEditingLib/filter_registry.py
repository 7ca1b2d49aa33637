"""
Filter Registry.

This module provides a registry mapping filter ids to the functions that
implement them. The filter engine looks filters up here, which keeps the
catalog open for additions without touching the engine.

Classes:
    FilterRegistry: Registry for filter functions

Functions:
    build_default_registry: Create a registry holding the built-in catalog
"""

from typing import Any, Callable, Dict, List, Optional
import logging

import numpy as np

logger = logging.getLogger(__name__)

# A filter receives a read-only (height, width, 4) uint8 array and returns a
# new array of the same shape.
FilterFunction = Callable[[np.ndarray], np.ndarray]


class FilterRegistry:
    """
    Registry for filter functions.

    Example:
        >>> registry = FilterRegistry()
        >>> registry.register("invert", invert_pixels, tags=["color-matrix"])
        >>> registry.get_filter("invert")(pixels)
    """

    def __init__(self):
        """Initialize an empty registry."""
        self._filters: Dict[str, FilterFunction] = {}
        self._metadata: Dict[str, Dict[str, Any]] = {}

    def register(
        self,
        filter_id: str,
        function: FilterFunction,
        name: str = "",
        description: str = "",
        tags: Optional[List[str]] = None,
    ) -> None:
        """
        Register a filter function.

        Args:
            filter_id: Unique identifier for the filter (e.g., "sepia")
            function: Callable taking and returning a (height, width, 4) array
            name: Display name shown in the editor
            description: Human-readable description of the effect
            tags: Optional tags, e.g. ["color-matrix"] or ["kernel"]

        Raises:
            ValueError: If filter_id is empty or function is not callable
            RuntimeError: If filter_id is already registered
        """
        filter_id = str(filter_id).strip().lower()

        if not filter_id:
            raise ValueError("filter_id cannot be empty")

        if not callable(function):
            raise ValueError(f"function must be callable, got {type(function)}")

        if filter_id in self._filters:
            raise RuntimeError(
                f"Filter '{filter_id}' is already registered. "
                f"Use unregister() first to replace it."
            )

        self._filters[filter_id] = function
        self._metadata[filter_id] = {
            "name": str(name) or filter_id.title(),
            "description": str(description),
            "tags": list(tags) if tags else [],
        }

        logger.debug(f"Registered filter: {filter_id}")

    def unregister(self, filter_id: str) -> bool:
        """
        Unregister a filter.

        Returns:
            True if unregistered, False if filter_id was not registered
        """
        filter_id = str(filter_id).strip().lower()

        if filter_id in self._filters:
            del self._filters[filter_id]
            del self._metadata[filter_id]
            logger.debug(f"Unregistered filter: {filter_id}")
            return True

        return False

    def get_filter(self, filter_id: str) -> FilterFunction:
        """
        Get the function for a filter id.

        Raises:
            KeyError: If filter_id is not registered
        """
        filter_id = str(filter_id).strip().lower()

        if filter_id not in self._filters:
            available = ", ".join(self.list_filters())
            raise KeyError(
                f"No filter registered as '{filter_id}'. "
                f"Available filters: {available}"
            )

        return self._filters[filter_id]

    def has_filter(self, filter_id: str) -> bool:
        return str(filter_id).strip().lower() in self._filters

    def list_filters(self) -> List[str]:
        """Sorted list of registered filter ids."""
        return sorted(self._filters.keys())

    def get_metadata(self, filter_id: str) -> Dict[str, Any]:
        """
        Get metadata (name, description, tags) for a filter.

        Raises:
            KeyError: If filter_id is not registered
        """
        filter_id = str(filter_id).strip().lower()

        if filter_id not in self._metadata:
            raise KeyError(f"No metadata for filter: {filter_id}")

        meta = self._metadata[filter_id]
        return {"name": meta["name"], "description": meta["description"], "tags": list(meta["tags"])}

    def filter_by_tag(self, tag: str) -> List[str]:
        """Sorted list of filter ids carrying ``tag``."""
        tag = str(tag).strip().lower()
        return sorted([
            filter_id
            for filter_id, meta in self._metadata.items()
            if tag in [t.lower() for t in meta.get("tags", [])]
        ])

    def __contains__(self, filter_id: object) -> bool:
        return isinstance(filter_id, str) and self.has_filter(filter_id)

    def __len__(self) -> int:
        return len(self._filters)


def build_default_registry() -> FilterRegistry:
    """
    Create a registry populated with the built-in filter catalog.

    Registers the color-matrix filters (grayscale, sepia, invert, vintage,
    cool, warm, brightness, contrast, saturate, hue-rotate) and the kernel
    filters (blur, sharpen, emboss).
    """
    from OC_Libs.ImageEditingLib.convolution_filters import register_builtin_filters

    registry = FilterRegistry()
    register_builtin_filters(registry)
    logger.debug(f"Built default filter registry with {len(registry)} filters")
    return registry
