"""Generic ordered container shared by every level of the hierarchy.

A :class:`Collection` is composed into :class:`~elephant.registry.Registry`
(groups), :class:`~elephant.group.Group` (templates) and
:class:`~elephant.template.Template` (records). Items keep insertion order
and are unique by a key: the item's ``id`` by default, or any other
attribute named by ``key``. Errors are raised to the immediate caller.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any, Generic, Optional, TypeVar

from elephant.exceptions import DuplicateItemError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


class Collection(Generic[T]):
    """Ordered collection of items unique by a key attribute.

    Args:
        name: Label used in log and error messages (e.g. ``"group 'api'"``).
        key: Attribute that identifies an item for duplicate detection.

    Example::

        records: Collection[Record] = Collection("template 'users'", key="params")
        records.add(record)
        records.find_by("params", {"page": 1})
    """

    def __init__(self, name: str, key: str = "id") -> None:
        self._name = name
        self._key = key
        self._items: list[T] = []

    def add(self, item: T) -> None:
        """Append *item*.

        Raises:
            DuplicateItemError: If an item with an equal key is present.
        """
        key_value = getattr(item, self._key)
        if self.find_by(self._key, key_value) is not None:
            raise DuplicateItemError(
                f"Item with {self._key}={key_value!r} already exists in {self._name}"
            )
        self._items.append(item)
        logger.debug("Item %r added to %s", getattr(item, "id", key_value), self._name)

    def remove_by_id(self, item_id: Any) -> bool:
        """Remove the first item whose ``id`` equals *item_id*.

        Returns:
            ``True`` if an item was removed, ``False`` on a miss.
        """
        for index, item in enumerate(self._items):
            if getattr(item, "id", _MISSING) == item_id:
                del self._items[index]
                logger.debug("Item %r removed from %s", item_id, self._name)
                return True
        logger.warning("Item %r was not removed from %s (does it exist?)", item_id, self._name)
        return False

    def remove_all(self) -> int:
        """Remove every item and return the new count (always ``0``)."""
        self._items.clear()
        return 0

    def find_by(self, prop: str, value: Any) -> Optional[T]:
        """Return the first item whose *prop* attribute equals *value*.

        Equality is Python's structural ``==``, so dicts match regardless
        of key order and nested containers compare by content.

        Raises:
            ValidationError: If *prop* is empty.
        """
        if not isinstance(prop, str) or not prop:
            raise ValidationError("Property name must be a non-empty string")
        for item in self._items:
            if getattr(item, prop, _MISSING) == value:
                return item
        return None

    def count(self) -> int:
        """Number of items."""
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items))

    def __repr__(self) -> str:
        return f"Collection({self._name!r}, items={len(self._items)})"
