"""
Partial-update builder for ``Deta.update``.

Example:
    ```python
    update = (
        Update()
        .set("profile.age", 33)
        .set("profile.active", True)
        .set("profile.email", "jimmy@deta.sh")
        .increment("purchases", 2)
        .append("likes", "ramen")
        .prepend("likes", "noodles")
        .delete("profile.hometown")
        .delete("on_mobile")
    )
    await base.update("user-a", update)
    ```

Operands keep their JSON type: ``set("active", True)`` sends ``true``, not
``"true"``.
"""

from __future__ import annotations

from typing import Any

from .serialization import to_json_data


class Update:
    """Accumulates set/increment/append/prepend/delete operations.

    Every method mutates the builder in place and returns it, so calls can be
    chained. Attribute paths use dots for nested fields (``"profile.age"``).
    Using the same path in more than one operation kind is not checked here.
    """

    __slots__ = ("_set", "_increment", "_append", "_prepend", "_delete")

    def __init__(self) -> None:
        self._set: dict[str, Any] = {}
        self._increment: dict[str, Any] = {}
        self._append: dict[str, list[Any]] = {}
        self._prepend: dict[str, list[Any]] = {}
        self._delete: list[str] = []

    def set(self, path: str, value: Any) -> Update:
        """Set a new value for an attribute."""
        self._set[str(path)] = to_json_data(value)
        return self

    def increment(self, path: str, delta: int | float = 1) -> Update:
        """Increment a numeric attribute (negative deltas decrement)."""
        self._increment[str(path)] = to_json_data(delta)
        return self

    def append(self, path: str, value: Any) -> Update:
        """Append a value to the list stored at an attribute."""
        self._append.setdefault(str(path), []).append(to_json_data(value))
        return self

    def prepend(self, path: str, value: Any) -> Update:
        """Prepend a value to the list stored at an attribute."""
        self._prepend.setdefault(str(path), []).append(to_json_data(value))
        return self

    def delete(self, path: str) -> Update:
        """Delete an attribute. Duplicates are sent as given."""
        self._delete.append(str(path))
        return self

    def build(self) -> dict[str, Any]:
        """Return the wire document. All five fields are always present."""
        return {
            "set": dict(self._set),
            "increment": dict(self._increment),
            "append": {k: list(v) for k, v in self._append.items()},
            "prepend": {k: list(v) for k, v in self._prepend.items()},
            "delete": list(self._delete),
        }

    to_dict = build

    def copy(self) -> Update:
        """Return an independent builder with the same operations."""
        clone = Update()
        clone._set = dict(self._set)
        clone._increment = dict(self._increment)
        clone._append = {k: list(v) for k, v in self._append.items()}
        clone._prepend = {k: list(v) for k, v in self._prepend.items()}
        clone._delete = list(self._delete)
        return clone

    def is_empty(self) -> bool:
        return not (self._set or self._increment or self._append or self._prepend or self._delete)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Update):
            return NotImplemented
        return self.build() == other.build()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Update({self.build()!r})"


__all__ = ["Update"]
