"""Validation Failure Collection

Path-keyed failure messages attached to 400/409 results. Collection paths are
prefixed with the item index, e.g. ``[2].title``.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping


class ValidationResults(dict[str, set[str]]):
    """Mapping of property path to the set of failure messages for it."""

    @property
    def succeeded(self) -> bool:
        return not self

    def add_failure(self, path: str, message: str) -> ValidationResults:
        self.setdefault(path, set()).add(message)
        return self

    def add_failures(self, path: str, messages: Iterable[str]) -> ValidationResults:
        self.setdefault(path, set()).update(messages)
        return self

    def merge(self, other: Mapping[str, Iterable[str]], prefix: str = "") -> ValidationResults:
        for path, messages in other.items():
            key = f"{prefix}.{path}" if prefix and path and not path.startswith("[") else f"{prefix}{path}"
            self.add_failures(key, messages)
        return self

    def add_collection_failures(self, index: int, other: Mapping[str, Iterable[str]]) -> ValidationResults:
        """Merge failures of the item at ``index`` of a batch request."""
        return self.merge(other, prefix=f"[{index}]")

    def to_dict(self) -> dict[str, list[str]]:
        return {path: sorted(messages) for path, messages in self.items()}
