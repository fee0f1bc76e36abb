"""In-memory object registry shared by the builder and the linker."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from featurelink.models import Namespace, RegistryKind

ROOT_NAMESPACE_ID = "requirements"


@dataclass
class Checkpoint:
    """What a registry held at one moment, enough to undo a failed build.

    Objects inserted after the checkpoint are removed on rollback. Shared
    tags and namespaces get their lists, counts and children trimmed back.
    """

    registry: Registry
    ids: set[str]
    tags: dict[str, tuple[int, int, int]] = field(default_factory=dict)
    namespaces: dict[str, tuple[int, set[str], str]] = field(default_factory=dict)

    def rollback(self) -> None:
        for object_id in self.registry.ids():
            if object_id not in self.ids:
                self.registry.remove(object_id)

        for tag in self.registry.find_all(RegistryKind.TAG):
            owners, files, total = self.tags[tag.id]
            del tag.owners[owners:]
            del tag.files[files:]
            tag.total_scenarios = total

        for namespace in self.registry.find_all(RegistryKind.NAMESPACE):
            feature_ids, children, description = self.namespaces[namespace.id]
            del namespace.feature_ids[feature_ids:]
            for name in set(namespace.children) - children:
                del namespace.children[name]
            namespace.description = description


class Registry:
    """Holds every domain object by id and answers "all objects of kind K".

    Objects declare their kind through a ``registry_kind`` class attribute
    and are indexed by it. Iteration order is insertion order; inserting an
    id that is already present replaces the stored object without moving it.
    """

    def __init__(self) -> None:
        self._objects: dict[str, Any] = {}
        self._by_kind: dict[RegistryKind, dict[str, Any]] = {}

    def insert(self, obj: Any) -> Any:
        kind = getattr(obj, "registry_kind", None)
        if not isinstance(kind, RegistryKind):
            raise TypeError(f"Cannot register object without a registry kind: {obj!r}")
        previous = self._objects.get(obj.id)
        if previous is not None and previous.registry_kind is not kind:
            del self._by_kind[previous.registry_kind][obj.id]
        self._objects[obj.id] = obj
        self._by_kind.setdefault(kind, {})[obj.id] = obj
        return obj

    def remove(self, object_id: str) -> None:
        obj = self._objects.pop(object_id, None)
        if obj is not None:
            del self._by_kind[obj.registry_kind][object_id]

    def find_all(self, kind: RegistryKind) -> list[Any]:
        return list(self._by_kind.get(kind, {}).values())

    def count(self, kind: RegistryKind) -> int:
        return len(self._by_kind.get(kind, {}))

    def get(self, object_id: str) -> Any | None:
        return self._objects.get(object_id)

    def ids(self) -> list[str]:
        return list(self._objects)

    def clear(self) -> None:
        self._objects.clear()
        self._by_kind.clear()

    def checkpoint(self) -> Checkpoint:
        return Checkpoint(
            registry=self,
            ids=set(self._objects),
            tags={
                t.id: (len(t.owners), len(t.files), t.total_scenarios)
                for t in self.find_all(RegistryKind.TAG)
            },
            namespaces={
                n.id: (len(n.feature_ids), set(n.children), n.description)
                for n in self.find_all(RegistryKind.NAMESPACE)
            },
        )

    def root_namespace(self) -> Namespace:
        """Return the root namespace, creating it on first use."""
        root = self.get(ROOT_NAMESPACE_ID)
        if root is None:
            root = self.insert(Namespace(id=ROOT_NAMESPACE_ID, name=ROOT_NAMESPACE_ID))
        return root

    def __len__(self) -> int:
        return len(self._objects)
