import copy
import logging
import uuid
from collections.abc import Mapping
from typing import Protocol, TypeVar

from acmesync._exceptions import AlreadyExistsError, ConflictError, NotFoundError
from acmesync._resources import Resource

logger = logging.getLogger(__name__)

R = TypeVar('R', bound=Resource)


class ResourceStore(Protocol):
    """
    Key-addressed store of resources with optimistic concurrency.

    Objects are addressed by ``(kind, namespace, name)``. Implementations hand
    out copies: mutating a returned object never changes what is stored.
    """

    async def get(self, kind: type[R], namespace: str, name: str) -> R:
        ...

    async def list(self, kind: type[R], namespace: str, selector: Mapping[str, str] | None = None) -> list[R]:
        ...

    async def create(self, obj: R) -> R:
        ...

    async def update(self, obj: R) -> R:
        """
        Replace the stored object.

        :raises ConflictError: ``obj.metadata.resource_version`` is not the stored one.
        """
        ...

    async def delete(self, kind: type[Resource], namespace: str, name: str) -> None:
        ...


class MemoryStore:
    """In-process :class:`ResourceStore`."""

    def __init__(self) -> None:
        self._objects: dict[tuple[type, str, str], Resource] = {}
        self._version = 0

    async def get(self, kind: type[R], namespace: str, name: str) -> R:
        try:
            obj = self._objects[kind, namespace, name]
        except KeyError:
            raise NotFoundError(f'{kind.__name__} {namespace}/{name} not found') from None
        return copy.deepcopy(obj)  # type: ignore[return-value]

    async def list(self, kind: type[R], namespace: str, selector: Mapping[str, str] | None = None) -> list[R]:
        return [
            copy.deepcopy(obj)  # type: ignore[misc]
            for (obj_kind, obj_namespace, _), obj in self._objects.items()
            if obj_kind is kind and obj_namespace == namespace and _matches(obj.metadata.labels, selector)
        ]

    async def create(self, obj: R) -> R:
        key = _key(obj)
        if key in self._objects:
            raise AlreadyExistsError(f'{key[0].__name__} {key[1]}/{key[2]} already exists')

        stored = copy.deepcopy(obj)
        stored.metadata.uid = str(uuid.uuid4())
        stored.metadata.resource_version = self._next_version()
        self._objects[key] = stored
        return copy.deepcopy(stored)

    async def update(self, obj: R) -> R:
        key = _key(obj)
        current = self._objects.get(key)
        if current is None:
            raise NotFoundError(f'{key[0].__name__} {key[1]}/{key[2]} not found')
        if current.metadata.resource_version != obj.metadata.resource_version:
            raise ConflictError(
                f'{key[0].__name__} {key[1]}/{key[2]} has been modified; '
                'please apply your changes to the latest version and try again'
            )

        stored = copy.deepcopy(obj)
        stored.metadata.uid = current.metadata.uid
        stored.metadata.resource_version = self._next_version()
        self._objects[key] = stored
        return copy.deepcopy(stored)

    async def delete(self, kind: type[Resource], namespace: str, name: str) -> None:
        """Delete an object and, recursively, every object it controls."""
        try:
            obj = self._objects.pop((kind, namespace, name))
        except KeyError:
            raise NotFoundError(f'{kind.__name__} {namespace}/{name} not found') from None

        dependants = [
            key
            for key, other in self._objects.items()
            if key[1] == namespace and any(ref.uid == obj.metadata.uid for ref in other.metadata.owner_references)
        ]
        for dependant in dependants:
            if dependant in self._objects:
                logger.debug('Garbage collecting %s %s/%s', dependant[0].__name__, dependant[1], dependant[2])
                await self.delete(*dependant)

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)


def _key(obj: Resource) -> tuple[type, str, str]:
    return type(obj), obj.metadata.namespace, obj.metadata.name


def _matches(labels: Mapping[str, str], selector: Mapping[str, str] | None) -> bool:
    return not selector or all(labels.get(k) == v for k, v in selector.items())
