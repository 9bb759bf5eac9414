"""Door catalog and furniture catalog adapters."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, Mapping, Optional, Union

from Design.records import CatalogItem, DoorCatalogEntry

DOOR_CATALOG: Dict[str, DoorCatalogEntry] = {
    entry.id: entry
    for entry in (
        DoorCatalogEntry(id="door_basic", name="Basic wooden door", width=2, height=3, cost=50, color="#8B4513"),
        DoorCatalogEntry(id="door_double", name="Double door", width=3, height=3, cost=100, color="#654321"),
        DoorCatalogEntry(id="door_arch", name="Arched door", width=2, height=4, cost=150, color="#A0522D"),
    )
}


def resolve_door_type(door_type: Union[str, DoorCatalogEntry]) -> Optional[DoorCatalogEntry]:
    if isinstance(door_type, DoorCatalogEntry):
        return door_type
    return DOOR_CATALOG.get(door_type)


class StaticCatalog(Mapping[str, CatalogItem]):
    """Read-only furniture lookup built from catalog rows.

    Rows may be ``CatalogItem`` instances or plain ``{id, size, cost}``
    dictionaries as served by the shop backend.
    """

    def __init__(self, items: Iterable[Union[CatalogItem, dict]] = ()):
        self._items: Dict[str, CatalogItem] = {}
        for item in items:
            entry = item if isinstance(item, CatalogItem) else CatalogItem.model_validate(item)
            self._items[entry.id] = entry

    def __getitem__(self, key: str) -> CatalogItem:
        return self._items[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)
