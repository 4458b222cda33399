"""Build the nested site menu from flat navigation rows."""

from typing import Iterable, Optional
from uuid import UUID

from ..models.content import NavigationItem
from ..schemas.catalog import NavigationNode


def _in_cycle(item_id: UUID, parents: dict[UUID, Optional[UUID]]) -> bool:
    """True when following parent links from item_id leads back to it."""
    seen: set[UUID] = set()
    current = parents.get(item_id)
    while current is not None and current in parents and current not in seen:
        if current == item_id:
            return True
        seen.add(current)
        current = parents[current]
    return False


def build_navigation_tree(items: Iterable[NavigationItem]) -> list[NavigationNode]:
    """
    Nest active navigation items under their parents.

    Inactive items are dropped. Items whose parent is inactive or missing,
    and items caught in a parent cycle, are promoted to the root.
    Siblings are ordered by sort_order, then label.
    """
    active = sorted(
        (item for item in items if item.is_active),
        key=lambda item: (item.sort_order, item.label),
    )
    parents = {item.id: item.parent_id for item in active}
    nodes = {
        item.id: NavigationNode(
            id=item.id,
            label=item.label,
            url=item.url,
            open_in_new_tab=item.open_in_new_tab,
        )
        for item in active
    }

    roots: list[NavigationNode] = []
    for item in active:
        node = nodes[item.id]
        parent = nodes.get(item.parent_id) if item.parent_id else None
        if parent is None or _in_cycle(item.id, parents):
            roots.append(node)
        else:
            parent.children.append(node)
    return roots
