"""Unit tests for navigation tree building."""

from uuid import uuid4

from travel_booking.models.content import NavigationItem
from travel_booking.services.navigation import build_navigation_tree


def _item(label, parent=None, sort_order=0, is_active=True):
    return NavigationItem(
        id=uuid4(),
        parent_id=parent.id if parent else None,
        label=label,
        url=f"/{label.lower()}",
        sort_order=sort_order,
        is_active=is_active,
        open_in_new_tab=False,
    )


def test_children_nest_under_parents_in_order():
    paket = _item("Paket", sort_order=1)
    umroh = _item("Umroh", parent=paket, sort_order=2)
    haji = _item("Haji", parent=paket, sort_order=1)
    home = _item("Beranda", sort_order=0)

    tree = build_navigation_tree([umroh, paket, home, haji])

    assert [node.label for node in tree] == ["Beranda", "Paket"]
    assert [child.label for child in tree[1].children] == ["Haji", "Umroh"]


def test_inactive_items_dropped_and_orphans_promoted():
    hidden = _item("Hidden", is_active=False)
    orphan = _item("Orphan", parent=hidden)

    tree = build_navigation_tree([hidden, orphan])

    assert [node.label for node in tree] == ["Orphan"]


def test_parent_cycles_are_broken():
    first = _item("First")
    second = _item("Second", parent=first)
    first.parent_id = second.id

    tree = build_navigation_tree([first, second])

    assert {node.label for node in tree} == {"First", "Second"}
