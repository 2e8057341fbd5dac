"""Data models describing CMS content items and their field layouts."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field


class ItemKind(str, Enum):
    """Kinds of content items that can be indexed."""

    ENTRY = "entry"
    ASSET = "asset"
    CATEGORY = "category"
    PRODUCT = "product"
    DIGITAL_PRODUCT = "digital_product"

    @property
    def label(self) -> str:
        """Return a human-readable label such as ``Digital product``."""
        return self.value.replace("_", " ").capitalize()


class FieldType(str, Enum):
    """Field types understood by structured extraction."""

    PLAIN_TEXT = "plain_text"
    RICH_TEXT = "rich_text"
    NUMBER = "number"
    LIGHTSWITCH = "lightswitch"
    DROPDOWN = "dropdown"
    ENTRIES = "entries"
    ASSETS = "assets"
    CATEGORIES = "categories"
    TAGS = "tags"
    USERS = "users"
    MATRIX = "matrix"
    NEO = "neo"
    SUPER_TABLE = "super_table"
    TABLE = "table"
    DATE = "date"
    TIME = "time"
    MONEY = "money"
    COUNTRY = "country"

    @property
    def is_block(self) -> bool:
        """Return True for repeater fields whose blocks carry their own sub-fields."""
        return self in {FieldType.MATRIX, FieldType.NEO, FieldType.SUPER_TABLE}

    @property
    def is_relation(self) -> bool:
        """Return True for fields that reference other items."""
        return self in {
            FieldType.ENTRIES,
            FieldType.ASSETS,
            FieldType.CATEGORIES,
            FieldType.TAGS,
            FieldType.USERS,
        }


class FieldDescriptor(BaseModel):
    """One node of a field layout arena.

    Attributes:
        handle: Field handle used to look up values.
        name: Display name of the field.
        field_type: Type tag driving the extraction transform.
        searchable: Whether the CMS marks the field searchable.
        parent: Index of the parent node, None for top-level fields.
        children: Indices of sub-field nodes (block fields only).
    """

    model_config = ConfigDict(frozen=True)

    handle: str
    name: str = ""
    field_type: FieldType = FieldType.PLAIN_TEXT
    searchable: bool = True
    parent: Optional[int] = None
    children: List[int] = Field(default_factory=list)


class FieldLayout(BaseModel):
    """Field layout stored as an arena of descriptors addressed by index."""

    model_config = ConfigDict(frozen=True)

    nodes: List[FieldDescriptor] = Field(default_factory=list)

    @classmethod
    def from_tree(cls, tree: Sequence[Mapping[str, Any]]) -> "FieldLayout":
        """Build an arena from nested ``{handle, type, searchable, fields}`` mappings.

        Args:
            tree: Top-level field definitions; block fields list sub-fields under ``fields``.

        Returns:
            FieldLayout: Layout whose nodes appear in depth-first layout order.
        """
        nodes: list[dict[str, Any]] = []

        def _add(node: Mapping[str, Any], parent: Optional[int]) -> int:
            index = len(nodes)
            nodes.append(
                {
                    "handle": node["handle"],
                    "name": node.get("name") or node["handle"],
                    "field_type": node.get("type", FieldType.PLAIN_TEXT),
                    "searchable": node.get("searchable", True),
                    "parent": parent,
                    "children": [],
                }
            )
            for child in node.get("fields") or ():
                nodes[index]["children"].append(_add(child, index))
            return index

        for node in tree:
            _add(node, None)
        return cls(nodes=[FieldDescriptor(**node) for node in nodes])

    def roots(self) -> Iterator[tuple[int, FieldDescriptor]]:
        """Yield top-level descriptors with their indices in layout order."""
        for index, node in enumerate(self.nodes):
            if node.parent is None:
                yield index, node

    def children_of(self, index: int) -> Iterator[tuple[int, FieldDescriptor]]:
        """Yield the sub-field descriptors of node ``index``."""
        for child in self.nodes[index].children:
            yield child, self.nodes[child]


class ContentItem(BaseModel):
    """Read-only view of a CMS content item.

    Attributes:
        id: Item identifier, shared across sites.
        site_id: Site the item was loaded for.
        kind: Item kind.
        title: Item title.
        slug: URL slug.
        status: CMS status string (live, pending, enabled, ...).
        url: Public URL, None when the item has no page.
        date_created: Creation timestamp.
        date_updated: Last update timestamp.
        enabled: Whether the item is enabled.
        archived: Whether the item is archived.
        is_draft: Whether this is a draft variant.
        is_revision: Whether this is a revision variant.
        group: Entry type, asset volume, category group or product type handle.
        attributes: Kind-specific attributes (post_date, filename, price, ...).
        field_layout: Structured field layout, if the item has custom fields.
        field_values: Raw custom field values keyed by handle.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    site_id: int
    kind: ItemKind
    title: str = ""
    slug: str = ""
    status: str = "enabled"
    url: Optional[str] = None
    date_created: Optional[datetime] = None
    date_updated: Optional[datetime] = None
    enabled: bool = True
    archived: bool = False
    is_draft: bool = False
    is_revision: bool = False
    group: Optional[str] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)
    field_layout: Optional[FieldLayout] = None
    field_values: Dict[str, Any] = Field(default_factory=dict)

    @property
    def asset_kind(self) -> Optional[str]:
        """Return the asset kind (pdf, image, text, ...) for assets."""
        if self.kind is not ItemKind.ASSET:
            return None
        value = self.attributes.get("kind")
        return str(value) if value is not None else None

    @property
    def document_id(self) -> str:
        """Return the deterministic document id for this item and site."""
        return f"{self.id}_{self.site_id}"

    def descriptor(self) -> "IndexableItemDescriptor":
        """Return the minimal descriptor referencing this item."""
        return IndexableItemDescriptor(item_id=self.id, site_id=self.site_id, kind=self.kind)


class IndexableItemDescriptor(BaseModel):
    """Serializable reference used to re-fetch an item for queued work."""

    model_config = ConfigDict(frozen=True)

    item_id: int = Field(gt=0)
    site_id: int = Field(gt=0)
    kind: ItemKind


__all__ = [
    "ItemKind",
    "FieldType",
    "FieldDescriptor",
    "FieldLayout",
    "ContentItem",
    "IndexableItemDescriptor",
]
