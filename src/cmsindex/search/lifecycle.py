"""Lifecycle helpers for managing per-site search indexes."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from cmsindex.content.models import ItemKind
from cmsindex.hooks import HookEvent, HookRegistry, IndexManagementContext

from .schema import IndexNaming, MappingBuilder
from .store import DocumentStore

LOGGER = logging.getLogger(__name__)


class IndexManager:
    """Create, remove and recreate indexes for sites.

    Mappings are rebuilt from configuration on every call. ``create`` is a
    no-op for existing indexes and ``remove`` for missing ones, so a
    recreate tolerates indexes that vanish or appear concurrently.
    """

    def __init__(
        self,
        naming: IndexNaming,
        mappings: MappingBuilder,
        store: DocumentStore,
        *,
        hooks: HookRegistry | None = None,
    ) -> None:
        self.naming = naming
        self.mappings = mappings
        self.store = store
        self.hooks = hooks or HookRegistry()

    def create(
        self,
        site_id: int,
        kind: Optional[ItemKind] = None,
        *,
        body: Optional[Dict] = None,
    ) -> bool:
        """Create the index for ``site_id`` and ``kind`` unless it exists.

        Args:
            site_id: Site identifier.
            kind: Kind whose index is created; the fallback index when None.
            body: Index body overriding the generated mapping.

        Returns:
            bool: True when an index was created by this call.
        """

        index_name = self.naming.index_name(site_id, kind)
        if self.store.index_exists(index_name):
            LOGGER.info("Index %s already exists; nothing to create", index_name)
            return False

        context = self.hooks.run(
            HookEvent.BEFORE_CREATE_INDEX,
            IndexManagementContext(
                site_id=site_id,
                index_name=index_name,
                body=body if body is not None else self.mappings.build(site_id, kind),
                operation="create",
                index_existed=False,
            ),
        )
        if context.skip_default:
            LOGGER.info("Creation of %s handled by an extension", index_name)
            return False

        created = self.store.create_index(context.index_name, context.body)
        self.hooks.run(HookEvent.AFTER_CREATE_INDEX, context)
        return created

    def remove(self, site_id: int, kind: Optional[ItemKind] = None) -> bool:
        """Delete the index for ``site_id`` and ``kind`` if present.

        Returns:
            bool: True when an index was deleted by this call.
        """

        index_name = self.naming.index_name(site_id, kind)
        if not self.store.index_exists(index_name):
            LOGGER.info("Index %s does not exist; nothing to remove", index_name)
            return False

        context = self.hooks.run(
            HookEvent.BEFORE_DELETE_INDEX,
            IndexManagementContext(
                site_id=site_id,
                index_name=index_name,
                operation="delete",
                index_existed=True,
            ),
        )
        if context.skip_default:
            LOGGER.info("Removal of %s handled by an extension", index_name)
            return False

        deleted = self.store.delete_index(context.index_name)
        self.hooks.run(HookEvent.AFTER_DELETE_INDEX, context)
        return deleted

    def recreate(self, site_id: int, kind: Optional[ItemKind] = None) -> bool:
        """Delete then create the index for ``site_id`` and ``kind``.

        Returns:
            bool: True unless an extension skipped the default operation.
        """

        index_name = self.naming.index_name(site_id, kind)
        context = self.hooks.run(
            HookEvent.BEFORE_RECREATE_INDEX,
            IndexManagementContext(
                site_id=site_id,
                index_name=index_name,
                body=self.mappings.build(site_id, kind),
                operation="recreate",
                index_existed=self.store.index_exists(index_name),
            ),
        )
        if context.skip_default:
            LOGGER.info("Recreation of %s handled by an extension", index_name)
            return False

        try:
            self.remove(site_id, kind)
            self.create(site_id, kind, body=context.body)
        except Exception:
            LOGGER.error("Failed to recreate index %s for site %s", index_name, site_id)
            raise
        self.hooks.run(HookEvent.AFTER_RECREATE_INDEX, context)
        return True

    def targets(self, site_id: int) -> List[Tuple[str, Optional[ItemKind]]]:
        """Return ``(index_name, kind)`` pairs covering every index of a site."""
        pairs: List[Tuple[str, Optional[ItemKind]]] = [(self.naming.index_name(site_id), None)]
        seen = {pairs[0][0]}
        for kind in ItemKind:
            if not self.naming.has_dedicated_index(kind):
                continue
            name = self.naming.index_name(site_id, kind)
            if name not in seen:
                seen.add(name)
                pairs.append((name, kind))
        return pairs

    def create_site(self, site_id: int) -> List[str]:
        """Create every missing index of ``site_id``; return the created names."""
        return [name for name, kind in self.targets(site_id) if self.create(site_id, kind)]

    def remove_site(self, site_id: int) -> List[str]:
        """Remove every index of ``site_id``; return the deleted names."""
        return [name for name, kind in self.targets(site_id) if self.remove(site_id, kind)]

    def recreate_site(self, site_id: int) -> List[str]:
        """Recreate every index of ``site_id``; return the recreated names."""
        return [name for name, kind in self.targets(site_id) if self.recreate(site_id, kind)]

    def recreate_sites(self, site_ids: Iterable[int]) -> Dict[int, List[str]]:
        """Recreate the indexes of each site in ``site_ids``."""
        return {site_id: self.recreate_site(site_id) for site_id in site_ids}


__all__ = ["IndexManager"]
