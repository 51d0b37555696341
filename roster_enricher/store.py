"""Entity store contract and the bundled in-memory implementation."""
from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

from .errors import DuplicateContact, EntityNotFound
from .merge import DEFAULT_MATCHER, ContactMatcher, find_duplicate
from .models import ContactRecord, EntityContacts

LOGGER = logging.getLogger(__name__)

ENTITY_TYPES = ("product", "brand")


def validate_entity_type(entity_type: str) -> str:
    value = (entity_type or "").strip().lower()
    if value not in ENTITY_TYPES:
        raise ValueError(f"Unknown entity type '{entity_type}'. Expected one of: {', '.join(ENTITY_TYPES)}")
    return value


class EntityStore(Protocol):
    """Persistence seam used by the orchestrator."""

    def get_entity_contacts(self, entity_type: str, entity_id: str) -> EntityContacts:  # pragma: no cover - protocol
        ...

    def replace_entity_contacts(
        self, entity_type: str, entity_id: str, contacts: List[ContactRecord]
    ) -> List[ContactRecord]:  # pragma: no cover - protocol
        ...

    def add_single_contact(
        self, entity_type: str, entity_id: str, contact: ContactRecord
    ) -> List[ContactRecord]:  # pragma: no cover - protocol
        ...


class InMemoryEntityStore:
    """Dictionary-backed store; each replace swaps the whole roster at once."""

    def __init__(self, *, matcher: ContactMatcher = DEFAULT_MATCHER) -> None:
        self._entities: Dict[Tuple[str, str], EntityContacts] = {}
        self._lock = threading.Lock()
        self._matcher = matcher

    def put_entity(
        self,
        entity_type: str,
        entity_id: str,
        *,
        contacts: Iterable[ContactRecord] = (),
        company_website: Optional[str] = None,
        company_name: Optional[str] = None,
        parent_company: Optional[str] = None,
        company_linkedin_url: Optional[str] = None,
    ) -> EntityContacts:
        """Register (or overwrite) an entity and its current roster."""

        key = (validate_entity_type(entity_type), str(entity_id))
        entity = EntityContacts(
            contacts=list(contacts),
            company_website=company_website,
            company_name=company_name,
            parent_company=parent_company,
            company_linkedin_url=company_linkedin_url,
        )
        with self._lock:
            self._entities[key] = entity
        return entity

    def get_entity_contacts(self, entity_type: str, entity_id: str) -> EntityContacts:
        entity = self._lookup(entity_type, entity_id)
        return EntityContacts(
            contacts=list(entity.contacts),
            company_website=entity.company_website,
            company_name=entity.company_name,
            parent_company=entity.parent_company,
            company_linkedin_url=entity.company_linkedin_url,
        )

    def replace_entity_contacts(
        self, entity_type: str, entity_id: str, contacts: List[ContactRecord]
    ) -> List[ContactRecord]:
        entity = self._lookup(entity_type, entity_id)
        with self._lock:
            entity.contacts = list(contacts)
        LOGGER.debug("Stored %s contact(s) for %s %s", len(contacts), entity_type, entity_id)
        return list(entity.contacts)

    def add_single_contact(self, entity_type: str, entity_id: str, contact: ContactRecord) -> List[ContactRecord]:
        entity = self._lookup(entity_type, entity_id)
        with self._lock:
            if find_duplicate(contact, entity.contacts, self._matcher) is not None:
                raise DuplicateContact(f"{contact.display_name()} is already on the roster of {entity_type} {entity_id}")
            entity.contacts = entity.contacts + [contact]
            return list(entity.contacts)

    def _lookup(self, entity_type: str, entity_id: str) -> EntityContacts:
        key = (validate_entity_type(entity_type), str(entity_id))
        try:
            return self._entities[key]
        except KeyError as exc:
            raise EntityNotFound(f"No {key[0]} with id '{entity_id}'") from exc


__all__ = ["ENTITY_TYPES", "EntityStore", "InMemoryEntityStore", "validate_entity_type"]
