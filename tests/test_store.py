import pytest

from roster_enricher.errors import DuplicateContact, EntityNotFound
from roster_enricher.models import ContactRecord
from roster_enricher.store import InMemoryEntityStore


def test_get_returns_a_copy_of_the_roster() -> None:
    store = InMemoryEntityStore()
    store.put_entity("Product", "42", contacts=[ContactRecord(name="Ada")], company_website="https://brand.ch")

    entity = store.get_entity_contacts("product", "42")
    entity.contacts.append(ContactRecord(name="Intruder"))

    assert [c.name for c in store.get_entity_contacts("product", "42").contacts] == ["Ada"]
    assert entity.company_website == "https://brand.ch"


def test_replace_swaps_whole_roster() -> None:
    store = InMemoryEntityStore()
    store.put_entity("brand", "b1", contacts=[ContactRecord(name="Ada")])

    stored = store.replace_entity_contacts("brand", "b1", [ContactRecord(name="Grace")])

    assert [c.name for c in stored] == ["Grace"]


def test_add_single_contact_rejects_duplicates() -> None:
    store = InMemoryEntityStore()
    store.put_entity("brand", "b1", contacts=[ContactRecord(name="Ada", email="ada@example.com")])

    with pytest.raises(DuplicateContact):
        store.add_single_contact("brand", "b1", ContactRecord(email="ADA@example.com"))

    contacts = store.add_single_contact("brand", "b1", ContactRecord(name="Grace"))
    assert [c.name for c in contacts] == ["Ada", "Grace"]


def test_unknown_entities_and_types() -> None:
    store = InMemoryEntityStore()

    with pytest.raises(EntityNotFound):
        store.get_entity_contacts("brand", "missing")
    with pytest.raises(ValueError):
        store.put_entity("shop", "1")
