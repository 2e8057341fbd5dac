"""End-to-end tests for single-item indexing and removal."""

import pytest
import requests

from cmsindex.content.models import IndexableItemDescriptor, ItemKind
from cmsindex.errors import StorageError, ValidationError
from cmsindex.hooks import HookEvent, HookRegistry
from cmsindex.indexing.models import OutcomeStatus

from support import FakeResponse, FakeSession, FakeStore, make_config, make_item, make_services

PAGE = "https://example.com/hello-world"
INDEX = "cms-elements_1"


def test_live_entry_with_fetch_disabled_indexes_title_content(store: FakeStore) -> None:
    services = make_services(store=store)

    result = services.indexer.index_item(make_item())

    assert result.status is OutcomeStatus.SUCCESS
    assert result.message == "Item indexed successfully"
    assert result.document_id == "1_1"
    assert result.index_name == INDEX
    document = store.documents[(INDEX, "1_1")]
    assert document["content"] == "Hello World"
    assert document["title"] == "Hello World"
    payload = result.to_payload()
    assert payload["status"] == "success"
    assert payload["success"] is True
    assert "frontendFetch" not in payload


def test_pdf_asset_indexes_metadata_without_content(store: FakeStore) -> None:
    session = FakeSession()
    services = make_services(
        make_config(frontend_fetch={"enabled": True}), store=store, session=session
    )
    asset = make_item(
        id=42,
        kind=ItemKind.ASSET,
        group="uploads",
        url="https://cdn.example.com/report.pdf",
        attributes={"kind": "pdf", "filename": "report.pdf", "size": 2048},
    )

    result = services.indexer.index_item(asset)

    assert result.status is OutcomeStatus.SUCCESS
    assert result.diagnostic is not None
    assert result.diagnostic.attempted and result.diagnostic.succeeded
    document = store.documents[(INDEX, "42_1")]
    assert "content" not in document
    assert document["filename"] == "report.pdf"
    assert document["size"] == 2048
    assert session.requests == []
    assert result.to_payload()["frontendFetch"]["succeeded"] is True


def test_excluded_entry_type_is_disabled_without_store_calls(store: FakeStore) -> None:
    services = make_services(
        make_config(eligibility={"excluded": {"entry_types": ["internalPages"]}}), store=store
    )

    result = services.indexer.index_item(make_item(group="internalPages"))

    assert result.status is OutcomeStatus.DISABLED
    assert result.message == "Entry type is excluded"
    assert result.reason == "type_excluded"
    assert store.calls == []
    assert result.to_payload()["success"] is False


def test_fetch_timeout_yields_partial_document(store: FakeStore) -> None:
    session = FakeSession({PAGE: requests.exceptions.Timeout("timed out")})
    services = make_services(
        make_config(
            content={"prefer_structured_fields": False},
            frontend_fetch={"enabled": True},
        ),
        store=store,
        session=session,
    )

    result = services.indexer.index_item(make_item())

    assert result.status is OutcomeStatus.PARTIAL
    assert result.message == "Item indexed with basic fields only - content fetch failed"
    assert result.diagnostic.url == PAGE
    assert result.diagnostic.error == "timeout"
    document = store.documents[(INDEX, "1_1")]
    assert "content" not in document
    payload = result.to_payload()
    assert payload["success"] is True
    assert payload["frontendFetch"] == {
        "attempted": True,
        "succeeded": False,
        "url": PAGE,
        "error": "timeout",
    }


def test_debug_mode_exposes_status_code_and_headers(store: FakeStore) -> None:
    session = FakeSession({PAGE: FakeResponse("gone", status_code=410, headers={"Server": "edge"})})
    services = make_services(
        make_config(frontend_fetch={"enabled": True, "debug": True}), store=store, session=session
    )

    payload = services.indexer.index_item(make_item()).to_payload()

    assert payload["status"] == "partial"
    assert payload["frontendFetch"]["statusCode"] == 410
    assert payload["frontendFetch"]["headers"] == {"Server": "edge"}
    assert payload["frontendFetch"]["error"] == "HTTP 410 error"


def test_draft_is_skipped_without_store_calls(store: FakeStore) -> None:
    services = make_services(store=store)

    result = services.indexer.index_item(make_item(is_draft=True))

    assert result.status is OutcomeStatus.SKIPPED
    assert result.message == "Item is a draft or revision"
    assert store.calls == []


def test_reindexing_replaces_the_document(store: FakeStore) -> None:
    services = make_services(store=store)
    item = make_item()

    services.indexer.index_item(item)
    first = dict(store.documents[(INDEX, "1_1")])
    services.indexer.index_item(item)

    assert len(store.documents) == 1
    assert store.documents[(INDEX, "1_1")] == first
    assert len(store.operations("upsert")) == 2


def test_storage_failure_message_is_sanitized(store: FakeStore) -> None:
    store.upsert_error = StorageError(
        "Search engine rejected upsert on cms-elements_1 (400 mapper_parsing_exception)"
    )
    services = make_services(store=store)

    result = services.indexer.index_item(make_item())

    assert result.status is OutcomeStatus.FAILED
    assert result.reason == "storage_error"
    assert result.message.startswith("Failed to index item: Search engine rejected upsert")
    assert "errorType" not in result.to_payload()
    assert result.to_payload(include_debug=True)["errorType"] == "StorageError"


def test_unexpected_errors_do_not_leak_details(store: FakeStore) -> None:
    store.upsert_error = RuntimeError("connection string with password=hunter2")
    services = make_services(store=store)

    result = services.indexer.index_item(make_item())

    assert result.status is OutcomeStatus.FAILED
    assert result.message == "Failed to index item: unexpected error"
    assert "hunter2" not in str(result.to_payload(include_debug=True))


def test_before_index_hook_can_edit_or_take_over(store: FakeStore) -> None:
    hooks = HookRegistry()

    @hooks.on(HookEvent.BEFORE_INDEX_ITEM)
    def _decorate(context) -> None:
        if context.item.id == 1:
            context.document["boost"] = 2
        else:
            context.skip_default = True

    services = make_services(store=store, hooks=hooks)

    edited = services.indexer.index_item(make_item())
    taken_over = services.indexer.index_item(make_item(id=2))

    assert edited.status is OutcomeStatus.SUCCESS
    assert store.documents[(INDEX, "1_1")]["boost"] == 2
    assert taken_over.status is OutcomeStatus.SUCCESS
    assert taken_over.message == "Item indexing handled by an extension"
    assert (INDEX, "2_1") not in store.documents


def test_failing_hook_does_not_abort_indexing(store: FakeStore) -> None:
    hooks = HookRegistry()
    hooks.register(HookEvent.AFTER_INDEX_ITEM, lambda context: 1 / 0)
    services = make_services(store=store, hooks=hooks)

    assert services.indexer.index_item(make_item()).status is OutcomeStatus.SUCCESS


def test_index_descriptor_resolves_through_the_source(store: FakeStore) -> None:
    item = make_item(site_id=2, url="https://example.com/fr/bonjour")
    services = make_services(
        make_config(sites=[{"id": 1}, {"id": 2, "language": "fr"}]), store=store, items=[item]
    )

    result = services.indexer.index_descriptor(item.descriptor())

    assert result.document_id == "1_2"
    assert ("cms-elements_2", "1_2") in store.documents


def test_index_descriptor_rejects_unknown_items(store: FakeStore) -> None:
    services = make_services(store=store)

    with pytest.raises(ValidationError):
        services.indexer.index_descriptor(
            IndexableItemDescriptor(item_id=99, site_id=1, kind=ItemKind.ENTRY)
        )
    assert store.calls == []


def test_remove_item_deletes_per_site(store: FakeStore) -> None:
    services = make_services(make_config(sites=[{"id": 1}, {"id": 2}]), store=store)
    services.indexer.index_item(make_item())

    removed = services.indexer.remove_item(1, ItemKind.ENTRY, [1, 2])

    assert removed == 1
    assert store.operations("delete") == [
        ("delete", "cms-elements_1", "1_1"),
        ("delete", "cms-elements_2", "1_2"),
    ]
    assert store.documents == {}


@pytest.mark.parametrize(("item_id", "site_id"), [(0, 1), (-3, 1), (1, 0)])
def test_index_item_validates_identifiers(store: FakeStore, item_id: int, site_id: int) -> None:
    services = make_services(store=store)

    with pytest.raises(ValidationError):
        services.indexer.index_item(make_item(id=item_id, site_id=site_id))
    assert store.operations("upsert") == []
    assert store.calls == []


@pytest.mark.parametrize(("item_id", "sites"), [(0, [1]), (-3, [1]), (5, [0])])
def test_remove_item_validates_identifiers(store: FakeStore, item_id: int, sites: list) -> None:
    services = make_services(store=store)

    with pytest.raises(ValidationError):
        services.indexer.remove_item(item_id, ItemKind.ENTRY, sites)
    assert store.calls == []


def test_remove_hook_can_skip_deletion(store: FakeStore) -> None:
    hooks = HookRegistry()
    hooks.register(
        HookEvent.BEFORE_REMOVE_ITEM, lambda context: setattr(context, "skip_default", True)
    )
    services = make_services(store=store, hooks=hooks)

    assert services.indexer.remove_item(1, ItemKind.ENTRY, [1]) == 0
    assert store.operations("delete") == []
