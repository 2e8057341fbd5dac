"""Tests for structured field extraction."""

from datetime import datetime, timezone

from cmsindex.config.models import ContentSettings
from cmsindex.content.models import FieldType
from cmsindex.hooks import HookEvent, HookRegistry
from cmsindex.indexing.fields import (
    FieldData,
    StructuredFieldExtractor,
    combine_content,
    extract_keywords,
)

from support import make_item


def _extract(item, hooks=None, **settings):
    return StructuredFieldExtractor(ContentSettings(**settings), hooks=hooks).extract(item)


def test_searchable_text_fields_feed_content() -> None:
    item = make_item(
        layout=[
            {"handle": "summary", "type": "plain_text"},
            {"handle": "body", "type": "rich_text"},
        ],
        field_values={"summary": "A  short\tsummary", "body": "<p>Body <em>text</em></p>"},
    )

    extraction = _extract(item)

    assert extraction.has_field_content
    assert list(extraction.fields) == ["summary", "body"]
    assert extraction.fields["summary"].keywords == "A short summary"
    assert extraction.fields["body"].value == "Body text"
    assert extraction.content == "Hello World A short summary Body text"


def test_non_searchable_fields_are_ignored_unless_forced() -> None:
    item = make_item(
        layout=[
            {"handle": "internal", "searchable": False},
            {"handle": "notes", "searchable": False},
        ],
        field_values={"internal": "secret", "notes": "keep me"},
    )

    default = _extract(item)
    forced = _extract(item, forced_fields=["notes"])
    everything = _extract(item, include_non_searchable=True)

    assert default.fields == {}
    assert not default.has_field_content
    assert default.content == "Hello World"
    assert list(forced.fields) == ["notes"]
    assert set(everything.fields) == {"internal", "notes"}


def test_missing_values_are_skipped() -> None:
    item = make_item(layout=[{"handle": "summary"}], field_values={})

    extraction = _extract(item)

    assert extraction.fields == {}
    assert not extraction.has_field_content


def test_relation_fields_index_titles() -> None:
    item = make_item(
        layout=[{"handle": "related", "type": "entries"}, {"handle": "tags", "type": "tags"}],
        field_values={
            "related": [
                {"id": 7, "title": "Other Post", "slug": "other-post", "secret": "x"},
                12,
            ],
            "tags": [{"id": 3, "title": "news"}],
        },
    )

    fields = _extract(item).fields

    assert fields["related"].value == [
        {"id": 7, "title": "Other Post", "slug": "other-post"},
        {"id": 12},
    ]
    assert fields["related"].keywords == "Other Post"
    assert fields["related"].structured_type == "entries"
    assert fields["tags"].keywords == "news"


def test_block_fields_walk_searchable_sub_fields() -> None:
    item = make_item(
        layout=[
            {
                "handle": "builder",
                "type": "matrix",
                "searchable": False,
                "fields": [
                    {"handle": "heading"},
                    {"handle": "copy", "type": "rich_text"},
                    {"handle": "tracking", "searchable": False},
                ],
            }
        ],
        field_values={
            "builder": [
                {
                    "id": 1,
                    "type": "text",
                    "fields": {"heading": "Intro", "copy": "<p>First</p>", "tracking": "t1"},
                },
                {"id": 2, "type": "text", "fields": {"heading": "Outro"}},
                {"id": 3, "type": "empty", "fields": {}},
            ]
        },
    )

    data = _extract(item).fields["builder"]

    assert isinstance(data, FieldData)
    assert data.structured_type == "blocks"
    assert [block["id"] for block in data.value] == [1, 2]
    assert set(data.value[0]["fields"]) == {"heading", "copy"}
    assert data.value[0]["fields"]["copy"]["value"] == "First"
    assert data.keywords == "Intro First Outro"


def test_nested_blocks_respect_max_depth() -> None:
    item = make_item(
        layout=[
            {
                "handle": "outer",
                "type": "neo",
                "fields": [
                    {"handle": "title_text"},
                    {"handle": "inner", "type": "super_table", "fields": [{"handle": "deep"}]},
                ],
            }
        ],
        field_values={
            "outer": [
                {
                    "fields": {
                        "title_text": "Top",
                        "inner": [{"fields": {"deep": "Hidden"}}],
                    }
                }
            ]
        },
    )

    shallow = _extract(item, max_field_depth=1).fields["outer"]
    deep = _extract(item, max_field_depth=2).fields["outer"]

    assert shallow.keywords == "Top"
    assert "inner" not in shallow.value[0]["fields"]
    assert deep.keywords == "Top Hidden"


def test_typed_values_are_normalized() -> None:
    item = make_item(
        layout=[
            {"handle": "launch", "type": "date"},
            {"handle": "price", "type": "money"},
            {"handle": "origin", "type": "country"},
            {"handle": "home", "type": "country"},
            {"handle": "specs", "type": "table"},
        ],
        field_values={
            "launch": datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc),
            "price": {"amount": "19.99", "currency": "EUR", "formatted": "€19.99"},
            "origin": {"code": "FR", "label": "France"},
            "home": "NZ",
            "specs": [
                {"size": "Large", "weight": 2, "added": datetime(2024, 1, 1)},
                ["red", "blue"],
            ],
        },
    )

    fields = _extract(item).fields

    assert fields["launch"].value == "2024-03-01T09:30:00+00:00"
    assert fields["price"].value == {"amount": "19.99", "currency": "EUR", "formatted": "€19.99"}
    assert fields["price"].keywords == "€19.99"
    assert fields["origin"].value == {"code": "FR", "label": "France"}
    assert fields["origin"].keywords == "France FR"
    assert fields["home"].keywords == "NZ"
    assert fields["specs"].value == [
        {"size": "Large", "weight": 2},
        {"col1": "red", "col2": "blue"},
    ]
    assert fields["specs"].keywords == "Large 2 red blue"


def test_money_without_currency_defaults_to_usd() -> None:
    item = make_item(layout=[{"handle": "price", "type": "money"}], field_values={"price": 5})

    assert _extract(item).fields["price"].value == {"amount": "5", "currency": "USD"}


def test_failing_field_is_skipped(caplog) -> None:
    class Exploding:
        def __str__(self) -> str:
            raise RuntimeError("cannot render")

    item = make_item(
        layout=[{"handle": "broken", "type": "rich_text"}, {"handle": "fine"}],
        field_values={"broken": Exploding(), "fine": "still here"},
    )

    extraction = _extract(item)

    assert list(extraction.fields) == ["fine"]
    assert "Failed to extract field broken" in caplog.text


def test_transform_hook_can_rewrite_field_data() -> None:
    hooks = HookRegistry()

    @hooks.on(HookEvent.TRANSFORM_FIELD)
    def _upper(context) -> None:
        if context.descriptor.handle == "summary":
            context.data.keywords = context.data.keywords.upper()

    item = make_item(layout=[{"handle": "summary"}], field_values={"summary": "quiet"})

    assert _extract(item, hooks=hooks).content == "Hello World QUIET"


def test_before_hook_can_replace_extraction() -> None:
    hooks = HookRegistry()

    @hooks.on(HookEvent.BEFORE_EXTRACT_FIELDS)
    def _provide(context) -> None:
        context.fields = {"custom": {"value": "x", "keywords": "from extension"}}
        context.skip_default = True

    item = make_item(layout=[{"handle": "summary"}], field_values={"summary": "ignored"})

    extraction = _extract(item, hooks=hooks)

    assert set(extraction.fields) == {"custom"}
    assert extraction.content == "Hello World from extension"
    assert extraction.has_field_content


def test_after_hook_can_drop_fields() -> None:
    hooks = HookRegistry()

    @hooks.on(HookEvent.AFTER_EXTRACT_FIELDS)
    def _drop(context) -> None:
        context.fields.pop("summary", None)

    item = make_item(layout=[{"handle": "summary"}], field_values={"summary": "gone"})

    extraction = _extract(item, hooks=hooks)

    assert extraction.fields == {}
    assert not extraction.has_field_content


def test_combine_content_skips_empty_keywords() -> None:
    content, contributed = combine_content(
        "  Title ",
        {
            "a": FieldData("a", "A", FieldType.PLAIN_TEXT, "x", keywords=""),
            "b": FieldData("b", "B", FieldType.PLAIN_TEXT, "y", keywords="words"),
        },
    )

    assert content == "Title words"
    assert contributed


def test_extract_keywords_flattens_nested_values() -> None:
    value = {"a": ["one", 2, True], "b": {"c": None, "d": "  three  "}}

    assert extract_keywords(value) == "one 2 1 three"
