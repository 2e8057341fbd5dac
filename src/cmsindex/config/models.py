"""Configuration models describing cmsindex settings."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from cmsindex.content.models import ItemKind

ALL_KINDS = [kind.value for kind in ItemKind]


class IndexerBaseModel(BaseModel):
    """Shared configuration for cmsindex Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class ConnectionSettings(IndexerBaseModel):
    """Elasticsearch connection options.

    Attributes:
        endpoint: Base URL of the cluster; a bare ``host:port`` implies http.
        auth_enabled: Whether to send basic-auth credentials.
        username: Basic-auth username.
        password: Basic-auth password.
        request_timeout: Seconds to wait for each store request.
        verify_certs: Whether TLS certificates of the cluster are verified.
    """

    endpoint: str = "elasticsearch:9200"
    auth_enabled: bool = False
    username: str = ""
    password: str = ""
    request_timeout: float = 30.0
    verify_certs: bool = True


class IndexSettings(IndexerBaseModel):
    """Index naming and shard layout.

    Attributes:
        prefix: Prefix prepended to every index name.
        fallback_name: Suffix used for kinds without a dedicated index.
        type_index_names: Optional per-kind suffix overrides.
        number_of_shards: Primary shard count for new indexes.
        number_of_replicas: Replica count for new indexes.
    """

    prefix: str = "cms-"
    fallback_name: str = "elements"
    type_index_names: Dict[str, str] = Field(
        default_factory=lambda: {kind: "" for kind in ALL_KINDS}
    )
    number_of_shards: int = 1
    number_of_replicas: int = 0


class SiteSettings(IndexerBaseModel):
    """A site (locale) of the CMS that receives its own indexes."""

    id: int = Field(default=1, gt=0)
    handle: str = "default"
    language: str = "en"


class TypeFilters(IndexerBaseModel):
    """Per-kind handle lists used for exclusions.

    Attributes:
        entry_types: Entry type handles.
        asset_volumes: Asset volume handles.
        category_groups: Category group handles.
        product_types: Commerce product type handles.
        digital_product_types: Digital product type handles.
    """

    entry_types: List[str] = Field(default_factory=list)
    asset_volumes: List[str] = Field(default_factory=list)
    category_groups: List[str] = Field(default_factory=list)
    product_types: List[str] = Field(default_factory=list)
    digital_product_types: List[str] = Field(default_factory=list)

    def for_kind(self, kind: ItemKind) -> List[str]:
        """Return the handle list matching ``kind``."""
        return {
            ItemKind.ENTRY: self.entry_types,
            ItemKind.ASSET: self.asset_volumes,
            ItemKind.CATEGORY: self.category_groups,
            ItemKind.PRODUCT: self.product_types,
            ItemKind.DIGITAL_PRODUCT: self.digital_product_types,
        }[kind]


class EligibilitySettings(IndexerBaseModel):
    """Rules deciding which items are indexed.

    Attributes:
        enabled_kinds: Item kinds indexed at all.
        index_items_without_urls: Whether items lacking a public URL are indexed.
        url_exempt_kinds: Kinds indexed without a URL even when URLs are required.
        asset_kinds: Asset kinds (pdf, image, text, ...) that are indexed.
        excluded: Handles whose items are excluded by the operator.
        entry_statuses: Entry statuses that are indexed.
        category_statuses: Category statuses that are indexed.
        product_statuses: Product statuses that are indexed.
        digital_product_statuses: Digital product statuses that are indexed.
    """

    enabled_kinds: List[ItemKind] = Field(default_factory=lambda: list(ItemKind))
    index_items_without_urls: bool = True
    url_exempt_kinds: List[ItemKind] = Field(default_factory=list)
    asset_kinds: List[str] = Field(default_factory=lambda: ["pdf"])
    excluded: TypeFilters = Field(default_factory=TypeFilters)
    entry_statuses: List[Literal["pending", "live", "expired", "disabled"]] = Field(
        default_factory=lambda: ["pending", "live"]
    )
    category_statuses: List[Literal["enabled", "disabled"]] = Field(
        default_factory=lambda: ["enabled"]
    )
    product_statuses: List[Literal["pending", "live", "expired", "disabled"]] = Field(
        default_factory=lambda: ["pending", "live"]
    )
    digital_product_statuses: List[Literal["pending", "live", "expired", "disabled"]] = Field(
        default_factory=lambda: ["pending", "live"]
    )

    def statuses_for(self, kind: ItemKind) -> Optional[List[str]]:
        """Return the status allow-list for ``kind`` or None when unrestricted."""
        return {
            ItemKind.ENTRY: self.entry_statuses,
            ItemKind.CATEGORY: self.category_statuses,
            ItemKind.PRODUCT: self.product_statuses,
            ItemKind.DIGITAL_PRODUCT: self.digital_product_statuses,
        }.get(kind)


class ContentSettings(IndexerBaseModel):
    """Structured extraction settings.

    Attributes:
        prefer_structured_fields: Derive content from searchable fields first.
        fallback_to_frontend_fetch: Fetch the public page when fields yield nothing.
        include_non_searchable: Extract every field regardless of its searchable flag.
        forced_fields: Field handles always extracted.
        max_field_depth: Maximum nesting depth walked inside block fields.
        content_field_name: Document field receiving the acquired text.
        store_field_data: Whether structured field data is stored under ``fields``.
        excluded: Handles whose items skip structured extraction.
        content_callback: Dotted path of a callable ``(item) -> str`` overriding fetches.
        extractor_callback: Dotted path of a callable ``(html) -> str`` replacing extraction.
    """

    prefer_structured_fields: bool = True
    fallback_to_frontend_fetch: bool = True
    include_non_searchable: bool = False
    forced_fields: List[str] = Field(default_factory=list)
    max_field_depth: int = Field(default=4, ge=1)
    content_field_name: str = "content"
    store_field_data: bool = False
    excluded: TypeFilters = Field(default_factory=TypeFilters)
    content_callback: Optional[str] = None
    extractor_callback: Optional[str] = None


class FrontendFetchSettings(IndexerBaseModel):
    """Frontend fetch settings.

    Attributes:
        enabled: Whether frontend fetching is allowed at all.
        debug: Whether status codes and headers are kept on diagnostics.
        timeout_seconds: Per-request timeout.
        max_redirects: Maximum redirect hops, each re-validated.
        max_content_bytes: Size cap applied to fetched bodies.
        verify_certificates: Whether TLS certificates are verified.
        user_agent: User-Agent header sent with fetches.
        resolve_hostnames: Resolve host names and reject internal addresses.
        blocked_hosts: Host names that are never fetched.
        asset_kinds: Text-like asset kinds whose public URL is fetched.
        excluded: Handles whose items are never fetched.
    """

    enabled: bool = False
    debug: bool = False
    timeout_seconds: float = 10.0
    max_redirects: int = Field(default=3, ge=0)
    max_content_bytes: int = Field(default=100 * 1024, gt=0)
    verify_certificates: bool = True
    user_agent: str = "cmsindex-fetcher/1.0"
    resolve_hostnames: bool = True
    blocked_hosts: List[str] = Field(
        default_factory=lambda: [
            "localhost",
            "metadata.google.internal",
            "metadata.amazon.com",
            "metadata",
        ]
    )
    asset_kinds: List[str] = Field(
        default_factory=lambda: ["text", "json", "xml", "javascript", "html"]
    )
    excluded: TypeFilters = Field(default_factory=TypeFilters)


class ExtraFieldSettings(IndexerBaseModel):
    """Operator-declared document field.

    Attributes:
        resolver: Dotted path ``package.module:callable`` invoked with the item.
        value: Static value used when no resolver is configured.
        mapping: Elasticsearch mapping hint; defaults to ``keyword``.
    """

    resolver: Optional[str] = None
    value: Any = None
    mapping: Optional[Dict[str, Any]] = None


class BulkSettings(IndexerBaseModel):
    """Bulk reindex settings.

    Attributes:
        max_workers: Upper bound on concurrently indexed items.
        mode: Default reindex mode.
    """

    max_workers: int = Field(default=4, ge=1, le=64)
    mode: Literal["reset", "all"] = "reset"


class LoggingSettings(IndexerBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional log file path; enables a rotating file handler.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file: Optional[str] = None
    max_size_mb: int = 100
    backup_count: int = 5


class CLIOptions(IndexerBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class IndexerConfig(IndexerBaseModel):
    """Top-level configuration struct for cmsindex.

    Attributes:
        connection: Elasticsearch connection settings.
        index: Index naming settings.
        sites: Sites that receive indexes.
        eligibility: Eligibility rules.
        content: Structured extraction settings.
        frontend_fetch: Frontend fetch settings.
        extra_fields: Operator-declared document fields keyed by field name.
        bulk: Bulk reindex settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    connection: ConnectionSettings = Field(default_factory=ConnectionSettings)
    index: IndexSettings = Field(default_factory=IndexSettings)
    sites: List[SiteSettings] = Field(default_factory=lambda: [SiteSettings()])
    eligibility: EligibilitySettings = Field(default_factory=EligibilitySettings)
    content: ContentSettings = Field(default_factory=ContentSettings)
    frontend_fetch: FrontendFetchSettings = Field(default_factory=FrontendFetchSettings)
    extra_fields: Dict[str, ExtraFieldSettings] = Field(default_factory=dict)
    bulk: BulkSettings = Field(default_factory=BulkSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)

    def site(self, site_id: int) -> Optional[SiteSettings]:
        """Return the configured site with ``site_id`` if present."""
        return next((site for site in self.sites if site.id == site_id), None)

    @property
    def site_ids(self) -> List[int]:
        """Return every configured site id."""
        return [site.id for site in self.sites]


__all__ = [
    "IndexerBaseModel",
    "ConnectionSettings",
    "IndexSettings",
    "SiteSettings",
    "TypeFilters",
    "EligibilitySettings",
    "ContentSettings",
    "FrontendFetchSettings",
    "ExtraFieldSettings",
    "BulkSettings",
    "LoggingSettings",
    "CLIOptions",
    "IndexerConfig",
]
