"""Eligibility rules deciding whether and why an item is indexed."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from cmsindex.config.models import EligibilitySettings
from cmsindex.content.models import ContentItem, ItemKind


_EXCLUSION_MESSAGES = {
    ItemKind.ENTRY: "Entry type is excluded",
    ItemKind.ASSET: "Asset volume is excluded",
    ItemKind.CATEGORY: "Category group is excluded",
    ItemKind.PRODUCT: "Product type is excluded",
    ItemKind.DIGITAL_PRODUCT: "Digital product type is excluded",
}


@dataclass(frozen=True, slots=True)
class EligibilityDecision:
    """Outcome of classifying one item.

    At most one of ``skip_reason`` and ``disabled_reason`` is set; neither is
    set when the item is indexable.

    Attributes:
        skip_reason: Data-caused reason (draft, missing URL, status).
        disabled_reason: Operator-caused reason (exclusions, disabled kind).
        code: Machine-readable reason code.
    """

    skip_reason: Optional[str] = None
    disabled_reason: Optional[str] = None
    code: str = "indexable"

    @property
    def indexable(self) -> bool:
        return self.skip_reason is None and self.disabled_reason is None

    @property
    def disabled(self) -> bool:
        return self.disabled_reason is not None

    @classmethod
    def allow(cls) -> "EligibilityDecision":
        return cls()

    @classmethod
    def skip(cls, reason: str, code: str) -> "EligibilityDecision":
        return cls(skip_reason=reason, code=code)

    @classmethod
    def disable(cls, reason: str, code: str) -> "EligibilityDecision":
        return cls(disabled_reason=reason, code=code)

    def explain(self) -> str:
        """Return a human-readable explanation of the decision."""
        if self.disabled_reason:
            return f"Disabled: {self.disabled_reason}"
        if self.skip_reason:
            return f"Skipped: {self.skip_reason}"
        return "Item can be indexed"


class EligibilityClassifier:
    """Apply eligibility rules in a fixed order.

    Drafts and revisions are skipped first, then items lacking a required
    URL. Operator exclusions disable the item. Status allow-lists are checked
    last and skip the item.
    """

    def __init__(self, settings: EligibilitySettings) -> None:
        self.settings = settings

    def classify(self, item: ContentItem) -> EligibilityDecision:
        """Classify ``item``.

        Args:
            item: Item to evaluate.

        Returns:
            EligibilityDecision: Decision with the first matching reason.
        """

        settings = self.settings
        kind = item.kind

        if item.is_draft or item.is_revision:
            return EligibilityDecision.skip("Item is a draft or revision", "draft_or_revision")

        if (
            not settings.index_items_without_urls
            and not item.url
            and kind not in settings.url_exempt_kinds
        ):
            return EligibilityDecision.skip(
                "Item has no URL and URL indexing is required", "missing_url"
            )

        if kind not in settings.enabled_kinds:
            return EligibilityDecision.disable(
                f"{kind.label} indexing is disabled", "kind_disabled"
            )

        if item.group and item.group in settings.excluded.for_kind(kind):
            return EligibilityDecision.disable(_EXCLUSION_MESSAGES[kind], "type_excluded")

        if kind is ItemKind.ASSET and (item.asset_kind or "") not in settings.asset_kinds:
            return EligibilityDecision.disable("Asset kind not indexable", "asset_kind_excluded")

        allowed = settings.statuses_for(kind)
        if allowed is not None and item.status not in allowed:
            return EligibilityDecision.skip(
                f"{kind.label} status not indexable", "status_not_indexable"
            )

        return EligibilityDecision.allow()


__all__ = ["EligibilityDecision", "EligibilityClassifier"]
