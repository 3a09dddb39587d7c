"""Offer extraction from fetched markup."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from selectolax.parser import HTMLParser, Node

from ..config import SourceConfig
from ..errors import ParseError
from .models import DESCRIPTION_MAX_LENGTH, PRICE_MAX_LENGTH, TITLE_MAX_LENGTH, Offer


def split_selector(selector: str) -> tuple[str, str]:
    """Split ``css::mode`` into its CSS part and read mode (``text`` by default)."""

    if "::" in selector:
        css, mode = selector.split("::", 1)
        return css.strip(), mode.strip().lower()
    return selector.strip(), "text"


def _read(match: Node, mode: str) -> str | None:
    if mode.startswith("attr:"):
        value = match.attributes.get(mode.split(":", 1)[1])
    else:
        value = match.text(separator=" ", strip=True)
    if value and value.strip():
        return value.strip()
    return None


def first_text(node: Node, selectors: Iterable[str]) -> str | None:
    """Return the value of the first descendant matched by ``selectors``.

    Consecutive text selectors are queried as one selector group, so the
    earliest element in document order wins and an empty one ends the
    lookup. ``::attr:`` selectors are tried one by one in the given order.
    """

    group: list[str] = []
    pending = [split_selector(selector) for selector in selectors]
    pending.append(("", "end"))
    for css_selector, mode in pending:
        if mode == "text":
            if css_selector:
                group.append(css_selector)
            continue
        if group:
            match = node.css_first(", ".join(group))
            if match is not None:
                return _read(match, "text")
            group = []
        if not css_selector:
            continue
        match = node.css_first(css_selector)
        if match is not None:
            value = _read(match, mode)
            if value is not None:
                return value
    return None


def _clip(value: str | None, limit: int) -> str | None:
    if not value:
        return None
    return value[:limit]


class OfferExtractor:
    """Turn a page into candidate offers according to a source's extraction rule."""

    def extract(
        self,
        raw_content: str,
        source: SourceConfig,
        observed_at: datetime | None = None,
    ) -> list[Offer]:
        if not isinstance(raw_content, str) or not raw_content.strip():
            raise ParseError(source.name, "Empty or non-text document")
        observed = observed_at or datetime.now(timezone.utc)
        rule = source.rule
        try:
            tree = HTMLParser(raw_content)
            blocks = tree.css(rule.item_selector)
        except Exception as exc:  # noqa: BLE001
            raise ParseError(source.name, f"Unparseable markup: {exc}") from exc

        offers: list[Offer] = []
        for block in blocks:
            try:
                title = first_text(block, rule.title_selectors)
                price = first_text(block, rule.price_selectors)
                description = first_text(block, rule.description_selectors)
            except Exception as exc:  # noqa: BLE001
                raise ParseError(source.name, f"Field selector failed: {exc}") from exc
            if not title or not (price or description):
                continue
            offers.append(
                Offer(
                    source_name=source.name,
                    title=title[:TITLE_MAX_LENGTH],
                    price=_clip(price, PRICE_MAX_LENGTH),
                    description=_clip(description, DESCRIPTION_MAX_LENGTH),
                    source_location=source.location,
                    observed_at=observed,
                )
            )
        return offers


__all__ = ["OfferExtractor", "first_text", "split_selector"]
