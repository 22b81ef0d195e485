"""Page API wrapper for the Notion API.

:class:`PageAPI` is a thin wrapper around the ``/pages`` endpoints; all
HTTP concerns (auth, retries, pacing) live in the transport.
"""

from __future__ import annotations

from typing import Any

from .transport import NotionTransport


def title_property(title: str) -> dict[str, Any]:
    """Build the ``properties`` payload that sets a page title."""
    return {"title": {"title": [{"type": "text", "text": {"content": title}}]}}


def extract_title(page: dict[str, Any], default: str = "Untitled") -> str:
    """Read the plain-text title out of a page object.

    The title lives in whichever property has ``type == "title"``; for
    pages under another page that property is called ``title``.
    """
    properties = page.get("properties") or {}
    prop = properties.get("title")
    if not isinstance(prop, dict) or "title" not in prop:
        prop = next(
            (p for p in properties.values() if isinstance(p, dict) and p.get("type") == "title"),
            None,
        )
    if not prop:
        return default
    text = "".join(item.get("plain_text", "") for item in prop.get("title") or [])
    return text or default


class PageAPI:
    """Synchronous wrapper for the Notion Pages API.

    Parameters
    ----------
    transport:
        A configured :class:`NotionTransport` instance.
    """

    def __init__(self, transport: NotionTransport) -> None:
        self._transport = transport

    def create(
        self,
        parent: dict[str, Any],
        properties: dict[str, Any],
        children: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        """Create a new page.

        Parameters
        ----------
        parent:
            Parent object, e.g. ``{"page_id": "..."}``.
        properties:
            Page properties, see :func:`title_property`.
        children:
            Optional initial content, at most 100 blocks.  Larger payloads
            must be appended afterwards in batches.

        Returns
        -------
        dict
            The created page object.
        """
        body: dict[str, Any] = {
            "parent": parent,
            "properties": properties,
        }
        if children is not None:
            body["children"] = children
        return self._transport.request("POST", "/pages", json=body)

    def retrieve(self, page_id: str) -> dict[str, Any]:
        """Retrieve a page object by its id."""
        return self._transport.request("GET", f"/pages/{page_id}")
