"""Block API wrapper for the Notion API.

:class:`BlockAPI` wraps the ``/blocks`` endpoints.  :meth:`BlockAPI.get_children`
auto-paginates so callers always see the complete child list.
"""

from __future__ import annotations

from typing import Any

from .transport import NotionTransport


class BlockAPI:
    """Synchronous wrapper for the Notion Blocks API.

    Parameters
    ----------
    transport:
        A configured :class:`NotionTransport` instance.
    """

    def __init__(self, transport: NotionTransport) -> None:
        self._transport = transport

    def retrieve(self, block_id: str) -> dict[str, Any]:
        return self._transport.request("GET", f"/blocks/{block_id}")

    def delete(self, block_id: str) -> dict[str, Any]:
        """Delete (archive) a block.

        Returns
        -------
        dict
            The archived block object.
        """
        return self._transport.request("DELETE", f"/blocks/{block_id}")

    def get_children(self, block_id: str) -> list[dict[str, Any]]:
        """Retrieve all children of a block or page, auto-paginating.

        Parameters
        ----------
        block_id:
            The id of the parent block (or page).

        Returns
        -------
        list[dict]
            All child block objects in order.
        """
        return list(
            self._transport.paginate(
                f"/blocks/{block_id}/children",
                method="GET",
            )
        )

    def append_children(
        self,
        block_id: str,
        children: list[dict[str, Any]],
    ) -> dict[str, Any]:
        """Append child blocks to a parent block or page.

        Parameters
        ----------
        block_id:
            The id of the parent block (or page).
        children:
            Block objects to append, at most 100 per call.
        """
        return self._transport.request(
            "PATCH", f"/blocks/{block_id}/children", json={"children": children}
        )
