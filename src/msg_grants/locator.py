"""
Locate grants of a client service principal.

Graph cannot filter this listing server-side by resource/consent type, so every
page is walked (following @odata.nextLink until absent) and matched in memory.
Read-only and safe to retry; a retry starts from the first page again.
"""

import logging
from typing import Iterator, List, Optional

from msg_grants import graph
from msg_grants.errors import (
    AmbiguousGrantError,
    InvalidArgumentError,
    NotFoundError,
    TransientError,
)
from msg_grants.models import Grant, GrantSelector
from msg_grants.protocol import DirectorySession

logger = logging.getLogger(__name__)

# Upper bound on pages walked in one listing.
MAX_PAGES = 10000


def iter_grants(session: DirectorySession, client_sp_id: str) -> Iterator[Grant]:
    """Yield every grant of client_sp_id across all pages, in listing order."""
    next_link: Optional[str] = None
    seen_links = set()
    pages = 0
    while True:
        try:
            page = graph.list_grants_page(session, client_sp_id, next_link)
        except NotFoundError as e:
            raise InvalidArgumentError(
                f"No client service principal {client_sp_id}", client_id=client_sp_id
            ) from e
        pages += 1
        logger.debug("Grant page %d for %s: %d item(s)", pages, client_sp_id, len(page.value))
        yield from page.value

        next_link = page.next_link
        if not next_link:
            return
        if next_link in seen_links:
            raise TransientError(
                "Grant listing did not terminate; nextLink repeated",
                client_id=client_sp_id,
            )
        if pages >= MAX_PAGES:
            raise TransientError(
                f"Grant listing exceeded {MAX_PAGES} pages",
                client_id=client_sp_id,
            )
        seen_links.add(next_link)


def list_matching_grants(
    session: DirectorySession, client_sp_id: str, selector: GrantSelector
) -> List[Grant]:
    """
    All grants matching selector. Used for display, where a Principal selector
    without a principal id enumerates every per-user grant for the resource.
    """
    matches = [g for g in iter_grants(session, client_sp_id) if selector.matches(g)]
    logger.debug("%d grant(s) match %s", len(matches), selector.describe())
    return matches


def find_grant(
    session: DirectorySession, client_sp_id: str, selector: GrantSelector
) -> Optional[Grant]:
    """
    The unique grant matching selector, or None.

    Graph guarantees at most one grant per (client, resource, consent type,
    principal). Seeing more than one after the full listing means the directory
    is inconsistent; that is raised, never resolved by picking one.
    """
    selector.validate(targeting=True)
    matches = list_matching_grants(session, client_sp_id, selector)
    if len(matches) > 1:
        raise AmbiguousGrantError(
            f"{len(matches)} grants match one selector",
            grant_ids=[g.id or "<no id>" for g in matches],
            client_id=client_sp_id,
            **selector.describe(),
        )
    return matches[0] if matches else None
