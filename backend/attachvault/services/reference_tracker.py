"""Reference counting: which documents point at which attachments.

After any document save, trash or rescue, the document is walked for
attachment values and every affected attachment's live/trash reference sets
are rewritten for that document id. The permission synchronizer then runs
globally, since set changes can flip any attachment's visibility.
"""
import logging
from typing import Any, Iterable, Optional

from attachvault.models import ATTACHMENT_TYPE, Doc
from attachvault.services.attachment_repository import AttachmentRepository
from attachvault.services.doc_walker import walk
from attachvault.services.permission_sync import PermissionSynchronizer, SyncReport
from attachvault.services.url_builder import ORIGINAL, attachment_url

logger = logging.getLogger(__name__)

_CROP_KEYS = ("top", "left", "width", "height")
_FOCAL_KEYS = ("x", "y")


def is_attachment(value: Any) -> bool:
    return isinstance(value, dict) and value.get("type") == ATTACHMENT_TYPE


def _pick(source: dict, keys: Iterable[str]) -> dict:
    return {k: source[k] for k in keys if k in source}


def _placement(container: Any, value: dict, ancestors: list) -> Optional[dict]:
    """Nearest ancestor relationship entry for this placement.

    Relationship tables are keyed by the id of the object that directly
    holds the attachment (e.g. an image piece); an entry keyed by the
    attachment id itself is accepted too.
    """
    keys = []
    if isinstance(container, dict) and container.get("id"):
        keys.append(container["id"])
    keys.append(value.get("id"))
    for ancestor in reversed(ancestors):
        if not isinstance(ancestor, dict):
            continue
        relationships = ancestor.get("relationships")
        if not isinstance(relationships, dict):
            continue
        for key in keys:
            entry = relationships.get(key)
            if isinstance(entry, dict):
                return entry
    return None


def find_attachments(
    within: Any,
    *,
    extension: Optional[str] = None,
    extensions: Optional[Iterable[str]] = None,
    group: Optional[str] = None,
    annotate: bool = False,
    image_sizes: Iterable[str] = (),
    base_url: str = "",
    limit: Optional[int] = None,
) -> list[dict]:
    """All attachment values found anywhere inside ``within``.

    Values picked up under an ancestor relationship are shallow copies
    carrying ``_crop`` / ``_focalPoint`` from that relationship, so one image
    can be cropped differently per placement. With ``annotate``, each value
    is written back into its container and gains ``_urls`` (images, one per
    size plus ``original``) or ``_url``.
    """
    if not within:
        return []
    extensions = set(extensions) if extensions is not None else None
    image_sizes = list(image_sizes)
    winners: list[dict] = []

    def _matches(value: Any) -> bool:
        if not is_attachment(value):
            return False
        if extension and value.get("extension") != extension:
            return False
        if group and value.get("group") != group:
            return False
        if extensions is not None and value.get("extension") not in extensions:
            return False
        return True

    def _visit(node, key, value, path, ancestors):
        if not _matches(value):
            return
        entry = _placement(node, value, ancestors)
        if entry is not None:
            value = dict(value)
            value["_crop"] = _pick(entry, _CROP_KEYS)
            value["_focalPoint"] = _pick(entry, _FOCAL_KEYS)
        if annotate:
            node[key] = value
            if value.get("group") == "images":
                value["_urls"] = {
                    size: attachment_url(value, base_url, size=size) for size in image_sizes
                }
                value["_urls"][ORIGINAL] = attachment_url(value, base_url, size=ORIGINAL)
            else:
                value["_url"] = attachment_url(value, base_url)
        winners.append(value)

    walk(within, _visit)
    return winners[:limit] if limit is not None else winners


def first_attachment(within: Any, **options: Any) -> Optional[dict]:
    found = find_attachments(within, **options)
    return found[0] if found else None


def referenced_ids(document: Any) -> list[str]:
    """Deduplicated attachment ids, in first-seen order."""
    ids: dict[str, None] = {}
    for value in find_attachments(document):
        if value.get("id"):
            ids.setdefault(value["id"], None)
    return list(ids)


class ReferenceTracker:
    def __init__(self, repository: AttachmentRepository, synchronizer: PermissionSynchronizer):
        self.repository = repository
        self.synchronizer = synchronizer

    async def update_doc_references(self, doc: Doc) -> SyncReport:
        """Recompute reference sets for one document, then reconcile access."""
        ids = referenced_ids(doc.body)
        found = await self.repository.apply_doc_references(doc.id, ids, trash=bool(doc.trash))
        logger.debug(
            f"Doc {doc.id} ({'trash' if doc.trash else 'live'}) references "
            f"{len(found)} attachment(s)"
        )
        return await self.synchronizer.reconcile()

    async def doc_after_save(self, doc: Doc) -> SyncReport:
        return await self.update_doc_references(doc)

    async def doc_after_trash(self, doc: Doc) -> SyncReport:
        return await self.update_doc_references(doc)

    async def doc_after_rescue(self, doc: Doc) -> SyncReport:
        return await self.update_doc_references(doc)
