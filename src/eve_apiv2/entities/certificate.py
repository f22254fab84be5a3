"""
Certificates from the eve/CertificateTree lookup table.

The tree nests certificates inside classes inside categories; each
certificate record carries its category and class names so lookups
never need a second table walk.
"""

from __future__ import annotations

from typing import Any, Optional

from ..core.cache import CollectionCache
from ..core.constants import CERTIFICATE_TREE_ENDPOINT, KIND_CERTIFICATE
from ..core.context import ApiContext
from ..core.document import node_value, to_int
from ..core.logging import get_logger
from .record import LazyField, LookupKey, RecordBacked, ResolvableRecord, absorb

logger = get_logger(__name__)


def load_certificate_tree(context: ApiContext) -> CollectionCache:
    """Ensure the certificate tree is cached; returns the collection."""
    cache = context.caches.collection(KIND_CERTIFICATE)

    def loader(target: CollectionCache) -> None:
        doc = context.client.call(CERTIFICATE_TREE_ENDPOINT, credential=context.credential)
        categories = target.table("categories")
        classes = target.table("classes")
        cached_until = doc.cached_until

        for category in doc.all_nodes("result/rowset[@name='categories']/row"):
            category_id = to_int(node_value(category, "categoryID"))
            category_name = node_value(category, "categoryName")
            if category_id is not None and category_name:
                categories[category_id] = category_name

            for cls_row in category.findall("rowset[@name='classes']/row"):
                class_id = to_int(node_value(cls_row, "classID"))
                class_name = node_value(cls_row, "className")
                if class_id is not None and class_name:
                    classes[class_id] = class_name

                for row in cls_row.findall("rowset[@name='certificates']/row"):
                    certificate_id = to_int(node_value(row, "certificateID"))
                    if certificate_id is None:
                        continue
                    target.put(
                        certificate_id,
                        {
                            "certificate_id": certificate_id,
                            "grade": to_int(node_value(row, "grade")),
                            "description": node_value(row, "description") or None,
                            "corporation_id": to_int(node_value(row, "corporationID")),
                            "category_id": category_id,
                            "category_name": category_name or None,
                            "class_id": class_id,
                            "class_name": class_name or None,
                        },
                        cached_until,
                    )
        target.loaded_until = cached_until

    cache.ensure_loaded(loader)
    return cache


class Certificate(RecordBacked):
    """A certificate, looked up by its id."""

    certificate_id = LazyField("Certificate ID")
    description = LazyField("Certificate description")
    grade = LazyField("Grade (1 basic .. 5 elite)")
    corporation_id = LazyField("Issuing corporation ID")
    category_id = LazyField("Category ID")
    category_name = LazyField("Category name")
    class_id = LazyField("Class ID")
    class_name = LazyField("Class name")

    def __init__(self, context: ApiContext, certificate_id: int, **known: Any) -> None:
        self._check_known(known)
        certificate_id = int(certificate_id)
        self.context = context
        self._record = ResolvableRecord(
            KIND_CERTIFICATE,
            LookupKey("certificate_id", certificate_id),
            self._resolve,
            {"certificate_id": certificate_id, **known},
        )

    def _resolve(self, record: ResolvableRecord) -> None:
        cache = load_certificate_tree(self.context)
        certificate_id = record.lookup_key.value
        entry = cache.find_by_id(certificate_id)
        if entry is None:
            logger.debug("No certificate with id %s", certificate_id)
            record.cached_until = cache.loaded_until
            return
        absorb(record, cache, certificate_id, entry)

    @classmethod
    def all(cls, context: ApiContext, category_id: Optional[int] = None) -> list["Certificate"]:
        """Every certificate, ordered by id, optionally within one category."""
        cache = load_certificate_tree(context)
        return [
            cls(context, certificate_id=certificate_id)
            for certificate_id, entry in cache.items()
            if category_id is None or entry.get("category_id") == category_id
        ]
