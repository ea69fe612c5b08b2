"""
app/mappers/customer_ids.py

Deterministic customer id derivation for uploads without an id column.

An id is the customer name lower-cased, with every run of non-alphanumeric
characters collapsed to ``_`` and truncated. A collision with an id already
handed out gets ``_1``, ``_2`` ... appended, so the result depends only on the
name and the ids assigned before it.
"""

from __future__ import annotations

import logging
import re
import time

logger = logging.getLogger(__name__)

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_FALLBACK_BASE = "customer"


def slugify_customer_name(name: str, *, max_length: int = 50) -> str:
    """
    Return the collision-free base id for *name*.
    """

    slug = _NON_ALNUM_RE.sub("_", str(name).strip().lower()).strip("_")
    slug = slug[:max_length].rstrip("_")
    return slug or _FALLBACK_BASE


class CustomerIdGenerator:
    """
    Hands out unique customer ids for one extraction run.

    Not shared across uploads: build a fresh instance per run.
    """

    def __init__(self, *, max_length: int = 50, collision_cap: int = 1000) -> None:
        self._max_length = max(1, max_length)
        self._collision_cap = max(1, collision_cap)
        self._assigned: set[str] = set()
        self._by_name: dict[str, str] = {}

    def reserve(self, customer_id: str) -> None:
        """
        Mark an id supplied by the source data as taken.
        """

        self._assigned.add(customer_id)

    def assign(self, name: str) -> str:
        """
        Derive a new id for a distinct customer called *name*.
        """

        base = slugify_customer_name(name, max_length=self._max_length)
        candidate = base
        suffix = 0
        while candidate in self._assigned:
            suffix += 1
            if suffix > self._collision_cap:
                candidate = f"{base}_{time.time_ns()}"
                logger.warning(
                    "Customer id collision cap reached name=%r cap=%s fallback=%r",
                    name,
                    self._collision_cap,
                    candidate,
                )
                break
            candidate = f"{base}_{suffix}"

        self._assigned.add(candidate)
        return candidate

    def id_for_name(self, name: str) -> str:
        """
        Return the id already derived for *name*, deriving it on first use.

        Used when several rows describe the same customer.
        """

        existing = self._by_name.get(name)
        if existing is not None:
            return existing
        customer_id = self.assign(name)
        self._by_name[name] = customer_id
        return customer_id
