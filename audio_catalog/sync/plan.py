import logging
from typing import Dict, List, Set

from ..models import CacheEntry, MediaRecord, SyncPlan


def build_sync_plan(scanned: List[MediaRecord], cached: Dict[str, CacheEntry]) -> SyncPlan:
    """
    Three-way diff of the current scan against the cache.

    - reusable:   on disk, cached, stored signature == current signature.
                  The cached record replaces the scanned one wholesale.
    - to_analyze: on disk, and either not cached or signature differs.
                  The scanned record is kept, in scan order.
    - to_prune:   cached, but no longer on disk.

    cached must be keyed by path_key(); lookups are case-insensitive.
    """
    plan = SyncPlan()
    seen: Set[str] = set()

    for record in scanned:
        key = record.key
        if key in seen:
            # Two paths differing only by case on a case-sensitive filesystem
            logging.warning(f"Ignoring case-duplicate path: {record.path}")
            continue
        seen.add(key)

        entry = cached.get(key)
        if entry is not None and entry.signature == record.signature:
            plan.reusable.append(entry.record)
        else:
            plan.to_analyze.append(record)

    plan.to_prune = [str(entry.record.path) for key, entry in cached.items() if key not in seen]

    logging.info(
        f"Sync plan: {len(plan.reusable)} cached, "
        f"{len(plan.to_analyze)} to analyze, {len(plan.to_prune)} to prune"
    )
    return plan
