"""Move resources out of the undefined partition into their categories.

Records are processed one at a time. A move is insert-then-delete: the
source copy is removed only after the destination insert succeeded, so a
failure leaves either the original record or a duplicate, never nothing.
"""
import json
import logging
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Protocol

from vet1stop.errors import DuplicateKeyError, RepositoryError
from vet1stop.search.predicates import MATCH_ALL
from vet1stop.storage.dao import now_iso
from vet1stop.storage.models import CATEGORIES, PARTITIONS, UNDEFINED
from vet1stop.storage.repository import ResourceRepository
from vet1stop.tagging.classifier import categorize, matched_keywords, resource_text
from vet1stop.tagging.taxonomy import PLACEHOLDER_NOTE

logger = logging.getLogger("vet1stop.migrate.reclassify")


class PartitionedStore(Protocol):
    def partition(self, category: str) -> ResourceRepository: ...


class CancelSignal(Protocol):
    def is_set(self) -> bool: ...


@dataclass(frozen=True)
class AuditEntry:
    resource_id: str
    old_partition: str
    new_partition: str
    timestamp: str
    keywords: tuple[str, ...] = ()


@dataclass(frozen=True)
class PartialMoveWarning:
    """Record now present in both partitions; needs manual reconciliation."""

    resource_id: str
    old_partition: str
    new_partition: str
    reason: str


@dataclass(frozen=True)
class FailedMove:
    """Destination insert failed; the record stays in undefined."""

    resource_id: str
    old_partition: str
    new_partition: str
    reason: str


@dataclass
class ReclassifySummary:
    started_at: str
    finished_at: Optional[str] = None
    dry_run: bool = False
    cancelled: bool = False
    total: int = 0
    moved: dict[str, int] = field(default_factory=dict)
    uncategorized: int = 0
    errors: int = 0
    failed: list[FailedMove] = field(default_factory=list)
    partial_moves: list[PartialMoveWarning] = field(default_factory=list)
    audit: list[AuditEntry] = field(default_factory=list)
    partition_counts: dict[str, int] = field(default_factory=dict)

    @property
    def moved_total(self) -> int:
        return sum(self.moved.values())

    def to_dict(self) -> dict:
        data = asdict(self)
        data["moved_total"] = self.moved_total
        return data


def _count_partitions(store: PartitionedStore) -> dict[str, int]:
    counts: dict[str, int] = {}
    for category in CATEGORIES:
        name = PARTITIONS[category]
        try:
            counts[name] = store.partition(category).count(MATCH_ALL)
        except RepositoryError as e:
            logger.error("Could not count %s after run: %s", name, e)
    return counts


def reclassify_undefined(
    store: PartitionedStore,
    *,
    cancel: Optional[CancelSignal] = None,
    dry_run: bool = False,
    clock: Callable[[], str] = now_iso,
) -> ReclassifySummary:
    """Categorize every record in the undefined partition and move it.

    Reading the undefined partition is fatal on failure. Per-record
    repository failures are logged and counted; the batch continues.
    ``cancel`` is checked before each record.
    """
    source = store.partition(UNDEFINED)
    source_name = PARTITIONS[UNDEFINED]
    summary = ReclassifySummary(started_at=clock(), dry_run=dry_run)

    records = source.find(MATCH_ALL)
    summary.total = len(records)
    logger.info("Found %d resource(s) in %s to categorize", len(records), source_name)

    for record in records:
        if cancel is not None and cancel.is_set():
            summary.cancelled = True
            logger.warning("Reclassification cancelled before %s", record.id)
            break

        text = resource_text(record)
        category = categorize(record)
        if category == UNDEFINED:
            summary.uncategorized += 1
            logger.info("Resource %s matches no category, remains uncategorized", record.id)
            continue

        target_name = PARTITIONS[category]
        timestamp = clock()
        entry = AuditEntry(
            resource_id=record.id,
            old_partition=source_name,
            new_partition=target_name,
            timestamp=timestamp,
            keywords=tuple(matched_keywords(text).get(category, ())),
        )

        if dry_run:
            summary.moved[category] = summary.moved.get(category, 0) + 1
            summary.audit.append(entry)
            logger.info("[dry-run] %s would move to %s", record.id, target_name)
            continue

        moved = replace(record, category=category, updated_at=timestamp, note=PLACEHOLDER_NOTE)
        try:
            store.partition(category).insert_one(moved)
        except DuplicateKeyError as e:
            # Left over from an earlier partial move: both copies exist.
            warning = PartialMoveWarning(
                resource_id=record.id,
                old_partition=source_name,
                new_partition=target_name,
                reason=f"already present in destination: {e}",
            )
            summary.partial_moves.append(warning)
            logger.warning(
                "PartialMoveWarning: %s already in %s and still in %s",
                record.id, target_name, source_name,
            )
            continue
        except RepositoryError as e:
            summary.errors += 1
            summary.failed.append(FailedMove(
                resource_id=record.id,
                old_partition=source_name,
                new_partition=target_name,
                reason=str(e),
            ))
            logger.error("Insert of %s into %s failed, source kept: %s", record.id, target_name, e)
            continue

        try:
            deleted = source.delete_one(record.id)
            reason = "" if deleted else "source record not found on delete"
        except RepositoryError as e:
            deleted = False
            reason = str(e)

        summary.moved[category] = summary.moved.get(category, 0) + 1
        summary.audit.append(entry)

        if not deleted:
            warning = PartialMoveWarning(
                resource_id=record.id,
                old_partition=source_name,
                new_partition=target_name,
                reason=reason,
            )
            summary.partial_moves.append(warning)
            logger.warning(
                "PartialMoveWarning: %s inserted into %s but not removed from %s (%s)",
                record.id, target_name, source_name, reason,
            )
            continue

        logger.info("Moved resource %s from %s to %s", record.id, source_name, target_name)

    summary.finished_at = clock()
    summary.partition_counts = _count_partitions(store)

    logger.info("Categorization completed. Summary of changes:")
    for category, count in sorted(summary.moved.items()):
        logger.info("  - Moved to %s: %d resource(s)", PARTITIONS[category], count)
    logger.info("  - Remain uncategorized: %d resource(s)", summary.uncategorized)
    if summary.errors:
        logger.warning("  - Failed moves: %d", summary.errors)
    if summary.partial_moves:
        logger.warning("  - Partial moves needing reconciliation: %d", len(summary.partial_moves))
    for name, count in summary.partition_counts.items():
        logger.info("Post-run count for %s: %d", name, count)

    return summary


def write_audit_log(summary: ReclassifySummary, directory: Path) -> Path:
    """Write the summary as JSON and return the file path."""
    directory.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().isoformat(timespec="seconds").replace(":", "-")
    prefix = "reclassify-dryrun" if summary.dry_run else "reclassify-audit"
    path = directory / f"{prefix}-{stamp}.json"
    path.write_text(json.dumps(summary.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Audit log written to %s", path)
    return path
