"""Run reports for provisioning.

Every run reports created / skipped / failed counts per entity kind, the
records that failed and why, and whether the assignment step was skipped.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class EntityCounts:
    created: int = 0
    skipped: int = 0
    failed: int = 0

    def __str__(self) -> str:
        return f"created={self.created}, skipped={self.skipped}, failed={self.failed}"


@dataclass
class RecordFailure:
    entity: str
    record: Any
    field: Optional[str]
    reason: str


@dataclass
class ReconcileReport:
    counts: Dict[str, EntityCounts] = field(default_factory=dict)
    failures: List[RecordFailure] = field(default_factory=list)
    skipped_resources: List[str] = field(default_factory=list)
    created_permissions: List[str] = field(default_factory=list)
    target_principal: Optional[str] = None
    assignment_skipped_reason: Optional[str] = None
    notices: List[str] = field(default_factory=list)

    def track(self, *entities: str) -> None:
        """Register entity kinds so their counts are reported even when zero."""
        for entity in entities:
            self.counts.setdefault(entity, EntityCounts())

    def counts_for(self, entity: str) -> EntityCounts:
        """Counts of ``entity`` for updating; registers the kind if needed."""
        self.track(entity)
        return self.counts[entity]

    def _read(self, entity: str) -> EntityCounts:
        return self.counts.get(entity, EntityCounts())

    @property
    def permissions(self) -> EntityCounts:
        return self._read("permissions")

    @property
    def assignments(self) -> EntityCounts:
        return self._read("assignments")

    @property
    def roles(self) -> EntityCounts:
        return self._read("roles")

    @property
    def portfolios(self) -> EntityCounts:
        return self._read("portfolios")

    @property
    def assignment_skipped(self) -> bool:
        return self.assignment_skipped_reason is not None

    def record_failure(
        self, entity: str, record: Any, field_name: Optional[str], reason: str
    ) -> None:
        self.counts_for(entity).failed += 1
        self.failures.append(RecordFailure(entity, record, field_name, reason))

    def skip_assignments(self, reason: str) -> None:
        self.assignment_skipped_reason = reason

    def summary_lines(self) -> List[str]:
        lines = [f"{entity}: {counts}" for entity, counts in self.counts.items()]
        if self.skipped_resources:
            lines.append(
                "already provisioned (skipped): " + ", ".join(self.skipped_resources)
            )
        if self.target_principal:
            lines.append(f"assigned to: {self.target_principal}")
        if self.assignment_skipped_reason:
            lines.append(f"assignment skipped: {self.assignment_skipped_reason}")
        for failure in self.failures:
            where = f" [{failure.field}]" if failure.field else ""
            lines.append(f"failed {failure.entity}{where}: {failure.reason}")
        lines.extend(self.notices)
        return lines
