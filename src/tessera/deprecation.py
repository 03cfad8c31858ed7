"""End-of-life scheduling for templates being retired."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from tessera.conflicts import ConflictDetector
from tessera.migration import MigrationPlan, MigrationPlanner
from tessera.models import NotificationType, SupportLevel, Template
from tessera.store import CapabilityStore
from tessera.types.core import ISOTimestamp
from tessera.types.planning import DeprecationNotificationDict, DeprecationPlanDict

logger = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD_DAYS = 30
DEFAULT_FINAL_NOTICE_DAYS = 14
DEFAULT_REPLACEMENT_THRESHOLD = 0.5
DAYS_PER_MONTH = 30


@dataclass(frozen=True)
class DeprecationNotification:
    date: datetime
    type: NotificationType
    channels: tuple[str, ...]
    message: str

    def to_dict(self) -> DeprecationNotificationDict:
        return {
            "date": ISOTimestamp(self.date.isoformat()),
            "type": self.type.value,
            "channels": list(self.channels),
            "message": self.message,
        }


@dataclass(frozen=True)
class DeprecationPlan:
    template: Template
    deprecation_date: datetime
    end_of_life_date: datetime
    reason: str
    replacement_templates: tuple[Template, ...]
    migration_plan: MigrationPlan
    notification_schedule: tuple[DeprecationNotification, ...]
    support_level: SupportLevel

    def to_dict(self) -> DeprecationPlanDict:
        return {
            "template": self.template.to_dict(),
            "deprecation_date": ISOTimestamp(self.deprecation_date.isoformat()),
            "end_of_life_date": ISOTimestamp(self.end_of_life_date.isoformat()),
            "reason": self.reason,
            "replacement_templates": [t.to_dict() for t in self.replacement_templates],
            "migration_plan": self.migration_plan.to_dict(),
            "notification_schedule": [n.to_dict() for n in self.notification_schedule],
            "support_level": self.support_level.value,
        }


def support_level_for(timeline_months: int) -> SupportLevel:
    if timeline_months >= 12:
        return SupportLevel.FULL
    if timeline_months >= 6:
        return SupportLevel.MAINTENANCE
    if timeline_months >= 2:
        return SupportLevel.SECURITY_ONLY
    return SupportLevel.NONE


def notification_schedule(
    template_name: str,
    deprecation_date: datetime,
    end_of_life_date: datetime,
    *,
    final_notice_days: int = DEFAULT_FINAL_NOTICE_DAYS,
) -> tuple[DeprecationNotification, ...]:
    """Announcement, mid-point warning and final notice, in that order."""
    midpoint = deprecation_date + (end_of_life_date - deprecation_date) / 2
    return (
        DeprecationNotification(
            date=deprecation_date,
            type=NotificationType.ANNOUNCEMENT,
            channels=("email", "slack", "documentation"),
            message=f"Template '{template_name}' has been deprecated. Please plan migration to alternative templates.",
        ),
        DeprecationNotification(
            date=midpoint,
            type=NotificationType.WARNING,
            channels=("email", "slack"),
            message=f"Reminder: Template '{template_name}' will reach end-of-life soon. Please complete migration.",
        ),
        DeprecationNotification(
            date=end_of_life_date - timedelta(days=final_notice_days),
            type=NotificationType.FINAL_NOTICE,
            channels=("email", "slack", "dashboard"),
            message=(
                f"Final notice: Template '{template_name}' will be removed in 2 weeks. Immediate action required."
            ),
        ),
    )


class DeprecationScheduler:
    """Builds retirement timelines, delegating the migration itself to a MigrationPlanner."""

    def __init__(
        self,
        store: CapabilityStore,
        detector: ConflictDetector,
        planner: MigrationPlanner,
        *,
        grace_period_days: int = DEFAULT_GRACE_PERIOD_DAYS,
        final_notice_days: int = DEFAULT_FINAL_NOTICE_DAYS,
        replacement_threshold: float = DEFAULT_REPLACEMENT_THRESHOLD,
    ) -> None:
        self._store = store
        self._detector = detector
        self._planner = planner
        self.grace_period_days = grace_period_days
        self.final_notice_days = final_notice_days
        self.replacement_threshold = replacement_threshold

    def find_replacements(self, template: Template) -> list[Template]:
        """Similar templates at least as mature as *template*, most similar first."""
        similar = self._detector.find_similar_templates(template.id, self.replacement_threshold)
        return [t for t in similar if t.maturity_level >= template.maturity_level]

    def create_deprecation_plan(
        self,
        template_id: str,
        reason: str,
        timeline_months: int,
        *,
        now: datetime | None = None,
    ) -> DeprecationPlan:
        """Schedule retirement of *template_id* over *timeline_months*.

        The top replacement, if any, becomes the migration target; without
        one the embedded plan is a gradual deprecation.

        Raises:
            NotFoundError: If the template id does not resolve.
            ValueError: If *timeline_months* is not positive.
        """
        if timeline_months <= 0:
            msg = f"timeline_months must be a positive number of months, got {timeline_months}"
            raise ValueError(msg)
        _, template = self._store.find_template(template_id)
        start = now or datetime.now(UTC)
        deprecation_date = start + timedelta(days=self.grace_period_days)
        end_of_life_date = start + timedelta(days=timeline_months * DAYS_PER_MONTH)

        replacements = self.find_replacements(template)
        target_id = replacements[0].id if replacements else None
        migration_plan = self._planner.create_migration_plan(template_id, target_id)

        plan = DeprecationPlan(
            template=template,
            deprecation_date=deprecation_date,
            end_of_life_date=end_of_life_date,
            reason=reason,
            replacement_templates=tuple(replacements),
            migration_plan=migration_plan,
            notification_schedule=notification_schedule(
                template.name, deprecation_date, end_of_life_date, final_notice_days=self.final_notice_days
            ),
            support_level=support_level_for(timeline_months),
        )
        logger.info(
            "Scheduled deprecation of %s: end of life %s, %d replacement(s), support %s",
            template_id,
            end_of_life_date.date().isoformat(),
            len(replacements),
            plan.support_level.value,
            extra={"op": "create_deprecation_plan", "template_id": template_id},
        )
        return plan
