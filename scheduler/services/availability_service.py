import logging
from collections import defaultdict
from collections.abc import Sequence

from sqlalchemy.orm import Session

from scheduler.core.errors import ConflictError, NotFoundError
from scheduler.models.availability import AvailabilityRule
from scheduler.scheduling.intervals import WeeklyRule

logger = logging.getLogger(__name__)


def check_rule_set(rules: Sequence[WeeklyRule]) -> None:
    """Reject duplicate or overlapping windows on the same weekday."""
    rules_by_day: dict[int, list[WeeklyRule]] = defaultdict(list)
    for rule in rules:
        rules_by_day[rule.day].append(rule)

    for day_rules in rules_by_day.values():
        ordered = sorted(day_rules, key=lambda rule: (rule.start, rule.end))
        for previous, current in zip(ordered, ordered[1:]):
            if previous.start == current.start:
                raise ConflictError(
                    f'Availability already exists for {current.day.display_name} at {current.start:%H:%M}.'
                )
            if current.start < previous.end:
                raise ConflictError(
                    f'Availability on {current.day.display_name} {current.start:%H:%M} '
                    f'overlaps {previous.start:%H:%M}-{previous.end:%H:%M}.'
                )


def replace_rules(
    db: Session,
    user_id: int,
    rules: Sequence[WeeklyRule],
    instructions: Sequence[str | None] | None = None,
) -> list[AvailabilityRule]:
    """Swap the user's whole weekly schedule for ``rules`` in one transaction."""
    check_rule_set(rules)
    instructions = list(instructions) if instructions is not None else [None] * len(rules)

    try:
        db.query(AvailabilityRule).filter(AvailabilityRule.user_id == user_id).delete(synchronize_session=False)

        rows = [
            AvailabilityRule(
                user_id=user_id,
                day=int(rule.day),
                start_hour=rule.start.hour,
                start_minute=rule.start.minute,
                end_hour=rule.end.hour,
                end_minute=rule.end.minute,
                instructions=note,
                position=position,
            )
            for position, (rule, note) in enumerate(zip(rules, instructions))
        ]
        db.add_all(rows)
        db.commit()
    except Exception:
        db.rollback()
        raise

    for row in rows:
        db.refresh(row)

    logger.info('Replaced availability for user %s with %d weekly rule(s)', user_id, len(rows))
    return rows


def list_rules(db: Session, user_id: int) -> list[AvailabilityRule]:
    return db.query(AvailabilityRule).filter(
        AvailabilityRule.user_id == user_id,
    ).order_by(
        AvailabilityRule.day.asc(),
        AvailabilityRule.start_hour.asc(),
        AvailabilityRule.start_minute.asc(),
    ).all()


def get_rule(db: Session, rule_id: int, user_id: int) -> AvailabilityRule:
    rule = db.query(AvailabilityRule).filter(
        AvailabilityRule.id == rule_id,
        AvailabilityRule.user_id == user_id,
    ).first()
    if rule is None:
        raise NotFoundError('Availability not found.')
    return rule


def delete_rule(db: Session, rule_id: int, user_id: int) -> None:
    rule = get_rule(db, rule_id, user_id)
    db.delete(rule)
    db.commit()
    logger.info('Deleted availability %s for user %s', rule_id, user_id)

