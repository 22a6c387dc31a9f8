"""Availability model definitions."""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String

from scheduler.database import Base
from scheduler.scheduling.intervals import DayOfWeek, WeeklyRule, build_time


class AvailabilityRule(Base):
    """A recurring weekly window during which an owner accepts bookings."""
    __tablename__ = "availability_rules"
    __table_args__ = (
        CheckConstraint("day >= 0 AND day <= 6", name="ck_availability_rules_day"),
        CheckConstraint(
            "end_hour * 60 + end_minute > start_hour * 60 + start_minute",
            name="ck_availability_rules_end_after_start",
        ),
        Index("idx_availability_rules_user_day", "user_id", "day"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    day = Column(Integer, nullable=False)  # DayOfWeek value, Monday is 0
    start_hour = Column(Integer, nullable=False)
    start_minute = Column(Integer, nullable=False)
    end_hour = Column(Integer, nullable=False)
    end_minute = Column(Integer, nullable=False)
    instructions = Column(String, nullable=True)
    position = Column(Integer, nullable=False, default=0)

    @property
    def day_of_week(self) -> DayOfWeek:
        return DayOfWeek(self.day)

    def to_rule(self) -> WeeklyRule:
        return WeeklyRule(
            day=self.day_of_week,
            start=build_time(self.start_hour, self.start_minute),
            end=build_time(self.end_hour, self.end_minute),
            rule_id=self.id,
        )
