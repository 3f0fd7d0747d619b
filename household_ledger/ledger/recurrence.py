"""
Recurrence Expansion

A recurring template is a rule, not a list of records. This module turns
the rule into concrete occurrences on demand.

RULES:
1. One occurrence per calendar month, on the day-of-month of start_date
2. Short months clamp to their last day (a 31st rule lands on Feb 28/29)
3. Nothing before start_date, nothing for inactive templates
4. Months with an override or exclusion are skipped

Expansion is a pure function of its arguments: lazy, restartable and
side-effect free. Nothing here touches storage.
"""

from datetime import date
from decimal import Decimal
from typing import AbstractSet, Iterator, Optional

from household_ledger.models.ledger import (
    Month,
    Occurrence,
    RecurringExpenseTemplate,
)


class RecurrenceExpander:
    """Expands recurring templates into monthly occurrences."""

    def occurrence_for_month(
        self,
        template: RecurringExpenseTemplate,
        month: Month,
    ) -> Optional[Occurrence]:
        """
        The template's occurrence in `month`, ignoring overrides.

        Returns None if the month is before the template starts.
        """
        if month < template.start_month:
            return None
        return Occurrence(
            template_id=template.id,
            month=month,
            occurrence_date=month.day(template.start_date.day),
            title=template.title,
            amount=template.amount,
        )

    def expand(
        self,
        template: RecurringExpenseTemplate,
        date_from: Optional[date],
        date_to: Optional[date],
        skipped_months: AbstractSet[Month] = frozenset(),
    ) -> Iterator[Occurrence]:
        """
        Lazily yield the occurrences dated within [date_from, date_to].

        Args:
            template: The rule to expand
            date_from: Lower bound; None means the template's start
            date_to: Upper bound; None yields forever
            skipped_months: Months with an override or exclusion

        An empty range (date_from after date_to) yields nothing.
        """
        if not template.active:
            return

        start = template.start_date if date_from is None else max(template.start_date, date_from)
        if date_to is not None and start > date_to:
            return

        month = Month.of(start)
        while True:
            occurrence_date = month.day(template.start_date.day)
            if date_to is not None and occurrence_date > date_to:
                return
            if occurrence_date >= start and month not in skipped_months:
                yield Occurrence(
                    template_id=template.id,
                    month=month,
                    occurrence_date=occurrence_date,
                    title=template.title,
                    amount=template.amount,
                )
            month = month.next()

    def total(
        self,
        template: RecurringExpenseTemplate,
        date_from: Optional[date],
        date_to: date,
        skipped_months: AbstractSet[Month] = frozenset(),
    ) -> Decimal:
        """
        Sum of the occurrences `expand` would yield over a bounded range.

        Computed arithmetically (months x amount) instead of by iteration,
        so balance queries don't grow with the age of a template.
        """
        if not template.active:
            return Decimal(0)

        start = template.start_date if date_from is None else max(template.start_date, date_from)
        if start > date_to:
            return Decimal(0)

        day_of_month = template.start_date.day

        first = Month.of(start)
        if first.day(day_of_month) < start:
            first = first.next()

        last = Month.of(date_to)
        count = first.months_until(last) + 1
        if last.day(day_of_month) > date_to:
            count -= 1
            last = Month(last.year - 1, 12) if last.month == 1 else Month(last.year, last.month - 1)

        if count <= 0:
            return Decimal(0)

        count -= sum(1 for month in skipped_months if first <= month <= last)
        return template.amount * count
