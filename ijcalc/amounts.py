"""Split payable windows into priced segments and assemble the claim result."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from ijcalc.config import REFORM_CUTOFF
from ijcalc.dates import (
    WEEKDAY_NAMES,
    affiliation_quarters,
    age_on,
    iter_days,
    month_end,
    next_birthday,
    quarter_of,
)
from ijcalc.entitlement import compute_entitlement_dates, first_entitlement_date
from ijcalc.models import (
    ClaimContext,
    DailyEntry,
    PaymentDetail,
    RateSegment,
    ReasonCode,
    Result,
    StoppagePeriod,
)
from ijcalc.payable import apply_global_caps, compute_payable_windows
from ijcalc.rate_table import RateTable
from ijcalc.rates import (
    class_for_year,
    daily_rate,
    pass_for_year,
    select_rate_code,
    sub_period_for_day,
    validated_option,
)

LOGGER = logging.getLogger(__name__)

LONG_EPISODE_DAYS = 730
SUB_PERIOD_LIMITS = (365, 730, 1095)


def round_currency(amount: float) -> float:
    """Round half-up to 2 decimal places."""
    return float(Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def claim_quarters(context: ClaimContext, on: date) -> int:
    """Affiliation quarters on ``on``, unless the claim declares its own count."""

    if context.affiliation_quarters is not None:
        return context.affiliation_quarters
    return affiliation_quarters(context.affiliation_date, on)


def gate_quarters(context: ClaimContext) -> int:
    """Quarters checked against the minimum affiliation.

    With a prior condition they are counted at the first stop of the pathology.
    """

    on = context.as_of_date
    if context.prior_condition and context.first_pathology_stop_date is not None:
        on = context.first_pathology_stop_date
    return claim_quarters(context, on)


def _segment_end(
    cursor: date,
    window_end: date,
    *,
    birth_date: date,
    episode_start: date,
    rate_table: RateTable,
    reform_cutoff: date,
) -> date:
    candidates = [window_end, month_end(cursor), next_birthday(birth_date, cursor) - timedelta(days=1)]

    covering = rate_table.for_date(cursor)
    if covering is not None:
        candidates.append(covering.end)
    else:
        following = rate_table.next_period_after(cursor)
        if following is not None:
            candidates.append(following.start - timedelta(days=1))
        if cursor < reform_cutoff:
            candidates.append(reform_cutoff - timedelta(days=1))

    age = age_on(birth_date, cursor)
    if 62 <= age < 70:
        for limit in SUB_PERIOD_LIMITS:
            boundary = episode_start + timedelta(days=limit - 1)
            if boundary >= cursor:
                candidates.append(boundary)
                break

    return min(candidates)


def split_window(
    detail: PaymentDetail,
    period: StoppagePeriod,
    context: ClaimContext,
    rate_table: RateTable,
    *,
    option: float,
    reform_cutoff: date = REFORM_CUTOFF,
) -> list[RateSegment]:
    """Price one payment window as a list of segments with a single rate each."""

    if detail.payable_days == 0 or detail.payment_start is None or detail.payment_end is None:
        return []
    episode_start = detail.payment_start
    long_episode = (period.duration or 0) >= LONG_EPISODE_DAYS

    segments: list[RateSegment] = []
    cursor = detail.payment_start
    while cursor <= detail.payment_end:
        end = _segment_end(
            cursor,
            detail.payment_end,
            birth_date=context.birth_date,
            episode_start=episode_start,
            rate_table=rate_table,
            reform_cutoff=reform_cutoff,
        )
        age = age_on(context.birth_date, cursor)
        quarters = claim_quarters(context, cursor)
        if age < 62:
            sub_period: int | None = 1
        elif age >= 70:
            sub_period = None
        else:
            sub_period = sub_period_for_day((cursor - episode_start).days + 1, long_episode)

        code = select_rate_code(
            age,
            quarters,
            context.prior_condition,
            context.historical_rate_code,
            sub_period,
        )
        benefit_class = class_for_year(context, cursor.year)
        days = (end - cursor).days + 1

        reason_code: ReasonCode | None = None
        if 62 <= age < 70 and sub_period is None:
            rate = 0.0
            reason_code = ReasonCode.CUMULATIVE_CAP_REACHED
        elif context.forced_daily_rate is not None:
            rate = context.forced_daily_rate
        else:
            rate, reason_code = daily_rate(
                rate_table,
                cursor,
                code,
                benefit_class,
                context.status,
                option,
                age=age,
                long_episode=long_episode,
                pass_value=pass_for_year(context, cursor.year),
                reform_cutoff=reform_cutoff,
            )

        segment = RateSegment(
            year=cursor.year,
            month=cursor.month,
            quarter=quarter_of(cursor),
            affiliation_quarters=quarters,
            sub_period=sub_period,
            start=cursor,
            end=end,
            days=days,
            daily_rate=rate,
            rate_code=code,
            age=age,
            benefit_class=benefit_class,
            amount=days * rate,
            reason_code=reason_code,
        )
        LOGGER.debug(
            "Segment %s..%s: %s days, code %s, class %s, rate %s",
            segment.start,
            segment.end,
            segment.days,
            segment.rate_code,
            segment.benefit_class.value,
            segment.daily_rate,
        )
        segments.append(segment)
        cursor = end + timedelta(days=1)
    return segments


def daily_breakdown(segments: Iterable[RateSegment]) -> list[DailyEntry]:
    """Expand segments to one entry per calendar day."""

    entries: list[DailyEntry] = []
    for segment in segments:
        for day in iter_days(segment.start, segment.end):
            entries.append(
                DailyEntry(
                    day=day,
                    weekday=WEEKDAY_NAMES[day.weekday()],
                    year=day.year,
                    month=day.month,
                    quarter=quarter_of(day),
                    sub_period=segment.sub_period,
                    rate_code=segment.rate_code,
                    daily_rate=segment.daily_rate,
                    amount=round_currency(segment.daily_rate),
                    benefit_class=segment.benefit_class,
                )
            )
    return entries


def window_end_dates(
    first_entitlement: date | None,
    birth_date: date,
    as_of_date: date,
    prior_cumulative_days: int = 0,
) -> list[date]:
    """Last day of each entitlement window (365/730/1095 days) counted from the first entitlement date."""

    if first_entitlement is None:
        return []
    age_at_start = age_on(birth_date, first_entitlement)
    age_now = age_on(birth_date, as_of_date)
    if age_at_start >= 70:
        spans: tuple[int, ...] = (365,)
    elif age_now >= 70:
        spans = (365, 730)
    elif age_now >= 62:
        spans = SUB_PERIOD_LIMITS
    else:
        spans = ()
    return [
        first_entitlement + timedelta(days=span - prior_cumulative_days - 1)
        for span in spans
        if span > prior_cumulative_days
    ]


def compute(
    periods: Iterable[StoppagePeriod],
    context: ClaimContext,
    rate_table: RateTable,
    *,
    include_daily: bool = False,
    reform_cutoff: date = REFORM_CUTOFF,
) -> Result:
    """Compute entitlement dates, payable days and amounts for one claim."""

    option = validated_option(context.status, context.option) if context.enforce_option_rules else context.option

    enriched = compute_entitlement_dates(periods, context.birth_date, context.prior_cumulative_days)
    windows = compute_payable_windows(
        enriched,
        context.attestation_date,
        context.last_payment_date,
        as_of_date=context.as_of_date,
        birth_date=context.birth_date,
    )

    age = age_on(context.birth_date, context.as_of_date)
    quarters = gate_quarters(context)
    capped = apply_global_caps(
        windows,
        affiliation_quarters=quarters,
        prior_cumulative_days=context.prior_cumulative_days,
        age=age,
    )

    details: list[PaymentDetail] = []
    for detail in capped.details:
        segments = split_window(
            detail,
            enriched[detail.index],
            context,
            rate_table,
            option=option,
            reform_cutoff=reform_cutoff,
        )
        details.append(
            detail.model_copy(
                update={
                    "segments": segments,
                    "amount": round_currency(sum(segment.amount for segment in segments)),
                    "daily": daily_breakdown(segments) if include_daily else None,
                }
            )
        )

    total_amount = round_currency(sum(detail.amount for detail in details))
    if context.forced_daily_rate is not None:
        total_amount = round_currency(context.forced_daily_rate * capped.total_days)
    if context.prorata != 1:
        total_amount = round_currency(total_amount * context.prorata)

    result = Result(
        total_days=capped.total_days,
        total_amount=total_amount,
        payment_details=details,
        window_end_dates=window_end_dates(
            first_entitlement_date(enriched),
            context.birth_date,
            context.as_of_date,
            context.prior_cumulative_days,
        ),
        age=age,
        affiliation_quarters=quarters,
        total_cumulative_days=context.prior_cumulative_days + sum(period.duration or 0 for period in enriched),
        periods=enriched,
    )
    LOGGER.info(
        "Computed %s periods: %s payable days, amount %.2f",
        len(enriched),
        result.total_days,
        result.total_amount,
    )
    return result
