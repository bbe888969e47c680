"""
Insight analyzers.

Each analyzer is a pure function (GroupAnalysisInput) -> list[SmartInsight].
Analyzers never see each other's output and emit nothing when their
minimum-sample guard is not met.
"""

from typing import Callable, List, Tuple

from chatinsights.features.insights.models import (
    InsightMetadata,
    InsightPriority,
    InsightTrend,
    InsightType,
    SmartInsight,
)
from chatinsights.features.insights.statistics import (
    consistency_score,
    mean,
    percent_change,
    population_stddev,
    trend_slope,
)
from chatinsights.models.stats import GroupAnalysisInput

Analyzer = Callable[[GroupAnalysisInput], List[SmartInsight]]

# Minimum-sample guards
MIN_DAYS_ACTIVITY_PEAK = 3
MIN_DAYS_TREND = 7
MIN_DAYS_PER_BUCKET = 3
BUCKET_DAYS = 7
MIN_MEMBERS_CONCENTRATION = 5
MIN_MEMBERS_LEADERSHIP = 4
MIN_MEMBERS_DIVERSITY = 8


def _days_label(days: int) -> str:
    return f"Last {days} days"


def _insight(group: GroupAnalysisInput, **fields) -> SmartInsight:
    return SmartInsight(group_id=group.group_id, group_name=group.group_name, **fields)


def _active_days(group: GroupAnalysisInput) -> int:
    return sum(1 for day in group.daily_stats if day.total_messages > 0)


def analyze_activity_peak(group: GroupAnalysisInput) -> List[SmartInsight]:
    """Flag the strongest day above mean + 2 stddev, plus chronic inactivity."""
    total_days = group.total_days
    if total_days < MIN_DAYS_ACTIVITY_PEAK:
        return []

    messages = group.daily_messages()
    average = mean(messages)
    if average == 0:
        return []

    threshold = average + 2 * population_stddev(messages)
    peaks = [
        day for day in group.daily_stats
        if day.total_messages > threshold and day.total_messages > average * 1.5
    ]

    insights = []
    if peaks:
        highest = max(peaks, key=lambda day: day.total_messages)
        peak_value = highest.total_messages
        pct_above = (peak_value - average) / average * 100

        if pct_above > 50:
            if pct_above > 200:
                priority = InsightPriority.CRITICAL
            elif pct_above > 100:
                priority = InsightPriority.HIGH
            else:
                priority = InsightPriority.MEDIUM

            peak_date = highest.date.isoformat()
            insights.append(_insight(
                group,
                id=f"activity_peak_{group.group_id}",
                type=InsightType.ACTIVITY_PEAK,
                priority=priority,
                weight=min(round(80 + pct_above / 10), 100),
                title="Activity peak detected",
                description=(
                    f"Exceptional peak on {peak_date}: {peak_value} messages "
                    f"({pct_above:.0f}% above the average of {average:.1f} messages/day, "
                    f"threshold {threshold:.1f})."
                ),
                recommendation=(
                    f"Review what happened on {peak_date}: topics, posting times and events. "
                    "Document what drove the peak so it can be repeated on purpose."
                ),
                value=peak_value,
                change=round(pct_above),
                trend=InsightTrend.UP,
                actionable=True,
                metadata=InsightMetadata(
                    period=_days_label(total_days),
                    data_points=total_days,
                    confidence=min(85 + len(peaks) * 5, 95),
                    category="Activity",
                ),
            ))

    active_days = _active_days(group)
    active_ratio = active_days / total_days
    if active_ratio < 0.3 and total_days >= 7:
        insights.append(_insight(
            group,
            id=f"consistency_low_{group.group_id}",
            type=InsightType.ENGAGEMENT_PATTERN,
            priority=InsightPriority.MEDIUM,
            weight=65,
            title="Inconsistent activity",
            description=(
                f"Irregular activity: only {active_days} of {total_days} days "
                f"({active_ratio * 100:.0f}%) had any messages, averaging {average:.1f} messages/day."
            ),
            recommendation="Create a regular rhythm: scheduled posts, weekly topics or daily prompts.",
            value=round(active_ratio * 100),
            trend=InsightTrend.WARNING,
            actionable=True,
            metadata=InsightMetadata(
                period=_days_label(total_days),
                data_points=total_days,
                confidence=80,
                category="Engagement",
            ),
        ))

    return insights


def _weekly_buckets(group: GroupAnalysisInput) -> List[Tuple[float, float]]:
    """(mean daily messages, mean daily active members) per 7-day bucket."""
    buckets = []
    stats = group.daily_stats
    for start in range(0, len(stats), BUCKET_DAYS):
        chunk = stats[start:start + BUCKET_DAYS]
        if len(chunk) < MIN_DAYS_PER_BUCKET:
            continue
        buckets.append((
            mean([day.total_messages for day in chunk]),
            mean([day.active_members for day in chunk]),
        ))
    return buckets


def analyze_growth_trend(group: GroupAnalysisInput) -> List[SmartInsight]:
    """Compare the last week against prior weeks and fit a weekly slope."""
    if group.total_days < MIN_DAYS_TREND:
        return []

    buckets = _weekly_buckets(group)
    if len(buckets) < 2:
        return []

    last_messages, last_members = buckets[-1]
    previous = buckets[:-1]
    prev_messages = mean([b[0] for b in previous])
    growth = percent_change(last_messages, prev_messages)
    weekly_trend = trend_slope([b[0] for b in buckets])

    weeks = len(buckets)
    metadata_kwargs = dict(period=f"Last {weeks} weeks", data_points=weeks, category="Growth")

    if growth > 20 and weekly_trend > 0.5:
        return [_insight(
            group,
            id=f"growth_accelerating_{group.group_id}",
            type=InsightType.GROWTH_TREND,
            priority=InsightPriority.HIGH,
            weight=88,
            title="Accelerating growth",
            description=(
                f"Activity rose {growth:.1f}% in the last week versus the historical weekly average "
                f"({last_messages:.1f} vs {prev_messages:.1f} messages/day, slope {weekly_trend:.2f}). "
                f"{last_members:.1f} active members/day this week."
            ),
            recommendation="Capitalize on the momentum: identify what drove the growth and keep feeding it.",
            value=round(growth),
            change=round(growth),
            trend=InsightTrend.UP,
            actionable=True,
            metadata=InsightMetadata(confidence=90, **metadata_kwargs),
        )]
    elif growth < -20 and weekly_trend < -0.5:
        return [_insight(
            group,
            id=f"growth_declining_{group.group_id}",
            type=InsightType.GROWTH_TREND,
            priority=InsightPriority.CRITICAL,
            weight=92,
            title="Activity declining",
            description=(
                f"Activity fell {abs(growth):.1f}% in the last week: {last_messages:.1f} messages/day "
                f"versus {prev_messages:.1f} in previous weeks (slope {weekly_trend:.2f})."
            ),
            recommendation="Intervene now: find the cause of the decline and start a recovery plan before it settles in.",
            value=round(abs(growth)),
            change=round(growth),
            trend=InsightTrend.DOWN,
            actionable=True,
            metadata=InsightMetadata(confidence=95, **metadata_kwargs),
        )]
    elif abs(weekly_trend) < 0.3 and last_messages > 3:
        return [_insight(
            group,
            id=f"growth_steady_{group.group_id}",
            type=InsightType.GROWTH_TREND,
            priority=InsightPriority.MEDIUM,
            weight=70,
            title="Steady, sustainable activity",
            description=(
                f"Stable activity: {growth:.1f}% change with a flat weekly slope of {weekly_trend:.2f}. "
                f"Consistent average of {last_messages:.1f} messages/day."
            ),
            recommendation="Use this stable base to try new engagement ideas without risk of disruption.",
            value=round(abs(growth)),
            change=round(growth),
            trend=InsightTrend.STABLE,
            actionable=True,
            metadata=InsightMetadata(confidence=85, **metadata_kwargs),
        )]
    return []


def analyze_engagement_pattern(group: GroupAnalysisInput) -> List[SmartInsight]:
    """Compare the first and second half of the window."""
    total_days = group.total_days
    if total_days < MIN_DAYS_TREND:
        return []

    half = total_days // 2
    first_half = group.daily_stats[:half]
    second_half = group.daily_stats[half:]
    if not first_half or not second_half:
        return []

    first_avg = mean([day.total_messages for day in first_half])
    second_avg = mean([day.total_messages for day in second_half])
    first_members = mean([day.active_members for day in first_half])
    second_members = mean([day.active_members for day in second_half])

    message_trend = percent_change(second_avg, first_avg)
    member_trend = percent_change(second_members, first_members)
    consistency = _active_days(group) / total_days * 100

    metadata_kwargs = dict(period=_days_label(total_days), data_points=total_days)

    if message_trend > 15 and member_trend > 0:
        return [_insight(
            group,
            id=f"engagement_growing_{group.group_id}",
            type=InsightType.ENGAGEMENT_PATTERN,
            priority=InsightPriority.HIGH,
            weight=85,
            title="Engagement growing",
            description=(
                f"Activity grew {message_trend:.1f}% between the two halves of the period: "
                f"{second_avg:.1f} messages/day versus {first_avg:.1f} before, with active members up "
                f"{member_trend:.1f}%. Activity on {consistency:.0f}% of days."
            ),
            recommendation="Good moment to expand: introduce new topics or invite qualified members.",
            value=round(message_trend),
            change=round(message_trend),
            trend=InsightTrend.UP,
            actionable=True,
            metadata=InsightMetadata(confidence=90, category="Engagement", **metadata_kwargs),
        )]
    elif message_trend < -15:
        return [_insight(
            group,
            id=f"engagement_declining_{group.group_id}",
            type=InsightType.PARTICIPATION_DECLINE,
            priority=InsightPriority.CRITICAL,
            weight=95,
            title="Participation declining",
            description=(
                f"Activity dropped {abs(message_trend):.1f}% between the two halves of the period: "
                f"{second_avg:.1f} messages/day now versus {first_avg:.1f} before."
            ),
            recommendation=(
                "Act now: revisit the kind of content shared, run re-activation prompts and ask "
                "members what they need from the group."
            ),
            value=round(abs(message_trend)),
            change=round(message_trend),
            trend=InsightTrend.DOWN,
            actionable=True,
            metadata=InsightMetadata(confidence=95, category="Participation", **metadata_kwargs),
        )]
    elif consistency > 80 and second_avg > 5:
        return [_insight(
            group,
            id=f"engagement_stable_{group.group_id}",
            type=InsightType.ENGAGEMENT_PATTERN,
            priority=InsightPriority.MEDIUM,
            weight=75,
            title="Stable engagement",
            description=(
                f"Consistent performance: {second_avg:.1f} messages/day with activity on "
                f"{consistency:.0f}% of days and a {message_trend:.1f}% change between halves."
            ),
            recommendation="A stable group is the right place to test new engagement strategies.",
            value=round(consistency),
            change=round(message_trend),
            trend=InsightTrend.STABLE,
            actionable=True,
            metadata=InsightMetadata(confidence=85, category="Engagement", **metadata_kwargs),
        )]
    return []


def analyze_member_concentration(group: GroupAnalysisInput) -> List[SmartInsight]:
    """Share of all messages sent by the three most active members."""
    members = group.member_stats
    if len(members) < MIN_MEMBERS_CONCENTRATION:
        return []

    total = sum(m.message_count for m in members)
    if total == 0:
        return []

    ranked = sorted(members, key=lambda m: m.message_count, reverse=True)
    top3 = sum(m.message_count for m in ranked[:3])
    top5 = sum(m.message_count for m in ranked[:5])
    ratio = top3 / total * 100
    top5_ratio = top5 / total * 100
    leader = ranked[0]

    metadata = InsightMetadata(
        period=_days_label(group.period.days),
        data_points=len(members),
        confidence=95,
        category="Distribution",
    )

    if ratio > 70:
        return [_insight(
            group,
            id=f"concentration_extreme_{group.group_id}",
            type=InsightType.MEMBER_CONCENTRATION,
            priority=InsightPriority.CRITICAL,
            weight=85,
            title="Extreme concentration of activity",
            description=(
                f"Only 3 members account for {ratio:.0f}% of the conversation ({top3} of {total} messages). "
                f"{leader.name} leads with {leader.message_count:,} messages. This can keep other members quiet."
            ),
            recommendation=(
                "Diversify: rotate topics, share moderation and ask silent members direct questions. "
                "Consider themed sub-groups."
            ),
            value=round(ratio),
            trend=InsightTrend.CRITICAL,
            actionable=True,
            metadata=metadata,
        )]
    elif ratio < 35:
        return [_insight(
            group,
            id=f"distribution_excellent_{group.group_id}",
            type=InsightType.MEMBER_CONCENTRATION,
            priority=InsightPriority.HIGH,
            weight=80,
            title="Ideal distribution of participation",
            description=(
                f"The top 3 members send only {ratio:.0f}% of messages and the top 5 reach {top5_ratio:.0f}% "
                f"across {len(members)} members. Balanced participation maximizes collective engagement."
            ),
            recommendation="Keep current practices and use this group as a benchmark for others.",
            value=round(ratio),
            trend=InsightTrend.UP,
            actionable=False,
            metadata=metadata,
        )]
    return []


def analyze_time_pattern(group: GroupAnalysisInput) -> List[SmartInsight]:
    """Find the hour of day where activity concentrates."""
    hourly: dict = {}
    for day in group.daily_stats:
        for hour, count in day.hourly_activity.items():
            hourly[hour] = hourly.get(hour, 0) + count

    total = sum(hourly.values())
    if total == 0:
        return []

    top_hours = sorted(hourly.items(), key=lambda item: (-item[1], item[0]))[:3]
    peak_hour, peak_count = top_hours[0]
    share = peak_count / total * 100

    if share > 12 and peak_count > 15:
        hours_text = ", ".join(f"{hour}h" for hour, _ in top_hours)
        return [_insight(
            group,
            id=f"time_pattern_{group.group_id}",
            type=InsightType.TIME_PATTERN,
            priority=InsightPriority.MEDIUM,
            weight=75,
            title="Peak activity window",
            description=(
                f"{share:.1f}% of activity happens at {peak_hour}h with {peak_count:,} messages. "
                f"The top hours ({hours_text}) capture most of the engagement."
            ),
            recommendation="Schedule announcements and high-priority content for these hours.",
            value=f"{peak_hour}:00",
            change=round(share),
            trend=InsightTrend.STABLE,
            actionable=True,
            metadata=InsightMetadata(
                period=_days_label(group.period.days),
                data_points=len(hourly),
                confidence=85,
                category="Temporal",
            ),
        )]
    return []


def analyze_content_quality(group: GroupAnalysisInput) -> List[SmartInsight]:
    """Average words per text message across all members."""
    members = group.member_stats
    total_messages = sum(m.message_count for m in members)
    if total_messages == 0:
        return []

    total_words = sum(m.word_count for m in members)
    total_media = sum(m.media_count for m in members)
    text_messages = total_messages - total_media
    avg_words = total_words / text_messages if text_messages > 0 else 0.0
    media_ratio = total_media / total_messages * 100

    metadata_kwargs = dict(period=_days_label(group.period.days), data_points=text_messages, category="Quality")

    if avg_words > 20:
        return [_insight(
            group,
            id=f"content_premium_{group.group_id}",
            type=InsightType.CONTENT_QUALITY,
            priority=InsightPriority.HIGH,
            weight=78,
            title="High-value conversations",
            description=(
                f"{avg_words:.1f} words per text message point to in-depth discussion, "
                f"with {100 - media_ratio:.1f}% text and {media_ratio:.1f}% media."
            ),
            recommendation="Keep encouraging deep discussion; weekly discussion topics help sustain it.",
            value=round(avg_words, 1),
            trend=InsightTrend.UP,
            actionable=False,
            metadata=InsightMetadata(confidence=90, **metadata_kwargs),
        )]
    elif avg_words < 6:
        return [_insight(
            group,
            id=f"content_superficial_{group.group_id}",
            type=InsightType.CONTENT_QUALITY,
            priority=InsightPriority.MEDIUM,
            weight=65,
            title="Opportunity for depth",
            description=(
                f"Only {avg_words:.1f} words per text message suggest superficial exchanges. "
                f"With {media_ratio:.1f}% media there is room for richer discussion."
            ),
            recommendation="Ask open questions, run structured debates and share content that invites opinions.",
            value=round(avg_words, 1),
            trend=InsightTrend.WARNING,
            actionable=True,
            metadata=InsightMetadata(confidence=85, **metadata_kwargs),
        )]
    return []


def analyze_consistency(group: GroupAnalysisInput) -> List[SmartInsight]:
    """Predictability of daily activity. Both checks run independently."""
    total_days = group.total_days
    if total_days < MIN_DAYS_TREND:
        return []

    consistency = consistency_score(group.daily_messages())
    active_days = _active_days(group)
    frequency = active_days / total_days * 100

    metadata = InsightMetadata(
        period=_days_label(total_days),
        data_points=total_days,
        confidence=95,
        category="Health",
    )

    insights = []
    if consistency > 75 and frequency > 85:
        insights.append(_insight(
            group,
            id=f"consistency_exceptional_{group.group_id}",
            type=InsightType.GROUP_HEALTH,
            priority=InsightPriority.HIGH,
            weight=82,
            title="Exceptional consistency",
            description=(
                f"Activity on {active_days} of {total_days} days ({frequency:.0f}%) "
                f"with a predictability score of {consistency:.0f}%."
            ),
            recommendation="Document the habits behind this regularity so other groups can reuse them.",
            value=round(consistency),
            change=round(frequency),
            trend=InsightTrend.UP,
            actionable=False,
            metadata=metadata,
        ))
    if frequency < 60:
        insights.append(_insight(
            group,
            id=f"consistency_critical_{group.group_id}",
            type=InsightType.GROUP_HEALTH,
            priority=InsightPriority.CRITICAL,
            weight=90,
            title="Critical inconsistency",
            description=(
                f"Sporadic activity on only {active_days} of {total_days} days ({frequency:.0f}%), "
                f"predictability score {consistency:.0f}%. Irregularity erodes perceived value."
            ),
            recommendation=(
                "Set a regular content calendar, automate recurring posts and name people "
                "responsible for a minimum of daily activity."
            ),
            value=round(frequency),
            change=round(consistency),
            trend=InsightTrend.CRITICAL,
            actionable=True,
            metadata=metadata,
        ))
    return insights


def analyze_anomalies(group: GroupAnalysisInput) -> List[SmartInsight]:
    """Report the first day deviating more than 2.5 stddev from the mean."""
    total_days = group.total_days
    if total_days < MIN_DAYS_TREND:
        return []

    messages = group.daily_messages()
    average = mean(messages)
    if average == 0:
        return []
    stddev = population_stddev(messages)
    if stddev == 0:
        return []

    anomalies = [
        day for day in group.daily_stats
        if abs(day.total_messages - average) > 2.5 * stddev and day.total_messages > 0
    ]
    if not anomalies:
        return []

    # Input order, not magnitude order.
    anomaly = anomalies[0]
    deviation = round((anomaly.total_messages - average) / average * 100)
    is_positive = anomaly.total_messages > average
    day = anomaly.date.isoformat()

    return [_insight(
        group,
        id=f"anomaly_{group.group_id}",
        type=InsightType.ANOMALY_DETECTION,
        priority=InsightPriority.MEDIUM,
        weight=73,
        title="Extraordinary event detected" if is_positive else "Anomalous activity identified",
        description=(
            f"On {day} activity was {abs(deviation)}% {'above' if is_positive else 'below'} the usual pattern: "
            f"{anomaly.total_messages:,} messages versus a mean of {average:.0f} (stddev {stddev:.1f})."
        ),
        recommendation=(
            "Study what caused this spike to build repeatable engagement strategies."
            if is_positive else
            "Find out what caused this drop to prevent it from happening again."
        ),
        value=anomaly.total_messages,
        change=deviation,
        trend=InsightTrend.UP if is_positive else InsightTrend.DOWN,
        actionable=True,
        metadata=InsightMetadata(
            period=_days_label(total_days),
            data_points=total_days,
            confidence=88,
            category="Anomaly",
        ),
    )]


def analyze_leadership(group: GroupAnalysisInput) -> List[SmartInsight]:
    """A single member far ahead of the runner-up."""
    members = group.member_stats
    if len(members) < MIN_MEMBERS_LEADERSHIP:
        return []

    ranked = sorted(members, key=lambda m: m.message_count, reverse=True)
    leader, second = ranked[0], ranked[1]
    if second.message_count == 0:
        return []

    gap = (leader.message_count - second.message_count) / second.message_count * 100
    total = sum(m.message_count for m in members)
    leader_share = leader.message_count / total * 100

    if gap > 75 and leader.message_count > 30 and leader_share > 20:
        return [_insight(
            group,
            id=f"leadership_natural_{group.group_id}",
            type=InsightType.LEADERSHIP_EMERGENCE,
            priority=InsightPriority.HIGH,
            weight=77,
            title="Natural leadership",
            description=(
                f"{leader.name} leads with {leader.message_count:,} messages ({leader_share:.0f}% of the total), "
                f"{gap:.0f}% ahead of {second.name} ({second.message_count:,})."
            ),
            recommendation=(
                f"Offer {leader.name} co-moderation, mentoring of new members or ownership of special projects."
            ),
            value=leader.message_count,
            change=round(gap),
            trend=InsightTrend.UP,
            actionable=True,
            metadata=InsightMetadata(
                period=_days_label(group.period.days),
                data_points=len(members),
                confidence=92,
                category="Leadership",
            ),
        )]
    return []


def analyze_member_diversity(group: GroupAnalysisInput) -> List[SmartInsight]:
    """Balance of low, medium and high participation tiers."""
    members = group.member_stats
    if len(members) < MIN_MEMBERS_DIVERSITY:
        return []

    active = [m for m in members if m.message_count > 0]
    if not active:
        return []

    total = sum(m.message_count for m in members)
    avg_per_member = total / len(active)
    low_threshold = avg_per_member * 0.25
    high_threshold = avg_per_member * 2

    high = sum(1 for m in members if m.message_count >= high_threshold)
    medium = sum(1 for m in members if low_threshold <= m.message_count < high_threshold)
    low = sum(1 for m in members if 0 < m.message_count < low_threshold)

    medium_ratio = medium / len(active) * 100
    diversity_index = 100 - abs(50 - medium_ratio)

    if diversity_index > 75 and medium >= 4:
        return [_insight(
            group,
            id=f"diversity_optimal_{group.group_id}",
            type=InsightType.MEMBER_CONCENTRATION,
            priority=InsightPriority.HIGH,
            weight=83,
            title="Balanced ecosystem",
            description=(
                f"{high} highly active members, {medium} moderately engaged and {low} occasional "
                f"participants (diversity index {diversity_index:.0f}%, {medium_ratio:.0f}% in the middle tier)."
            ),
            recommendation="Preserve this balance and watch that no tier starts to dominate.",
            value=round(diversity_index),
            change=round(medium_ratio),
            trend=InsightTrend.UP,
            actionable=False,
            metadata=InsightMetadata(
                period=_days_label(group.period.days),
                data_points=len(active),
                confidence=88,
                category="Distribution",
            ),
        )]
    return []


ANALYZERS: Tuple[Tuple[str, Analyzer], ...] = (
    ("activity_peak", analyze_activity_peak),
    ("growth_trend", analyze_growth_trend),
    ("engagement_pattern", analyze_engagement_pattern),
    ("member_concentration", analyze_member_concentration),
    ("time_pattern", analyze_time_pattern),
    ("content_quality", analyze_content_quality),
    ("consistency", analyze_consistency),
    ("anomaly_detection", analyze_anomalies),
    ("leadership_emergence", analyze_leadership),
    ("member_diversity", analyze_member_diversity),
)
