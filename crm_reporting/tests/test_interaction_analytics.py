"""
Test suite for the interaction analytics service.

Covers date and equality filtering, type percentages, the principal and
segment joins, the fixed 30-day timeline and gateway failure wrapping.
"""

from datetime import date, datetime, timezone

from pydantic import ValidationError
import pytest

from crm_reporting.core.exceptions import InteractionReportError
from crm_reporting.models.schemas import Interaction, InteractionReportParams, parse_records
from crm_reporting.services.interaction_analytics import (
    TIMELINE_DAYS,
    build_timeline,
    compute_interaction_metrics,
    filter_interactions,
    generate_interaction_report,
)
from crm_reporting.tests.conftest import NOW, days_ago, make_failing_gateway, make_gateway


def _ids(interactions):
    return sorted(i.id for i in interactions)


class TestFilterInteractions:

    def test_no_filters_keeps_everything(self, sample_interactions):
        interactions = parse_records(Interaction, sample_interactions)
        assert len(filter_interactions(interactions)) == 5

    def test_start_date_is_inclusive(self, sample_interactions):
        interactions = parse_records(Interaction, sample_interactions)
        filtered = filter_interactions(interactions, start_date=days_ago(30))
        assert _ids(filtered) == [1002, 1003, 1004]

    def test_end_date_is_inclusive(self, sample_interactions):
        interactions = parse_records(Interaction, sample_interactions)
        filtered = filter_interactions(interactions, end_date=days_ago(30))
        assert _ids(filtered) == [1000, 1001, 1004]

    def test_naive_bounds_are_read_as_utc(self, sample_interactions):
        interactions = parse_records(Interaction, sample_interactions)
        naive_start = days_ago(10).replace(tzinfo=None)
        assert _ids(filter_interactions(interactions, start_date=naive_start)) == [1002, 1003]

    def test_equality_filters(self, sample_interactions):
        interactions = parse_records(Interaction, sample_interactions)

        assert _ids(filter_interactions(interactions, extra_filters={"organizationId": 1})) == [1000, 1001]
        assert _ids(filter_interactions(interactions, extra_filters={"typeId": 31})) == [1001, 1002]
        assert _ids(filter_interactions(interactions, extra_filters={"contactId": 102})) == [1002]

    def test_none_filter_values_are_ignored(self, sample_interactions):
        interactions = parse_records(Interaction, sample_interactions)
        filtered = filter_interactions(interactions, extra_filters={"organizationId": None, "typeId": None})
        assert len(filtered) == 5

    def test_filters_combine_after_date_window(self, sample_interactions):
        interactions = parse_records(Interaction, sample_interactions)
        filtered = filter_interactions(
            interactions,
            start_date=days_ago(60),
            extra_filters={"organizationId": 1},
        )
        assert _ids(filtered) == [1000]

    def test_unknown_filter_is_rejected(self, sample_interactions):
        interactions = parse_records(Interaction, sample_interactions)
        with pytest.raises(ValueError):
            filter_interactions(interactions, extra_filters={"subject": "x"})


class TestComputeInteractionMetrics:

    def test_type_breakdown(self, sample_interactions, sample_settings):
        metrics = compute_interaction_metrics(sample_interactions, sample_settings, now=NOW)

        by_type = {row.type: (row.count, row.percentage) for row in metrics.byType}
        assert by_type == {"Visit": (2, 40.0), "Call": (2, 40.0), "Email": (1, 20.0)}

    def test_percentages_round_to_two_decimals(self, sample_settings):
        interactions = [
            {"id": 1, "typeId": 30, "createdAt": NOW},
            {"id": 2, "typeId": 31, "createdAt": NOW},
            {"id": 3, "typeId": 31, "createdAt": NOW},
        ]
        metrics = compute_interaction_metrics(interactions, sample_settings, now=NOW)

        by_type = {row.type: row.percentage for row in metrics.byType}
        assert by_type["Visit"] == 33.33
        assert by_type["Call"] == 66.67
        assert by_type["Email"] == 0

    def test_empty_filtered_set_has_zero_percentages(self, sample_interactions, sample_settings):
        metrics = compute_interaction_metrics(
            sample_interactions,
            sample_settings,
            extra_filters={"organizationId": 999},
            now=NOW,
        )

        assert len(metrics.byType) == 3
        assert all(row.count == 0 and row.percentage == 0 for row in metrics.byType)

    def test_principal_breakdown(self, sample_interactions, sample_settings, sample_deals):
        metrics = compute_interaction_metrics(
            sample_interactions, sample_settings, deals=sample_deals, now=NOW
        )

        by_principal = {row.principal: (row.count, row.conversionRate) for row in metrics.byPrincipal}
        assert by_principal == {"Acme Foods": (2, 50.0), "Globex": (1, 100.0)}

    def test_segment_breakdown(
        self, sample_interactions, sample_settings, sample_organizations, sample_deals
    ):
        metrics = compute_interaction_metrics(
            sample_interactions,
            sample_settings,
            organizations=sample_organizations,
            deals=sample_deals,
            now=NOW,
        )

        by_segment = {row.segment: (row.count, row.averageValue) for row in metrics.bySegment}
        assert by_segment == {"Fine Dining": (3, 1333.33), "Casual Dining": (2, 500.0)}

    def test_segment_without_deals_averages_zero(self, sample_interactions, sample_settings, sample_organizations):
        metrics = compute_interaction_metrics(
            sample_interactions, sample_settings, organizations=sample_organizations, now=NOW
        )
        assert all(row.averageValue == 0 for row in metrics.bySegment)

    def test_breakdowns_are_deterministic(
        self, sample_interactions, sample_settings, sample_organizations, sample_deals
    ):
        first = compute_interaction_metrics(
            sample_interactions, sample_settings, organizations=sample_organizations,
            deals=sample_deals, now=NOW,
        )
        second = compute_interaction_metrics(
            sample_interactions, sample_settings, organizations=sample_organizations,
            deals=sample_deals, now=NOW,
        )
        assert first == second

    def test_empty_inputs(self):
        metrics = compute_interaction_metrics(None, None, now=NOW)

        assert metrics.byType == []
        assert metrics.byPrincipal == []
        assert metrics.bySegment == []
        assert len(metrics.timeline) == TIMELINE_DAYS


class TestTimeline:

    def test_always_thirty_entries_oldest_first(self):
        timeline = build_timeline([], now=NOW)

        assert len(timeline) == 30
        assert timeline[0].date == date(2026, 9, 19)
        assert timeline[-1].date == date(2026, 10, 18)
        assert all(entry.count == 0 and entry.completed == 0 for entry in timeline)

    def test_buckets_by_calendar_day(self, sample_interactions, sample_settings):
        metrics = compute_interaction_metrics(sample_interactions, sample_settings, now=NOW)
        by_day = {entry.date: (entry.count, entry.completed) for entry in metrics.timeline}

        assert by_day[date(2026, 10, 18)] == (1, 0)
        assert by_day[date(2026, 10, 16)] == (1, 1)
        # 30 days ago falls one day before the window
        assert date(2026, 9, 18) not in by_day
        assert sum(entry.count for entry in metrics.timeline) == 2

    def test_time_of_day_is_ignored(self):
        interactions = parse_records(Interaction, [
            {"id": 1, "createdAt": datetime(2026, 10, 17, 0, 0, 1, tzinfo=timezone.utc), "isCompleted": True},
            {"id": 2, "createdAt": datetime(2026, 10, 17, 23, 59, 59, tzinfo=timezone.utc)},
        ])
        timeline = build_timeline(interactions, now=NOW)

        assert timeline[-2].date == date(2026, 10, 17)
        assert (timeline[-2].count, timeline[-2].completed) == (2, 1)

    def test_length_is_independent_of_date_window(self, sample_interactions, sample_settings):
        metrics = compute_interaction_metrics(
            sample_interactions,
            sample_settings,
            start_date=days_ago(3),
            end_date=days_ago(1),
            now=NOW,
        )
        assert len(metrics.timeline) == 30
        assert metrics.timeline[-1].date == NOW.date()


class TestGenerateInteractionReport:

    @pytest.mark.asyncio
    async def test_passes_params_through(self, mock_gateway, test_settings):
        params = InteractionReportParams(organizationId=2)

        metrics = await generate_interaction_report(mock_gateway, params, test_settings, now=NOW)

        by_type = {row.type: row.count for row in metrics.byType}
        assert by_type == {"Visit": 0, "Call": 1, "Email": 1}

    @pytest.mark.asyncio
    async def test_settings_read_uses_settings_cap(self, mock_gateway, test_settings):
        await generate_interaction_report(mock_gateway, None, test_settings, now=NOW)

        caps = {call.args[0]: call.args[1].pagination.perPage for call in mock_gateway.get_list.call_args_list}
        assert caps["settings"] == test_settings.settings_page_cap
        assert caps["interactions"] == test_settings.list_page_cap

    @pytest.mark.asyncio
    async def test_gateway_failure_is_wrapped(self, test_settings):
        with pytest.raises(InteractionReportError, match="Failed to generate interaction report"):
            await generate_interaction_report(make_failing_gateway("interactions"), None, test_settings)

    @pytest.mark.asyncio
    async def test_unparseable_record_is_wrapped(self, test_settings):
        gateway = make_gateway({"deals": [{"id": 1, "amount": "lots"}]})

        with pytest.raises(InteractionReportError) as exc_info:
            await generate_interaction_report(gateway, None, test_settings, now=NOW)

        assert isinstance(exc_info.value.__cause__, ValidationError)

    @pytest.mark.asyncio
    async def test_null_columns_do_not_abort_the_report(self, test_settings):
        gateway = make_gateway({
            "settings": [
                {"id": 30, "category": "interaction_type", "key": None, "label": None, "sortOrder": None, "active": None},
            ],
            "organizations": [{"id": 1, "name": None, "segmentId": None}],
            "interactions": [
                {"id": 1, "organizationId": 1, "typeId": 30, "createdAt": days_ago(1), "isCompleted": None},
            ],
        })

        metrics = await generate_interaction_report(gateway, None, test_settings, now=NOW)

        assert [(row.type, row.count) for row in metrics.byType] == [("", 1)]
        assert metrics.timeline[-2].count == 1
        assert metrics.timeline[-2].completed == 0
