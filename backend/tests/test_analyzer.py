"""Tests for the LLM meeting analyzer and its fallback."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from omniscope.constants import MEETING_INTELLIGENCE_SCHEMA, MEETING_INTELLIGENCE_SCHEMA_NAME
from omniscope.models import AnalyzedActionItem, FathomPayload, MeetingAnalysis
from omniscope.services.analyzer import (
    MeetingAnalyzer,
    default_due_date,
    fallback_analysis,
)

COMPOUND_ITEM = "Create group chat w/ Hassan & Jake; prompt Hassan for deck + visuals"


@pytest.fixture
def payload(fathom_payload) -> FathomPayload:
    return FathomPayload.model_validate(fathom_payload)


class TestDueDates:
    """Tests for the default due date."""

    def test_two_days_out(self, fixed_now):
        assert default_due_date(fixed_now) == "2026-03-03"

    def test_uses_utc_date(self):
        # 23:00 in UTC-5 is already the next day in UTC
        local = datetime(2026, 3, 1, 23, 0, tzinfo=timezone(timedelta(hours=-5)))
        assert default_due_date(local) == "2026-03-04"

    @pytest.mark.asyncio
    async def test_real_clock(self, make_analyzer, payload):
        analyzer = MeetingAnalyzer(make_analyzer(error="offline").extractor)

        analysis = await analyzer.analyze(payload)

        expected = (datetime.now(timezone.utc) + timedelta(days=2)).date().isoformat()
        assert analysis.action_items[0].due_date == expected


class TestSuccessfulAnalysis:
    """Tests for analysis when the provider returns schema-valid output."""

    @pytest.mark.asyncio
    async def test_compound_item_split(self, make_analyzer, llm_analysis, payload):
        analyzer = make_analyzer(data=llm_analysis)

        analysis = await analyzer.analyze(payload)

        assert len(analysis.action_items) == 2
        assert analysis.meeting_type == "Partnership"
        assert analysis.sectors == ["Stablecoin Liquidity"]

    @pytest.mark.asyncio
    async def test_action_items_normalized(self, make_analyzer, llm_analysis, payload):
        analyzer = make_analyzer(data=llm_analysis)

        analysis = await analyzer.analyze(payload)
        first, second = analysis.action_items

        assert first.due_date == "2026-03-05"
        assert first.priority == "high"
        assert len(second.title) <= 80
        assert second.priority == "medium"
        assert second.due_date == "2026-03-03"

    @pytest.mark.asyncio
    async def test_prompt_and_schema(self, make_analyzer, llm_analysis, payload):
        analyzer = make_analyzer(data=llm_analysis)

        await analyzer.analyze(payload)
        call = analyzer.extractor.calls[0]

        assert call["schema_name"] == MEETING_INTELLIGENCE_SCHEMA_NAME
        assert call["schema"] is MEETING_INTELLIGENCE_SCHEMA
        assert "2026-03-03" in call["system_prompt"]
        assert "Hassan x Jake" in call["user_prompt"]
        assert "Fathom assignee: Junaid Qureshi" in call["user_prompt"]
        assert "[00:00:05] Jake Morrison: Happy to be here." in call["user_prompt"]

    @pytest.mark.asyncio
    async def test_long_transcript_truncated_in_prompt(self, make_analyzer, llm_analysis, fathom_payload):
        fathom_payload["transcript"] = [
            {"speaker": {"display_name": "Speaker"}, "text": "x" * 500, "timestamp": f"00:{i:02d}:00"}
            for i in range(30)
        ]
        analyzer = make_analyzer(data=llm_analysis)

        await analyzer.analyze(FathomPayload.model_validate(fathom_payload))

        assert "[Transcript truncated for analysis...]" in analyzer.extractor.calls[0]["user_prompt"]

    @pytest.mark.asyncio
    async def test_blank_summary_replaced(self, make_analyzer, llm_analysis, payload):
        llm_analysis["executiveSummary"] = "  "
        analyzer = make_analyzer(data=llm_analysis)

        analysis = await analyzer.analyze(payload)

        assert analysis.executive_summary == payload.summary_text

    @pytest.mark.asyncio
    async def test_unknown_meeting_type_falls_back(self, make_analyzer, llm_analysis, payload):
        llm_analysis["meetingType"] = "Investor Pitch"
        analyzer = make_analyzer(data=llm_analysis)

        analysis = await analyzer.analyze(payload)

        assert analysis.meeting_type == "General"
        assert len(analysis.action_items) == 2


class TestFallback:
    """Tests for the deterministic fallback path."""

    @pytest.mark.asyncio
    async def test_extractor_raises(self, make_analyzer, payload):
        analyzer = make_analyzer(exc=RuntimeError("connection reset"))

        analysis = await analyzer.analyze(payload)

        assert analysis.sectors == ["General"]
        assert analysis.meeting_type == "General"
        assert len(analysis.action_items) == 1
        assert analysis.action_items[0].title == COMPOUND_ITEM
        assert analysis.action_items[0].assigned_to == "Junaid Qureshi"
        assert analysis.action_items[0].due_date == "2026-03-03"

    @pytest.mark.asyncio
    async def test_extractor_failure(self, make_analyzer, payload):
        analyzer = make_analyzer(error="Model refused or returned nothing: policy")

        analysis = await analyzer.analyze(payload)

        assert analysis.sectors == ["General"]
        assert analysis.executive_summary == payload.summary_text

    @pytest.mark.asyncio
    async def test_timeout(self, make_analyzer, llm_analysis, payload):
        analyzer = make_analyzer(data=llm_analysis, delay=1.0, timeout=0.05)

        analysis = await analyzer.analyze(payload)

        assert analysis.sectors == ["General"]

    @pytest.mark.asyncio
    async def test_schema_mismatch(self, make_analyzer, payload):
        analyzer = make_analyzer(data={"executiveSummary": "Only a summary"})

        analysis = await analyzer.analyze(payload)

        assert analysis.sectors == ["General"]
        assert len(analysis.action_items) == 1

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, make_analyzer, llm_analysis, payload):
        analyzer = make_analyzer(data=llm_analysis, delay=5.0, timeout=None)

        task = asyncio.create_task(analyzer.analyze(payload))
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

    def test_summary_synthesized_without_vendor_summary(self, fathom_payload, fixed_now):
        del fathom_payload["default_summary"]
        payload = FathomPayload.model_validate(fathom_payload)

        analysis = fallback_analysis(payload, default_due_date(fixed_now))

        assert analysis.executive_summary == (
            'Meeting "Hassan x Jake" with Junaid Qureshi, Hassan, Jake Morrison.'
        )

    def test_long_vendor_item_title_truncated(self, fathom_payload, fixed_now):
        fathom_payload["action_items"][0]["description"] = "Follow up " * 20
        fathom_payload["action_items"][0]["assignee"] = None
        payload = FathomPayload.model_validate(fathom_payload)

        item = fallback_analysis(payload, default_due_date(fixed_now)).action_items[0]

        assert len(item.title) <= 80
        assert item.description == "Follow up " * 20
        assert item.assigned_to == "Unassigned"
        assert item.priority == "medium"

    def test_no_vendor_items(self, fathom_payload, fixed_now):
        del fathom_payload["action_items"]
        payload = FathomPayload.model_validate(fathom_payload)

        assert fallback_analysis(payload, default_due_date(fixed_now)).action_items == []


class TestActionItemModel:
    """Tests for action item normalization on construction."""

    @pytest.mark.parametrize("raw,expected", [("HIGH", "high"), ("Low", "low"), ("urgent", "medium"), (None, "medium")])
    def test_priority_coercion(self, raw, expected):
        item = AnalyzedActionItem.model_validate({"title": "Call", "priority": raw})
        assert item.priority == expected

    def test_blank_assignee(self):
        item = AnalyzedActionItem.model_validate({"title": "Call", "assignedTo": "  "})
        assert item.assigned_to == "Unassigned"

    def test_title_from_description(self):
        item = AnalyzedActionItem.model_validate({"description": "Send the deck"})
        assert item.title == "Send the deck"


class TestMeetingTypeModel:
    """Tests for meeting type coercion onto the known taxonomy."""

    @pytest.mark.parametrize(
        "raw,expected",
        [("Deal Review", "Deal Review"), ("follow-up ", "Follow-Up"), ("Board Meeting", "General"), (None, "General")],
    )
    def test_meeting_type(self, llm_analysis, raw, expected):
        llm_analysis["meetingType"] = raw
        assert MeetingAnalysis.model_validate(llm_analysis).meeting_type == expected
