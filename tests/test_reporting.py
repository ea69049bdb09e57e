from career_events.dedupe import DedupeConflict, DedupeStats
from career_events.models import ProviderHealthRecord, ProviderRunStats, RejectedItem
from career_events.refresh import RefreshResult
from career_events.reporting import render_health_table, render_refresh_summary


def _result(**overrides) -> RefreshResult:
    fields = dict(
        run_id="run1",
        started_at="2026-03-01T06:00:00+00:00",
        finished_at="2026-03-01T06:02:00+00:00",
        months=12,
        dry_run=False,
        skip_verify=False,
        provider_filter=None,
        providers=[
            ProviderRunStats(
                provider="tautdanning",
                display_name="Ta Utdanning",
                fetched=5,
                structurally_valid=4,
                stage_a_passed=3,
                stage_b_passed=3,
                published=3,
                health_state="HEALTHY",
            ),
            ProviderRunStats(
                provider="eures",
                display_name="EURES",
                errors=["[eures] listing fetch failed: HTTP 503"],
                health_state="FAILED",
            ),
        ],
        events=[],
        rejected=[
            RejectedItem(
                id="tautdanning:gone",
                provider="tautdanning",
                title="Gone",
                registration_url="https://www.tautdanning.no/gone",
                stage="live",
                reason="LiveCheckFailure",
                detail="HTTP 404",
            ),
            RejectedItem(
                id="tautdanning:short",
                provider="tautdanning",
                title="Short",
                registration_url="https://bit.ly/x",
                stage="structural",
                reason="StructuralValidationError",
                detail="Host 'bit.ly' is on the block list",
            ),
        ],
        dedupe=DedupeStats(input_count=3, output_count=3),
        alerts=["eures has failed 3 consecutive run(s): [eures] listing fetch failed: HTTP 503"],
        cache={"html_purged": 2, "url_purged": 1},
        published=True,
    )
    fields.update(overrides)
    return RefreshResult(**fields)


def test_summary_lists_counts_errors_and_alerts() -> None:
    text = render_refresh_summary(_result())
    lines = text.splitlines()

    assert lines[0] == "Career events refresh run1 (published)"
    assert "Window: 12 month(s); verification on" in lines
    assert any(line.startswith("tautdanning") and line.endswith("HEALTHY") for line in lines)
    assert "Events in: 5  out: 0  rejected: 2  duplicates removed: 0" in lines
    assert "Rejections by reason: LiveCheckFailure (1), StructuralValidationError (1)" in lines
    assert "Cache purge: 2 html, 1 url-check" in lines
    assert "! eures: [eures] listing fetch failed: HTTP 503" in lines
    assert any(line.startswith("ALERT eures has failed 3") for line in lines)
    assert "Rejected:" not in lines


def test_verbose_summary_lists_rejections_and_conflicts() -> None:
    stats = DedupeStats(
        input_count=2,
        output_count=1,
        duplicates_removed=1,
        removed_by_provider={"oslomet": 1},
        conflicts=[
            DedupeConflict(
                key="career day::2026-04-10::oslo",
                winner_id="tautdanning:career-day",
                loser_ids=["oslomet:career-day"],
            )
        ],
    )
    text = render_refresh_summary(_result(dry_run=True, published=False, dedupe=stats), verbose=True)

    assert text.startswith("Career events refresh run1 (DRY RUN)")
    assert "- [live] LiveCheckFailure tautdanning:gone: HTTP 404" in text
    assert "- career day::2026-04-10::oslo: kept tautdanning:career-day, dropped oslomet:career-day" in text


def test_health_table() -> None:
    assert render_health_table([]) == "No provider health recorded yet."
    table = render_health_table(
        [ProviderHealthRecord(provider="oslomet", state="DEGRADED", consecutive_failures=1, last_error="timeout")]
    )
    assert table.startswith("oslomet")
    assert "DEGRADED" in table
    assert "failures=1" in table
    assert "last_error=timeout" in table
