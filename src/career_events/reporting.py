"""Plain-text summaries printed at the end of a run."""

from __future__ import annotations

from typing import Iterable

from .models import ProviderHealthRecord
from .refresh import RefreshResult

STAGE_COLUMNS = (
    ("fetched", "fetched"),
    ("structurally_valid", "valid"),
    ("stage_a_passed", "live"),
    ("stage_b_passed", "content"),
    ("deduped_out", "dupes"),
    ("published", "published"),
)


def _top_labels(bucket: dict[str, int], limit: int = 5) -> str:
    if not bucket:
        return "none"
    ranked = sorted(bucket.items(), key=lambda kv: (-kv[1], kv[0]))[:limit]
    return ", ".join(f"{label} ({count})" for label, count in ranked)


def render_provider_table(result: RefreshResult) -> list[str]:
    name_width = max([len("provider")] + [len(p.provider) for p in result.providers])
    header = "  ".join(["provider".ljust(name_width)] + [label.rjust(9) for _, label in STAGE_COLUMNS] + ["health"])
    lines = [header, "-" * len(header)]
    for stats in result.providers:
        cells = [stats.provider.ljust(name_width)]
        cells.extend(str(getattr(stats, attr)).rjust(9) for attr, _ in STAGE_COLUMNS)
        cells.append(stats.health_state)
        lines.append("  ".join(cells))
    return lines


def render_refresh_summary(result: RefreshResult, *, verbose: bool = False) -> str:
    lines: list[str] = []
    mode = "DRY RUN" if result.dry_run else "published" if result.published else "not published"
    lines.append(f"Career events refresh {result.run_id} ({mode})")
    lines.append(f"Window: {result.months} month(s); verification {'skipped' if result.skip_verify else 'on'}")
    if result.provider_filter:
        lines.append(f"Provider filter: {result.provider_filter}")
    lines.append("")
    lines.extend(render_provider_table(result))
    lines.append("")

    dedupe = result.dedupe
    lines.append(
        f"Events in: {result.fetched_count}  out: {len(result.events)}  "
        f"rejected: {len(result.rejected)}  duplicates removed: {dedupe.duplicates_removed}"
    )
    lines.append(f"Rejections by reason: {_top_labels(result.rejected_by_reason())}")
    if result.cache:
        lines.append(
            f"Cache purge: {result.cache.get('html_purged', 0)} html, {result.cache.get('url_purged', 0)} url-check"
        )

    for stats in result.providers:
        for error in stats.errors:
            lines.append(f"! {stats.provider}: {error}")
    for alert in result.alerts:
        lines.append(f"ALERT {alert}")

    if verbose and result.rejected:
        lines.append("")
        lines.append("Rejected:")
        for item in result.rejected:
            lines.append(f"- [{item.stage}] {item.reason} {item.id}: {item.detail}")
    if verbose and dedupe.conflicts:
        lines.append("")
        lines.append("Dedupe conflicts:")
        for conflict in dedupe.conflicts:
            lines.append(f"- {conflict.key}: kept {conflict.winner_id}, dropped {', '.join(conflict.loser_ids)}")
    return "\n".join(lines)


def render_health_table(records: Iterable[ProviderHealthRecord]) -> str:
    lines = []
    for record in records:
        lines.append(
            f"{record.provider:<20} {record.state:<9} failures={record.consecutive_failures} "
            f"runs={record.total_runs} last_success={record.last_success_at or '-'} "
            f"last_error={record.last_error or '-'}"
        )
    return "\n".join(lines) if lines else "No provider health recorded yet."
