"""
Backend Services Module

Business logic of the call center metrics pipeline. Every service except
data_source is synchronous and keeps no state between calls.

Services:
- operating_hours: Operating-Hours Registry and the built-in call center table
- normalization: raw lead/call rows to canonical records, with drop counts
- classification: in-hours/after-hours and call-type classification
- matching: lead-to-call identity matching (phone key, then click id)
- aggregation: per-center and overall metrics; compute_metrics entry point
- data_source: paginated record fetch and the stale-run guard
- daily_breakdown: trailing-days per-day diagnostics (pandas)

Pipeline:
    fetch_all_data -> normalize_leads / normalize_calls
                   -> match_leads_with_calls -> aggregate
"""
