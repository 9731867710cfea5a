'''
Call Center Metrics Test Suite

Test Modules:
-------------
- test_operating_hours.py: Operating-hours registry
  - Lookup by raw or separator-stripped key
  - After-hours decision, overnight and fractional windows
  - Daily window generation (in-hours / after-hours partition)
  - Formatting and JSON configuration loading

- test_normalization.py: Raw record normalization
  - Timestamp parsing (ISO, naive wall-clock, epoch seconds/millis)
  - Phone and correlation key normalization
  - Drop reasons for unusable rows

- test_classification.py: Lead and call classification
- test_matching.py: Tiered lead-to-call identity matching
- test_aggregation.py: Per-center metrics, totals, natural sort, filtering
- test_data_source.py: Paginated fetch loop, page query, MetricsRunner
- test_daily_breakdown.py: Trailing-days diagnostics
- test_api.py: FastAPI routes with overridden dependencies

Running Tests:
--------------
    pip install -e ".[test]"
    pytest -v

Markers:
--------
- scenario: end-to-end acceptance scenarios
- property: invariants checked over many generated inputs

See conftest.py for shared fixtures.
'''

__all__ = []
