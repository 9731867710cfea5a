"""
Package initialization file for backend models.

Re-exports all Pydantic schemas and enumerations from schemas.py and enums.py
so other modules can import them from callcenter_metrics.models directly:

    from callcenter_metrics.models import (
        NormalizedLead,
        NormalizedCall,
        AggregatedMetrics,
        LeadClassification,
    )
"""

# =============================================================================
# Enums
# =============================================================================

from callcenter_metrics.models.enums import (
    CallClassification,
    DropReason,
    LeadClassification,
    RecoveryCounting,
)


# =============================================================================
# Schemas
# =============================================================================

from callcenter_metrics.models.schemas import (
    DEFAULT_RECOVERY_KEYWORDS,
    # -------------------------------------------------------------------------
    # Operating-hours configuration
    # -------------------------------------------------------------------------
    OperatingWindow,
    CallCenterConfig,
    CallCenterSummary,
    TimeWindow,
    DailyWindows,
    # -------------------------------------------------------------------------
    # Raw and normalized records
    # -------------------------------------------------------------------------
    RawLeadRecord,
    RawCallRecord,
    NormalizedLead,
    NormalizedCall,
    LeadNormalizationResult,
    CallNormalizationResult,
    LeadCallMatch,
    # -------------------------------------------------------------------------
    # Policy and output metrics
    # -------------------------------------------------------------------------
    MetricsPolicy,
    InHoursMetrics,
    AfterHoursMetrics,
    CallCenterMetrics,
    AggregatedMetrics,
    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------
    DailyTotals,
    DailyCallCenterStats,
    DailyStats,
    DailyBreakdown,
)


__all__ = [
    # Enums
    "CallClassification",
    "DropReason",
    "LeadClassification",
    "RecoveryCounting",
    # Configuration
    "DEFAULT_RECOVERY_KEYWORDS",
    "OperatingWindow",
    "CallCenterConfig",
    "CallCenterSummary",
    "TimeWindow",
    "DailyWindows",
    # Records
    "RawLeadRecord",
    "RawCallRecord",
    "NormalizedLead",
    "NormalizedCall",
    "LeadNormalizationResult",
    "CallNormalizationResult",
    "LeadCallMatch",
    # Policy and metrics
    "MetricsPolicy",
    "InHoursMetrics",
    "AfterHoursMetrics",
    "CallCenterMetrics",
    "AggregatedMetrics",
    # Diagnostics
    "DailyTotals",
    "DailyCallCenterStats",
    "DailyStats",
    "DailyBreakdown",
]
