"""Pure derivations over the record set."""

from loan_sync.engine.alerts import derive_alerts
from loan_sync.engine.projection import derive_projection
from loan_sync.engine.schedule import (
    build_installments,
    create_record,
    derive_interest_rate,
    generate_id,
    reschedule,
)
from loan_sync.engine.status import (
    derive_status,
    installment_state,
    refresh_status,
    refresh_statuses,
)
from loan_sync.engine.summary import group_by_client, summarize_portfolio

__all__ = [
    "build_installments",
    "create_record",
    "derive_alerts",
    "derive_interest_rate",
    "derive_projection",
    "derive_status",
    "generate_id",
    "group_by_client",
    "installment_state",
    "refresh_status",
    "refresh_statuses",
    "reschedule",
    "summarize_portfolio",
]
