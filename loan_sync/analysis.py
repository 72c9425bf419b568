"""Natural-language portfolio analysis through an external text generator.

The generator is any callable taking a prompt and returning text. Analysis
never raises: every failure is turned into an explicit unavailable message.
"""

import json
import logging
from decimal import Decimal
from typing import Callable, Iterable

from loan_sync.models import LoanRecord
from loan_sync.transfer.serialization import serialize_value

logger = logging.getLogger(__name__)

TextGenerator = Callable[[str], str]

CENT = Decimal("0.01")

UNAVAILABLE_NO_GENERATOR = "Analysis unavailable: no text generator is configured."
UNAVAILABLE_EMPTY = "Analysis unavailable: the portfolio has no active loans."
UNAVAILABLE_ERROR = "Analysis unavailable at this time due to an error."
UNAVAILABLE_NO_TEXT = "Analysis unavailable: no text was generated."

PROMPT_TEMPLATE = """\
You are a senior financial portfolio manager. Analyze the following loan portfolio data (in JSON format).

Data: {data}

Please provide a brief, high-level executive summary (max 3 paragraphs) covering:
1. Total risk exposure.
2. Projected profitability.
3. Advice on diversification or risk management based on the current distribution.

Keep the tone professional, analytical, and concise.
"""


def portfolio_payload(records: Iterable[LoanRecord]) -> list[dict]:
    """Reduce live records to the figures sent for analysis."""
    return [
        {
            "name": r.name,
            "invested": serialize_value(r.principal),
            "rate": f"{r.interest_rate:.1f}%",
            "months": r.installments_count,
            "totalReturn": serialize_value(r.total_receivable.quantize(CENT)),
            "paidInstallments": r.paid_count,
            "status": r.status.value,
        }
        for r in records
        if not r.is_deleted
    ]


def build_prompt(records: Iterable[LoanRecord]) -> str:
    return PROMPT_TEMPLATE.format(data=json.dumps(portfolio_payload(records), ensure_ascii=False))


class PortfolioAnalyst:
    """Produce an executive summary of the live portfolio."""

    def __init__(self, generate: TextGenerator | None = None) -> None:
        self.generate = generate

    def analyze(self, records: Iterable[LoanRecord]) -> str:
        """Return generated text or an explicit unavailable message."""
        records = [r for r in records if not r.is_deleted]
        if self.generate is None:
            return UNAVAILABLE_NO_GENERATOR
        if not records:
            return UNAVAILABLE_EMPTY

        try:
            text = self.generate(build_prompt(records))
        except Exception as e:  # the generator is an opaque external service
            logger.error("Portfolio analysis failed: %s", e)
            return UNAVAILABLE_ERROR

        if not isinstance(text, str) or not text.strip():
            return UNAVAILABLE_NO_TEXT
        return text.strip()
