"""
Insight summaries for the dashboard header.

Two strategies share one interface:

- RemoteInsights posts the KPI summary to an insights service.
- LocalInsights derives a few plain-language findings from the metrics.

generate_insights() checks the remote service on every call and falls back
to LocalInsights when it is unconfigured, unhealthy or fails mid-request.
"""

import logging
from dataclasses import dataclass, field
from typing import Protocol

import requests

from .config import (
    INSIGHTS_ENDPOINT,
    INSIGHTS_HEALTH_ENDPOINT,
    INSIGHTS_TIMEOUT_SECONDS,
    MAX_INSIGHTS,
)
from .dashboard import format_pct
from .kpis import rank_by_hold_units
from .records import HoldRecord

logger = logging.getLogger(__name__)


@dataclass
class InsightsResult:
    insights: list[str]
    key_phrases: list[str] = field(default_factory=list)
    source: str = "local"


class InsightsProvider(Protocol):
    def generate(self, summary_text: str, metrics: dict) -> InsightsResult: ...


def build_insights_payload(records: list[HoldRecord], metrics: dict) -> dict:
    """Build the service request body from hold metrics.

    Parameters
    ----------
    records : The active (filtered) records.
    metrics : Output of kpis.compute_hold_metrics for the same records.
    """
    top_location = rank_by_hold_units(records, "location")
    top_disposition = rank_by_hold_units(records, "disposition")
    payload_metrics = {
        "totalHoldUnits": metrics["total_hold_units"],
        "totalItemsReworked": metrics["total_reworked"],
        "reworkPercent": format_pct(metrics["rework_pct"]),
        "percentScrapped": format_pct(metrics["scrap_pct"]),
        "topRootCause": metrics.get("top_root_cause") or "—",
        "topLocation": top_location[0][0] if top_location else "—",
        "topDisposition": top_disposition[0][0] if top_disposition else "—",
    }
    return {"summaryText": summarize_metrics(payload_metrics), "metrics": payload_metrics}


def summarize_metrics(payload_metrics: dict) -> str:
    return (
        f"{payload_metrics['totalHoldUnits']:,} cases on hold, "
        f"{payload_metrics['totalItemsReworked']:,} reworked "
        f"({payload_metrics['reworkPercent']}), {payload_metrics['percentScrapped']} scrapped. "
        f"Top root cause: {payload_metrics['topRootCause']}; "
        f"top location: {payload_metrics['topLocation']}; "
        f"most common disposition: {payload_metrics['topDisposition']}."
    )


class LocalInsights:
    """Findings computed from already-aggregated metrics, no I/O."""

    def generate(self, summary_text: str, metrics: dict) -> InsightsResult:
        insights = []
        if metrics.get("topRootCause") and metrics["topRootCause"] != "—":
            insights.append(
                f"{metrics['topRootCause']} is the leading root cause of reworked cases."
            )
        insights.append(
            f"{metrics.get('reworkPercent', 'N/A')} of held cases were reworked "
            f"and {metrics.get('percentScrapped', 'N/A')} were scrapped."
        )
        if metrics.get("topLocation") and metrics["topLocation"] != "—":
            insights.append(f"{metrics['topLocation']} holds the most cases.")

        key_phrases = [
            metrics[k] for k in ("topRootCause", "topLocation", "topDisposition")
            if metrics.get(k) and metrics[k] != "—"
        ]
        return InsightsResult(insights[:MAX_INSIGHTS], key_phrases, source="local")


class RemoteInsights:
    """Client for the insights service."""

    def __init__(
        self,
        endpoint: str,
        health_endpoint: str | None = None,
        timeout: float = INSIGHTS_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ):
        self.endpoint = endpoint
        self.health_endpoint = health_endpoint
        self.timeout = timeout
        self.http = session or requests.Session()

    def is_available(self) -> bool:
        """Health check; True when no health endpoint is configured."""
        if not self.health_endpoint:
            return True
        try:
            response = self.http.get(self.health_endpoint, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Insights service unreachable: %s", exc)
            return False
        return response.ok

    def generate(self, summary_text: str, metrics: dict) -> InsightsResult:
        """POST the summary and return the service's insights.

        Raises
        ------
        requests.RequestException
            On connection errors, timeouts and non-success statuses.
        ValueError
            If the response body is not the expected JSON.
        """
        response = self.http.post(
            self.endpoint,
            json={"summaryText": summary_text, "metrics": metrics},
            timeout=self.timeout,
        )
        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict):
            raise ValueError(f"Unexpected insights response: {body!r}")
        insights = [str(i) for i in body.get("insights") or []][:MAX_INSIGHTS]
        key_phrases = [str(p) for p in body.get("keyPhrases") or []]
        return InsightsResult(insights, key_phrases, source="remote")


def default_remote() -> RemoteInsights | None:
    """RemoteInsights built from configuration, or None when no endpoint is set."""
    if not INSIGHTS_ENDPOINT:
        return None
    return RemoteInsights(INSIGHTS_ENDPOINT, INSIGHTS_HEALTH_ENDPOINT)


def generate_insights(
    records: list[HoldRecord],
    metrics: dict,
    remote: RemoteInsights | None = None,
) -> InsightsResult:
    """Return insights for the active records, remote when possible."""
    payload = build_insights_payload(records, metrics)
    local: InsightsProvider = LocalInsights()

    if remote is None or not remote.is_available():
        return local.generate(payload["summaryText"], payload["metrics"])

    try:
        return remote.generate(payload["summaryText"], payload["metrics"])
    except (requests.RequestException, ValueError) as exc:
        logger.warning("Insights service failed, using local summary: %s", exc)
        return local.generate(payload["summaryText"], payload["metrics"])
