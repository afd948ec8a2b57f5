"""Thin wrapper over CloudWatch GetMetricWidgetImage and ListMetrics.

API reference:
https://docs.aws.amazon.com/AmazonCloudWatch/latest/APIReference/API_GetMetricWidgetImage.html
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from botocore.exceptions import BotoCoreError, ClientError

from cwimages.credentials import CredentialContext
from cwimages.errors import RemoteError
from cwimages.helpers.aws_client import get_client

logger = logging.getLogger(__name__)

OUTPUT_FORMAT = "png"


@dataclass(frozen=True)
class Dimension:
    name: str
    value: str


@dataclass(frozen=True)
class MetricDescriptor:
    namespace: str
    metric_name: str
    dimensions: list[Dimension] = field(default_factory=list)


class WidgetImageClient:
    def __init__(self, cloudwatch_client):
        self._cw = cloudwatch_client

    @classmethod
    def for_region(cls, region: str, *, session=None, timeout: int | None = None) -> "WidgetImageClient":
        try:
            client = get_client("cloudwatch", region=region, session=session, timeout=timeout)
        except BotoCoreError as e:
            raise RemoteError(f"Unable to create CloudWatch client for {region}: {e}") from e
        return cls(client)

    @classmethod
    def from_context(cls, context: CredentialContext, *, timeout: int | None = None) -> "WidgetImageClient":
        return cls.for_region(context.region, session=context.session, timeout=timeout)

    @property
    def region(self) -> str | None:
        meta = getattr(self._cw, "meta", None)
        return getattr(meta, "region_name", None)

    def request_widget_image(self, rendered_document: str) -> bytes:
        """Submit a rendered widget definition and return the PNG bytes."""
        try:
            resp = self._cw.get_metric_widget_image(
                MetricWidget=rendered_document,
                OutputFormat=OUTPUT_FORMAT,
            )
        except (ClientError, BotoCoreError) as e:
            raise RemoteError(f"GetMetricWidgetImage failed: {e}") from e

        image = resp.get("MetricWidgetImage")
        if not image:
            raise RemoteError("GetMetricWidgetImage returned no image")
        return bytes(image)

    def list_metrics(self, namespace: str | None = None) -> list[MetricDescriptor]:
        """List every metric visible in the client's account/region."""
        kwargs = {"Namespace": namespace} if namespace else {}
        metrics: list[MetricDescriptor] = []
        try:
            paginator = self._cw.get_paginator("list_metrics")
            for page in paginator.paginate(**kwargs):
                for m in page.get("Metrics", []):
                    metrics.append(
                        MetricDescriptor(
                            namespace=m.get("Namespace", ""),
                            metric_name=m.get("MetricName", ""),
                            dimensions=[
                                Dimension(name=d.get("Name", ""), value=d.get("Value", ""))
                                for d in m.get("Dimensions", [])
                            ],
                        )
                    )
        except (ClientError, BotoCoreError) as e:
            raise RemoteError(f"ListMetrics failed: {e}") from e
        logger.debug(f"Listed {len(metrics)} metrics")
        return metrics


def format_metrics(metrics: list[MetricDescriptor]) -> str:
    lines: list[str] = []
    for metric in metrics:
        lines.append(f"Namespace: {metric.namespace}")
        lines.append(f"Name:      {metric.metric_name}")
        lines.append("Dimensions:")
        for d in metric.dimensions:
            lines.append(f"  Name:  {d.name}")
            lines.append(f"  Value: {d.value}")
            lines.append("")
        lines.append("")
    lines.append(f"Found {len(metrics)} metrics.")
    return "\n".join(lines)
