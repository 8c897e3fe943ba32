"""Monitoring - publish reminder run counts to CloudWatch."""

import logging, os
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional
from dataclasses import dataclass
from enum import Enum

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from office_tracker.common.constants import MonitoringConstants

logger = logging.getLogger(__name__)


class MetricType(str, Enum):
    RECORDS_TOTAL = "records_total"
    RECORDS_ELIGIBLE = "records_eligible"
    RECORDS_SKIPPED = "records_skipped"
    RECORD_FAILURES = "record_failures"
    NOTIFICATIONS_SENT = "notifications_sent"
    NOTIFICATIONS_DELIVERED = "notifications_delivered"
    NOTIFICATIONS_REJECTED = "notifications_rejected"
    TRANSPORT_FAILURES = "transport_failures"
    RUN_DURATION = "run_duration"


# RunSummary count key -> metric
_COUNT_METRICS = {
    "total": MetricType.RECORDS_TOTAL,
    "eligible": MetricType.RECORDS_ELIGIBLE,
    "failed": MetricType.RECORD_FAILURES,
    "sent": MetricType.NOTIFICATIONS_SENT,
    "delivered": MetricType.NOTIFICATIONS_DELIVERED,
    "rejected": MetricType.NOTIFICATIONS_REJECTED,
    "transport_failed": MetricType.TRANSPORT_FAILURES,
}


@dataclass
class MetricPoint:
    metric_name: str
    value: float
    unit: str = "None"
    timestamp: Optional[datetime] = None
    dimensions: Optional[Dict[str, str]] = None
    
    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc)


class RunMetricsCollector:
    """Buffers run metrics and publishes them to CloudWatch."""
    
    def __init__(self, namespace: Optional[str] = None, region: Optional[str] = None,
                 aws_profile: Optional[str] = None,
                 batch_size: int = MonitoringConstants.DEFAULT_BATCH_SIZE):
        self.namespace = namespace or os.environ.get(
            "OFFICE_TRACKER_METRICS_NAMESPACE", MonitoringConstants.DEFAULT_NAMESPACE
        )
        self.region = region or os.environ.get("AWS_DEFAULT_REGION", MonitoringConstants.DEFAULT_REGION)
        self.batch_size = batch_size
        self.metric_buffer: List[MetricPoint] = []
        
        if aws_profile:
            session = boto3.Session(profile_name=aws_profile)
            self.cloudwatch = session.client("cloudwatch", region_name=self.region)
        else:
            self.cloudwatch = boto3.client("cloudwatch", region_name=self.region)
        
        logger.info(f"Initialized RunMetricsCollector: namespace={self.namespace}")
    
    def record_metric(self, metric: MetricPoint) -> None:
        """Buffer a metric point, flushing once the buffer is full."""
        self.metric_buffer.append(metric)
        
        if len(self.metric_buffer) >= self.batch_size:
            self.flush()
    
    def record_run(
        self,
        kind: str,
        counts: Mapping[str, int],
        skipped: Mapping[str, int],
        duration_ms: float,
        dry_run: bool = False,
    ) -> None:
        """Record the counts of one reminder run.
        
        Args:
            kind: Reminder kind the run evaluated
            counts: Run counts keyed as in ``RunSummary.counts``
            skipped: Not-eligible counts per failed rule
            duration_ms: Wall time of the run
            dry_run: Whether dispatch was suppressed
        """
        dimensions = {"kind": kind, "mode": "dry_run" if dry_run else "live"}
        
        for key, metric_type in _COUNT_METRICS.items():
            if key not in counts:
                continue
            self.record_metric(MetricPoint(
                metric_name=metric_type.value,
                value=float(counts[key]),
                unit="Count",
                dimensions=dimensions,
            ))
        
        for rule, count in skipped.items():
            self.record_metric(MetricPoint(
                metric_name=MetricType.RECORDS_SKIPPED.value,
                value=float(count),
                unit="Count",
                dimensions={**dimensions, "rule": rule},
            ))
        
        self.record_metric(MetricPoint(
            metric_name=MetricType.RUN_DURATION.value,
            value=duration_ms,
            unit="Milliseconds",
            dimensions=dimensions,
        ))
    
    def record_maintenance(self, operation: str, affected: int, dry_run: bool = False) -> None:
        """Record how many records a maintenance operation touched."""
        self.record_metric(MetricPoint(
            metric_name=f"{operation}_records",
            value=float(affected),
            unit="Count",
            dimensions={"mode": "dry_run" if dry_run else "live"},
        ))
    
    def flush(self) -> None:
        """Flush buffered metrics to CloudWatch.
        
        Raises:
            IOError: If CloudWatch write fails
        """
        if not self.metric_buffer:
            return
        
        try:
            metric_data = []
            for metric in self.metric_buffer:
                metric_dict = {
                    "MetricName": metric.metric_name,
                    "Value": metric.value,
                    "Unit": metric.unit,
                    "Timestamp": metric.timestamp,
                }
                
                if metric.dimensions:
                    metric_dict["Dimensions"] = [
                        {"Name": k, "Value": str(v)}
                        for k, v in metric.dimensions.items()
                    ]
                
                metric_data.append(metric_dict)
            
            step = MonitoringConstants.CLOUDWATCH_MAX_METRICS_PER_REQUEST
            for i in range(0, len(metric_data), step):
                self.cloudwatch.put_metric_data(
                    Namespace=self.namespace,
                    MetricData=metric_data[i:i + step],
                )
            
            logger.debug(f"Published {len(self.metric_buffer)} metrics to CloudWatch")
            self.metric_buffer.clear()
        
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to publish metrics: {e}")
            raise IOError(f"CloudWatch write failed: {e}") from e
    
    def shutdown(self) -> None:
        """Flush remaining metrics on shutdown."""
        self.flush()
