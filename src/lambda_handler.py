"""Main Lambda handler for Feed Enclosure Transformer."""

import os
from datetime import UTC, datetime
from typing import Any

import boto3

from .config import Config
from .fetcher import FeedFetcher, UpstreamFetchError
from .logging_config import (
    RequestLogger,
    create_request_logger,
    setup_structured_logging,
)
from .pipeline import FeedTransformer

# Setup structured logging
setup_structured_logging(os.getenv("LOG_LEVEL", "INFO"))

METRICS_NAMESPACE = "Feed-Enclosure-Transformer"


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    Lambda HTTP handler that serves the transformed feed.

    Args:
        event: API Gateway (v1 or v2) or Function URL proxy event
        context: Lambda context object

    Returns:
        Proxy response with status code, headers and body
    """
    event = event or {}
    execution_id = f"lambda_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"
    main_logger = create_request_logger("main", execution_id)

    method = get_http_method(event)
    if method == "HEAD":
        # Health probes only need the content type
        main_logger.info("Answering HEAD request")
        return build_response(200, "", {"Content-Type": Config.CONTENT_TYPE})

    main_logger.log_request_start(
        method,
        lambda_request_id=getattr(context, "aws_request_id", "unknown"),
        lambda_function_name=getattr(context, "function_name", "unknown"),
    )

    metrics = {
        "entries_found": 0,
        "entries_without_image": 0,
        "entries_emitted": 0,
        "upstream_failures": 0,
        "errors": [],
    }
    config = None

    try:
        config = Config()
        main_logger.info("Configuration initialized")

        feed_request = config.resolve_request(event.get("queryStringParameters"))
        main_logger.info(
            f"Processing feed: {feed_request.feed_url}",
            feed_url=feed_request.feed_url,
            limit=feed_request.limit,
        )

        fetcher = FeedFetcher(config.get_fetch_config(), execution_id=execution_id)
        xml = fetcher.fetch(feed_request.feed_url)

        transformer = FeedTransformer(config, execution_id=execution_id)
        result = transformer.transform(xml, feed_request.limit)
        main_logger.log_feed_parsed(
            feed_request.feed_url, result.dialect, result.entries_found
        )

        metrics["entries_found"] = result.entries_found
        metrics["entries_without_image"] = result.entries_without_image
        metrics["entries_emitted"] = result.entries_emitted
        main_logger.log_metrics(metrics)

        if config.metrics_enabled:
            send_cloudwatch_metrics(metrics, config.aws_region, execution_id)

        main_logger.log_request_end(200, metrics=metrics)

        return build_response(
            200,
            result.document,
            {
                "Content-Type": Config.CONTENT_TYPE,
                "Cache-Control": config.get_cache_control(),
            },
        )

    except UpstreamFetchError as e:
        error_msg = f"Upstream feed fetch failed: {e.feed_url}"
        main_logger.error(
            error_msg, feed_url=e.feed_url, status_code=e.status_code, error=str(e)
        )
        metrics["upstream_failures"] += 1
        metrics["errors"].append(error_msg)
        _finish_failed(main_logger, config, metrics, execution_id, 502, error_msg)

        return build_response(
            502,
            "Upstream feed fetch failed",
            {"Content-Type": "text/plain; charset=utf-8"},
        )

    except Exception as e:
        error_msg = f"Critical error in Lambda handler: {str(e)}"
        main_logger.error(error_msg, error=str(e))
        metrics["errors"].append(error_msg)
        _finish_failed(main_logger, config, metrics, execution_id, 500, error_msg)

        return build_response(
            500, str(e), {"Content-Type": "text/plain; charset=utf-8"}
        )


def _finish_failed(
    main_logger: RequestLogger,
    config: Config | None,
    metrics: dict[str, Any],
    execution_id: str,
    status_code: int,
    error_msg: str,
) -> None:
    """Log and publish metrics for a failed request."""
    if config is not None and config.metrics_enabled:
        send_cloudwatch_metrics(metrics, config.aws_region, execution_id)

    main_logger.log_request_end(status_code, metrics=metrics, error=error_msg)


def get_http_method(event: dict[str, Any]) -> str:
    """Read the HTTP method from an API Gateway v1/v2 or Function URL event."""
    method = event.get("httpMethod") or (
        event.get("requestContext", {}).get("http", {}).get("method")
    )
    return (method or "GET").upper()


def build_response(
    status_code: int, body: str, headers: dict[str, str]
) -> dict[str, Any]:
    """Build a Lambda proxy response."""
    return {
        "statusCode": status_code,
        "headers": headers,
        "body": body,
        "isBase64Encoded": False,
    }


def send_cloudwatch_metrics(
    metrics: dict[str, Any], aws_region: str, execution_id: str
) -> None:
    """
    Send custom metrics to CloudWatch.

    Args:
        metrics: Dictionary containing request metrics
        aws_region: AWS region for CloudWatch client
        execution_id: Execution ID for logging context
    """
    metrics_logger = create_request_logger("cloudwatch_metrics", execution_id)

    try:
        metrics_logger.info("Sending metrics to CloudWatch", metrics=metrics)
        cloudwatch = boto3.client("cloudwatch", region_name=aws_region)

        total_errors = len(metrics["errors"])
        execution_success = total_errors == 0
        status_dimension = [
            {"Name": "Status", "Value": "Success" if execution_success else "Failure"}
        ]

        metric_data = [
            {
                "MetricName": "EntriesFound",
                "Value": metrics["entries_found"],
                "Unit": "Count",
            },
            {
                "MetricName": "EntriesWithoutImage",
                "Value": metrics["entries_without_image"],
                "Unit": "Count",
            },
            {
                "MetricName": "EntriesEmitted",
                "Value": metrics["entries_emitted"],
                "Unit": "Count",
            },
            {
                "MetricName": "UpstreamFailures",
                "Value": metrics["upstream_failures"],
                "Unit": "Count",
            },
            {
                "MetricName": "Errors",
                "Value": total_errors,
                "Unit": "Count",
            },
            {
                "MetricName": "ExecutionSuccess",
                "Value": 1 if execution_success else 0,
                "Unit": "Count",
                "Dimensions": status_dimension,
            },
            {
                "MetricName": "ExecutionFailure",
                "Value": 0 if execution_success else 1,
                "Unit": "Count",
                "Dimensions": status_dimension,
            },
            {
                "MetricName": "ImageCoverage",
                "Value": (
                    (metrics["entries_found"] - metrics["entries_without_image"])
                    / max(metrics["entries_found"], 1)
                )
                * 100,
                "Unit": "Percent",
            },
        ]

        cloudwatch.put_metric_data(Namespace=METRICS_NAMESPACE, MetricData=metric_data)

        metrics_logger.info(
            "Successfully sent metrics to CloudWatch",
            metrics_sent=len(metric_data),
            namespace=METRICS_NAMESPACE,
            execution_success=execution_success,
        )

    except Exception as e:
        metrics_logger.error(f"Failed to send CloudWatch metrics: {e}", error=str(e))
        # Metrics never change the response
