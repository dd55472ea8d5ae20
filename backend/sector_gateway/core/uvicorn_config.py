"""Uvicorn logging configuration matching CentralizedLogger output"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Dict, Any
from opentelemetry import trace


class UvicornJsonFormatter(logging.Formatter):
    """JSON formatter for uvicorn logs matching CentralizedLogger format"""

    def format(self, record):
        trace_id = "no-trace"
        span_id = "no-span"

        span = trace.get_current_span()
        if span and span.is_recording():
            span_context = span.get_span_context()
            trace_id = format(span_context.trace_id, '032x')
            span_id = format(span_context.span_id, '016x')

        log_obj = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'service': record.name,
            'message': record.getMessage(),
            'trace_id': trace_id,
            'span_id': span_id,
        }

        return json.dumps(log_obj)


class UvicornConsoleFormatter(logging.Formatter):
    """Console formatter for uvicorn logs with colors matching CentralizedLogger"""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'
    BOLD = '\033[1m'

    def format(self, record):
        levelname = record.levelname
        color = self.COLORS.get(levelname, '')
        reset = self.RESET if color else ''
        level = f"{color}{self.BOLD if color else ''}{levelname}{reset}"
        service = f"{color}{self.BOLD if color else ''}{record.name}{reset}"

        # HH:MM:SS | LEVEL | SERVICE | MESSAGE
        return f"{self.formatTime(record, '%H:%M:%S')} | {level:21s} | {service:20s} | {record.getMessage()}"


def get_uvicorn_log_config() -> Dict[str, Any]:
    """Get uvicorn logging configuration

    Console output on stdout and JSON on stderr, or JSON only when
    ``GATEWAY_LOG_JSON_ONLY=true``.
    """
    json_only = os.getenv('GATEWAY_LOG_JSON_ONLY', 'false').lower() == 'true'
    handlers = ["json"] if json_only else ["console", "json"]

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {
                "()": "sector_gateway.core.uvicorn_config.UvicornConsoleFormatter",
            },
            "json": {
                "()": "sector_gateway.core.uvicorn_config.UvicornJsonFormatter",
            },
        },
        "handlers": {
            "console": {
                "formatter": "console",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
            },
            "json": {
                "formatter": "json",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "uvicorn": {"handlers": handlers, "level": "INFO", "propagate": False},
            "uvicorn.error": {"handlers": handlers, "level": "INFO", "propagate": False},
            "uvicorn.access": {"handlers": handlers, "level": "INFO", "propagate": False},
        },
    }


def configure_otel_logging():
    """Quiet OpenTelemetry exporter warnings down to errors, in JSON"""
    otel_loggers = [
        'opentelemetry.exporter.otlp.proto.grpc.trace_exporter',
        'opentelemetry.exporter.otlp.proto.grpc.metric_exporter',
        'opentelemetry.sdk.trace.export',
        'opentelemetry.sdk.metrics.export',
    ]

    for logger_name in otel_loggers:
        logger = logging.getLogger(logger_name)
        # Transient collector outages are expected in development
        logger.setLevel(logging.ERROR)

        if not logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(UvicornJsonFormatter())
            logger.addHandler(handler)
