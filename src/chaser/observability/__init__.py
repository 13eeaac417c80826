"""Metrics, request tracing, and error reporting for the payment chaser."""
