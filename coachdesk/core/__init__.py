"""
Core business logic for coaching management.

This module is framework-agnostic - it doesn't import FastAPI, Snowflake,
or any infrastructure concerns, so the ownership rules and aggregations can
be tested in isolation.
"""
