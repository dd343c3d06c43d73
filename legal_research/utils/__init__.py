"""Shared utilities: configuration, logging, retry and schemas."""
