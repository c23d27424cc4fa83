"""Streaming chat relay: forwards chat queries to an LLM and streams Markdown back as SSE."""

__version__ = "0.1.0"
