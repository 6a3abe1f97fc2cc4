"""Durable persistence — append-only event log and per-network trusted state."""
