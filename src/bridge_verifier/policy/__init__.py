"""Verifier policy loaded from config/verifier_policy.json."""
