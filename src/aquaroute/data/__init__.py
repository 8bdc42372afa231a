"""Candidate data sources."""
