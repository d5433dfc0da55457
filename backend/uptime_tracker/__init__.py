"""Uptime Tracker - HTTP(S) endpoint probing and status history."""
