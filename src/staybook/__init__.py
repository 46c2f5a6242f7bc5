"""Staybook: booking rate resolution and room-night ledger engine."""
