"""Loan-request relay: form submission -> Discord webhook notification."""
