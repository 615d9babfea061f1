"""Consent gate: preferences, opt-outs and quiet hours."""

from notify_orchestrator.consent.gate import ConsentGate, in_quiet_window
from notify_orchestrator.consent.models import ConsentDecision, DenyReason

__all__ = ["ConsentDecision", "ConsentGate", "DenyReason", "in_quiet_window"]
