"""
MACRO COMPASS - Macro Regime & Trading Decision Core

MACRO COMPASS answers one question per evaluation cycle:
"Given today's macro regime, correlations and calendar, what may be
traded, in which direction, and how large?"

Design Principles:
- Four pure stages: regime classifier, correlation analyzer,
  signal synthesizer, delta engine
- Strict action precedence: calendar blocks first, data quality second
- Never invents values for missing inputs
- Deterministic; the only clock read is the cooldown expiry
- State between cycles is held by the caller, never by the core
"""

__version__ = "1.0.0"
