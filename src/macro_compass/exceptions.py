"""Custom exception hierarchy for MACRO COMPASS."""


class MacroCompassError(Exception):
    """Base exception for all macro_compass errors."""


class ConfigurationError(MacroCompassError):
    """Invalid configuration file, section or key."""


class MissingDataError(MacroCompassError):
    """Required input data is absent; no regime can be computed from it."""


class FetchError(MacroCompassError):
    """A collaborator returned an error or an unreadable payload."""


class SnapshotValidationError(MacroCompassError):
    """A MacroSnapshot failed schema validation."""

    def __init__(self, issues: list) -> None:
        self.issues = issues
        summary = "; ".join(f"{i.path or '<root>'}: {i.message}" for i in issues[:5])
        super().__init__(f"Snapshot validation failed ({len(issues)} issue(s)): {summary}")
